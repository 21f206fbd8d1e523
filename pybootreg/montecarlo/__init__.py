"""
Bootstrap resampling of regression models.

Provides ordinary nonparametric bootstrap of model coefficients
(following R's boot package) with per-term handling of resamples in
which a term is not estimable.

Usage:
    from pybootreg.montecarlo import boot, boot_ci

    result = boot(ds, "total_amount ~ age + gender", R=999, seed=42)
    result.intervals()                  # percentile, term -> (lower, upper)
    ci_result = boot_ci(result, type=["basic", "norm"])
"""

from pybootreg.montecarlo._common import ReplicateFit, TermInterval, BootParams
from pybootreg.montecarlo._resample import resample_indices
from pybootreg.montecarlo.design import BootstrapDesign
from pybootreg.montecarlo.solution import BootstrapSolution
from pybootreg.montecarlo.solvers import boot, boot_ci

__all__ = [
    "boot",
    "boot_ci",
    "resample_indices",
    "BootstrapDesign",
    "BootstrapSolution",
    "BootParams",
    "ReplicateFit",
    "TermInterval",
]
