"""
pybootreg: regression modeling and bootstrap inference for Python.

Fits linear, generalized linear and multinomial models to tabular data
and estimates coefficient uncertainty by nonparametric bootstrap, with
resamples that lose a categorical level handled per term.

Submodules:
    core: DataSource, RandomSource, Result envelope, exceptions
    regression: Linear, generalized linear and multinomial models
    montecarlo: Bootstrap resampling and confidence intervals
    datasets: Synthetic retail transactions and cleaning
"""

__version__ = "0.1.0"

from pybootreg import core
from pybootreg import regression
from pybootreg import montecarlo
from pybootreg import datasets
from pybootreg.core import DataSource, RandomSource
from pybootreg.regression import ModelSpec, fit, fit_multinomial, vif
from pybootreg.montecarlo import boot, boot_ci, resample_indices

__all__ = [
    "__version__",
    "core",
    "regression",
    "montecarlo",
    "datasets",
    "DataSource",
    "RandomSource",
    "ModelSpec",
    "fit",
    "fit_multinomial",
    "vif",
    "boot",
    "boot_ci",
    "resample_indices",
]
