"""
Per-replicate model fitting.

Fits the bootstrap model to one resample and reports a typed
ReplicateFit instead of raising on rank deficiency. A categorical level
that is absent from the resample yields an all-zero design column;
pivoted QR marks it aliased and the corresponding term is recorded as
missing for that replicate.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pybootreg.core.compute.linalg.qr import qr_solve
from pybootreg.core.exceptions import ConvergenceError, NumericalError
from pybootreg.montecarlo._common import ReplicateFit
from pybootreg.regression.backends.cpu_glm import CPUIRLSBackend
from pybootreg.regression.design import Design
from pybootreg.regression.families import Family


def fit_replicate(
    design: Design,
    indices: NDArray[np.intp],
    family: Family | None,
    b: int,
) -> ReplicateFit:
    """
    Fit one resample.

    Args:
        design: Full-data design (levels pinned to the source)
        indices: Row indices of the resample
        family: GLM family, or None for least squares
        b: Replicate number, stored on the result

    Returns:
        ReplicateFit with status 'full', 'partial', or 'failed'
    """
    names = design.term_names
    try:
        if family is None:
            beta, _ = qr_solve(design.X[indices], design.y[indices])
            converged = True
        else:
            result = CPUIRLSBackend().solve(design.take(indices), family)
            beta = result.params.coefficients
            converged = result.params.converged
    except (np.linalg.LinAlgError, NumericalError, ConvergenceError) as exc:
        return ReplicateFit(
            index=b,
            status='failed',
            estimates={},
            missing=names,
            converged=False,
            message=f"{type(exc).__name__}: {exc}",
        )

    estimates = {
        name: float(value)
        for name, value in zip(names, beta)
        if np.isfinite(value)
    }
    missing = tuple(name for name in names if name not in estimates)

    return ReplicateFit(
        index=b,
        status='partial' if missing else 'full',
        estimates=estimates,
        missing=missing,
        converged=converged,
    )
