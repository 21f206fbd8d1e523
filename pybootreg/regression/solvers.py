"""
Solver dispatch for regression.

Public entry points: fit(), fit_multinomial(), vif(). Validation and
design construction happen here; backends trust their input.
"""

from __future__ import annotations

import logging
import warnings
from typing import Literal, Mapping

from pybootreg.core.datasource import DataSource
from pybootreg.core.exceptions import DegenerateFitError
from pybootreg.core.compute.linalg.qr import qr_pivoted
from pybootreg.regression.design import Design
from pybootreg.regression.families import Family, resolve_family
from pybootreg.regression.formula import ModelSpec
from pybootreg.regression.solution import LinearSolution, GLMSolution, MultinomSolution
from pybootreg.regression.backends.cpu import CPUQRBackend
from pybootreg.regression.backends.cpu_glm import CPUIRLSBackend
from pybootreg.regression.backends.cpu_multinom import CPUMultinomBackend
from pybootreg.regression._vif import variance_inflation

logger = logging.getLogger(__name__)

BackendChoice = Literal['auto', 'cpu', 'cpu_qr']


def fit(
    source: DataSource,
    spec: ModelSpec | str,
    *,
    family: str | Family | None = None,
    levels: Mapping[str, tuple[str, ...]] | None = None,
    tol: float = 1e-8,
    max_iter: int = 25,
    backend: BackendChoice = 'auto',
) -> LinearSolution | GLMSolution:
    """
    Fit a linear or generalized linear model.

    With ``family=None`` solves ordinary least squares,
        min_β ||y - Xβ||²,
    by pivoted QR and returns a LinearSolution. With a family
    ('gaussian', 'binomial', 'poisson' or a Family instance) fits by
    IRLS and returns a GLMSolution.

    Args:
        source: The data
        spec: ModelSpec, or an R-style formula string
        family: GLM family, or None for OLS
        levels: Pinned categorical levels (see Design.from_datasource)
        tol: IRLS convergence tolerance
        max_iter: IRLS iteration cap
        backend: 'auto' / 'cpu' / 'cpu_qr' (all CPU QR)

    Returns:
        LinearSolution or GLMSolution

    Raises:
        InvalidArgumentError: If the spec is empty or contradictory
        SchemaError: If the spec does not match the data
        DegenerateFitError: If some terms are not estimable
            (rank-deficient design matrix)

    Example:
        >>> from pybootreg import DataSource, fit
        >>> ds = DataSource.from_file("retail_sales.csv")
        >>> result = fit(ds, "total_amount ~ age + gender")
        >>> print(result.summary())
    """
    if backend not in ('auto', 'cpu', 'cpu_qr'):
        raise ValueError(f"Unknown backend: {backend!r}")

    spec = _as_spec(spec)
    fam = resolve_family(family) if family is not None else None
    response_kind = fam.response_kind if fam is not None else 'numeric'

    design = Design.from_datasource(source, spec, levels=levels, response=response_kind)
    _require_full_rank(design)

    if fam is None:
        result = CPUQRBackend().solve(design)
        return LinearSolution(_result=result, _design=design)

    fam.check_response(design.y)
    result = CPUIRLSBackend().solve(design, fam, tol=tol, max_iter=max_iter)
    for message in result.warnings:
        warnings.warn(message, RuntimeWarning, stacklevel=2)
    return GLMSolution(_result=result, _design=design)


def fit_multinomial(
    source: DataSource,
    spec: ModelSpec | str,
    *,
    levels: Mapping[str, tuple[str, ...]] | None = None,
    tol: float = 1e-8,
    max_iter: int = 100,
) -> MultinomSolution:
    """
    Fit a baseline-category multinomial logit.

    The response must be categorical with at least two levels; the
    first sorted level (or the first pinned level) is the baseline.

    Raises:
        SchemaError: If the response is not categorical
        DegenerateFitError: If the design matrix is rank-deficient
    """
    spec = _as_spec(spec)
    design = Design.from_datasource(source, spec, levels=levels, response='categorical')
    _require_full_rank(design)

    result = CPUMultinomBackend().solve(design, tol=tol, max_iter=max_iter)
    for message in result.warnings:
        warnings.warn(message, RuntimeWarning, stacklevel=2)
    return MultinomSolution(_result=result, _design=design)


def vif(
    source: DataSource,
    spec: ModelSpec | str,
    *,
    levels: Mapping[str, tuple[str, ...]] | None = None,
) -> dict[str, float]:
    """
    Variance inflation factor per non-intercept model term.

    Only the predictor side of the spec is used; the response field
    must still exist and be numeric.
    """
    spec = _as_spec(spec)
    design = Design.from_datasource(source, spec, levels=levels)
    return variance_inflation(design)


def _as_spec(spec: ModelSpec | str) -> ModelSpec:
    if isinstance(spec, ModelSpec):
        return spec
    if isinstance(spec, str):
        return ModelSpec.parse(spec)
    raise TypeError(f"spec must be ModelSpec or str, got {type(spec).__name__}")


def _require_full_rank(design: Design) -> None:
    """Raise DegenerateFitError naming the inestimable terms."""
    if design.p == 0:
        return
    qr_result = qr_pivoted(design.X)
    if qr_result.rank < design.p:
        missing = tuple(design.term_names[j] for j in qr_result.aliased)
        logger.debug("rank %d < %d, aliased: %s", qr_result.rank, design.p, missing)
        raise DegenerateFitError(
            f"Design matrix is rank-deficient: rank={qr_result.rank}, "
            f"expected={design.p}. Terms not estimable: {list(missing)}",
            missing_terms=missing,
            rank=qr_result.rank,
            expected_rank=design.p,
        )
