"""
Linear, generalized linear, and multinomial regression.

Public API:
    fit(source, spec, family=None) -> LinearSolution | GLMSolution
    fit_multinomial(source, spec)  -> MultinomSolution
    vif(source, spec)              -> dict[str, float]

Example:
    >>> from pybootreg.regression import fit, ModelSpec
    >>> spec = ModelSpec('total_amount', ['age', 'gender'])
    >>> result = fit(ds, spec)
    >>> result.coef['genderMale']
"""

from pybootreg.regression.formula import ModelSpec
from pybootreg.regression.design import Design, INTERCEPT
from pybootreg.regression.families import (
    Family,
    Gaussian,
    Binomial,
    Poisson,
    resolve_family,
)
from pybootreg.regression.solution import (
    LinearSolution,
    LinearParams,
    GLMSolution,
    GLMParams,
    MultinomSolution,
    MultinomParams,
)
from pybootreg.regression.solvers import fit, fit_multinomial, vif

__all__ = [
    "fit",
    "fit_multinomial",
    "vif",
    "ModelSpec",
    "Design",
    "INTERCEPT",
    "Family",
    "Gaussian",
    "Binomial",
    "Poisson",
    "resolve_family",
    "LinearSolution",
    "LinearParams",
    "GLMSolution",
    "GLMParams",
    "MultinomSolution",
    "MultinomParams",
]
