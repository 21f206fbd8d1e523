"""
Regression solution types.

Parameter payloads (computed by backends, immutable) and user-facing
solution wrappers that add inference and R-style summaries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING
import numpy as np
from numpy.typing import NDArray
from scipy import stats as sp_stats

from pybootreg.core.result import Result

if TYPE_CHECKING:
    from pybootreg.regression.design import Design


# =====================================================================
# Payloads
# =====================================================================

@dataclass(frozen=True)
class LinearParams:
    """
    Parameter payload for OLS.

    cov_unscaled is (X'X)⁻¹ over estimable columns, NaN elsewhere.
    """
    coefficients: NDArray[np.floating[Any]]
    residuals: NDArray[np.floating[Any]]
    fitted_values: NDArray[np.floating[Any]]
    cov_unscaled: NDArray[np.floating[Any]]
    rss: float
    tss: float
    rank: int
    df_residual: int


@dataclass(frozen=True)
class GLMParams:
    """Parameter payload for a GLM fit by IRLS."""
    coefficients: NDArray[np.floating[Any]]
    fitted_values: NDArray[np.floating[Any]]
    linear_predictor: NDArray[np.floating[Any]]
    residuals_deviance: NDArray[np.floating[Any]]
    residuals_pearson: NDArray[np.floating[Any]]
    residuals_response: NDArray[np.floating[Any]]
    cov_unscaled: NDArray[np.floating[Any]]
    deviance: float
    null_deviance: float
    aic: float
    dispersion: float
    rank: int
    df_residual: int
    df_null: int
    n_iter: int
    converged: bool
    family_name: str
    link_name: str


@dataclass(frozen=True)
class MultinomParams:
    """
    Parameter payload for baseline-category multinomial logit.

    coefficients has shape (K-1, p): one row per non-baseline level.
    """
    coefficients: NDArray[np.floating[Any]]
    standard_errors: NDArray[np.floating[Any]]
    fitted_probabilities: NDArray[np.floating[Any]]
    deviance: float
    aic: float
    n_iter: int
    converged: bool


# =====================================================================
# Shared helpers
# =====================================================================

def _by_term(names: tuple[str, ...], values: NDArray) -> dict[str, float]:
    return {name: float(v) for name, v in zip(names, values)}


def _format_p(p: float) -> str:
    if np.isnan(p):
        return "      NA"
    if p < 2e-16:
        return "  <2e-16"
    return f"{p:8.3g}"


def _signif(p: float) -> str:
    if np.isnan(p):
        return ""
    if p < 0.001:
        return "***"
    if p < 0.01:
        return "**"
    if p < 0.05:
        return "*"
    if p < 0.1:
        return "."
    return ""


def _coef_table(
    names: tuple[str, ...],
    coef: NDArray,
    se: NDArray,
    stat: NDArray,
    p: NDArray,
    stat_label: str,
) -> list[str]:
    width = max([len(n) for n in names] + [12])
    lines = [
        f"{'':<{width}} {'Estimate':>12} {'Std. Error':>12} {stat_label:>9} {'Pr(>|' + stat_label[0] + '|)':>9}",
    ]
    for i, name in enumerate(names):
        if np.isnan(coef[i]):
            lines.append(f"{name:<{width}} {'NA':>12} {'NA':>12} {'NA':>9} {'NA':>9}")
            continue
        lines.append(
            f"{name:<{width}} {coef[i]:12.5g} {se[i]:12.5g} {stat[i]:9.3f} "
            f"{_format_p(p[i]):>9} {_signif(p[i])}"
        )
    lines.append("---")
    lines.append("Signif. codes:  0 '***' 0.001 '**' 0.01 '*' 0.05 '.' 0.1 ' ' 1")
    return lines


# =====================================================================
# Linear
# =====================================================================

@dataclass
class LinearSolution:
    """
    User-facing OLS results.

    Coefficients are available both positionally (``coefficients``)
    and by term name (``coef``). Aliased terms are NaN.
    """
    _result: Result[LinearParams]
    _design: 'Design'

    @property
    def coefficients(self) -> NDArray[np.floating[Any]]:
        return self._result.params.coefficients

    @property
    def term_names(self) -> tuple[str, ...]:
        return self._design.term_names

    @property
    def coef(self) -> dict[str, float]:
        """Coefficient estimate by term name."""
        return _by_term(self.term_names, self.coefficients)

    @property
    def residuals(self) -> NDArray[np.floating[Any]]:
        return self._result.params.residuals

    @property
    def fitted_values(self) -> NDArray[np.floating[Any]]:
        return self._result.params.fitted_values

    @property
    def rss(self) -> float:
        return self._result.params.rss

    @property
    def tss(self) -> float:
        return self._result.params.tss

    @property
    def rank(self) -> int:
        return self._result.params.rank

    @property
    def df_residual(self) -> int:
        return self._result.params.df_residual

    @property
    def r_squared(self) -> float:
        if self.tss == 0:
            return 1.0 if self.rss == 0 else 0.0
        return 1.0 - self.rss / self.tss

    @property
    def adjusted_r_squared(self) -> float:
        n = self._design.n
        df_model = self.rank - (1 if self._design.has_intercept else 0)
        if self.df_residual <= 0 or self.tss == 0:
            return self.r_squared
        denom_df = n - 1 if self._design.has_intercept else n
        return 1.0 - (1.0 - self.r_squared) * denom_df / (denom_df - df_model)

    @property
    def sigma(self) -> float:
        """Residual standard error."""
        if self.df_residual <= 0:
            return float('nan')
        return float(np.sqrt(self.rss / self.df_residual))

    @property
    def f_statistic(self) -> tuple[float, int, int]:
        """(F, numerator df, denominator df) against the intercept-only model."""
        df_model = self.rank - (1 if self._design.has_intercept else 0)
        if df_model <= 0 or self.df_residual <= 0:
            return float('nan'), df_model, self.df_residual
        mss = self.tss - self.rss
        f = (mss / df_model) / (self.rss / self.df_residual)
        return float(f), df_model, self.df_residual

    @property
    def standard_errors(self) -> NDArray[np.floating[Any]]:
        """SE(β) = sqrt(σ² diag((X'X)⁻¹)); NaN for aliased terms."""
        if self.df_residual <= 0:
            return np.full(len(self.coefficients), np.nan)
        sigma_sq = self.rss / self.df_residual
        return np.sqrt(sigma_sq * np.diag(self._result.params.cov_unscaled))

    @property
    def t_statistics(self) -> NDArray[np.floating[Any]]:
        with np.errstate(divide='ignore', invalid='ignore'):
            t = self.coefficients / self.standard_errors
        return np.where(np.isfinite(t), t, np.nan)

    @property
    def p_values(self) -> NDArray[np.floating[Any]]:
        t = self.t_statistics
        if self.df_residual <= 0:
            return np.full(len(t), np.nan)
        return 2.0 * sp_stats.t.sf(np.abs(t), self.df_residual)

    def conf_int(self, level: float = 0.95) -> dict[str, tuple[float, float]]:
        """t-based confidence interval for each term."""
        q = sp_stats.t.ppf(0.5 + level / 2.0, self.df_residual)
        half = q * self.standard_errors
        return {
            name: (float(b - h), float(b + h))
            for name, b, h in zip(self.term_names, self.coefficients, half)
        }

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def summary(self) -> str:
        """R-style summary.lm output."""
        spec = self._design.spec
        lines = []
        if spec is not None:
            lines += ["Call:", f"lm(formula = {spec})", ""]
        r = self.residuals
        q = np.quantile(r, [0.0, 0.25, 0.5, 0.75, 1.0]) if r.size else np.full(5, np.nan)
        lines += [
            "Residuals:",
            f"{'Min':>10} {'1Q':>10} {'Median':>10} {'3Q':>10} {'Max':>10}",
            " ".join(f"{v:10.4g}" for v in q),
            "",
            "Coefficients:",
        ]
        lines += _coef_table(
            self.term_names, self.coefficients, self.standard_errors,
            self.t_statistics, self.p_values, 't value',
        )
        f, df1, df2 = self.f_statistic
        lines += [
            "",
            f"Residual standard error: {self.sigma:.4g} on {self.df_residual} degrees of freedom",
            f"Multiple R-squared:  {self.r_squared:.4f},\tAdjusted R-squared:  {self.adjusted_r_squared:.4f}",
        ]
        if not np.isnan(f):
            p = float(sp_stats.f.sf(f, df1, df2))
            lines.append(
                f"F-statistic: {f:.4g} on {df1} and {df2} DF,  p-value: {_format_p(p).strip()}"
            )
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"LinearSolution(n={self._design.n}, p={self._design.p}, "
            f"rank={self.rank}, r_squared={self.r_squared:.4f})"
        )


# =====================================================================
# GLM
# =====================================================================

@dataclass
class GLMSolution:
    """User-facing GLM results."""
    _result: Result[GLMParams]
    _design: 'Design'

    @property
    def coefficients(self) -> NDArray[np.floating[Any]]:
        return self._result.params.coefficients

    @property
    def term_names(self) -> tuple[str, ...]:
        return self._design.term_names

    @property
    def coef(self) -> dict[str, float]:
        return _by_term(self.term_names, self.coefficients)

    @property
    def fitted_values(self) -> NDArray[np.floating[Any]]:
        return self._result.params.fitted_values

    @property
    def linear_predictor(self) -> NDArray[np.floating[Any]]:
        return self._result.params.linear_predictor

    @property
    def residuals(self) -> NDArray[np.floating[Any]]:
        """Deviance residuals (R's default for residuals.glm)."""
        return self._result.params.residuals_deviance

    @property
    def residuals_pearson(self) -> NDArray[np.floating[Any]]:
        return self._result.params.residuals_pearson

    @property
    def residuals_response(self) -> NDArray[np.floating[Any]]:
        return self._result.params.residuals_response

    @property
    def deviance(self) -> float:
        return self._result.params.deviance

    @property
    def null_deviance(self) -> float:
        return self._result.params.null_deviance

    @property
    def aic(self) -> float:
        return self._result.params.aic

    @property
    def dispersion(self) -> float:
        return self._result.params.dispersion

    @property
    def rank(self) -> int:
        return self._result.params.rank

    @property
    def df_residual(self) -> int:
        return self._result.params.df_residual

    @property
    def df_null(self) -> int:
        return self._result.params.df_null

    @property
    def converged(self) -> bool:
        return self._result.params.converged

    @property
    def n_iter(self) -> int:
        return self._result.params.n_iter

    @property
    def family_name(self) -> str:
        return self._result.params.family_name

    @property
    def link_name(self) -> str:
        return self._result.params.link_name

    @property
    def standard_errors(self) -> NDArray[np.floating[Any]]:
        cov = self._result.params.cov_unscaled
        return np.sqrt(self.dispersion * np.diag(cov))

    @property
    def test_statistics(self) -> NDArray[np.floating[Any]]:
        """z values (fixed dispersion) or t values (estimated)."""
        with np.errstate(divide='ignore', invalid='ignore'):
            z = self.coefficients / self.standard_errors
        return np.where(np.isfinite(z), z, np.nan)

    @property
    def p_values(self) -> NDArray[np.floating[Any]]:
        z = np.abs(self.test_statistics)
        if self.family_name in ('binomial', 'poisson'):
            return 2.0 * sp_stats.norm.sf(z)
        if self.df_residual <= 0:
            return np.full(len(z), np.nan)
        return 2.0 * sp_stats.t.sf(z, self.df_residual)

    def conf_int(self, level: float = 0.95) -> dict[str, tuple[float, float]]:
        """Wald interval on the link scale."""
        q = sp_stats.norm.ppf(0.5 + level / 2.0)
        half = q * self.standard_errors
        return {
            name: (float(b - h), float(b + h))
            for name, b, h in zip(self.term_names, self.coefficients, half)
        }

    def exp_coef(self) -> dict[str, float]:
        """exp(β) per term: odds ratios (logit) or rate ratios (log)."""
        return _by_term(self.term_names, np.exp(self.coefficients))

    odds_ratios = exp_coef
    rate_ratios = exp_coef

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def summary(self) -> str:
        """R-style summary.glm output."""
        spec = self._design.spec
        lines = []
        if spec is not None:
            lines += [
                "Call:",
                f"glm(formula = {spec}, family = {self.family_name}(link = \"{self.link_name}\"))",
                "",
            ]
        label = 'z value' if self.family_name in ('binomial', 'poisson') else 't value'
        lines.append("Coefficients:")
        lines += _coef_table(
            self.term_names, self.coefficients, self.standard_errors,
            self.test_statistics, self.p_values, label,
        )
        lines += [
            "",
            f"(Dispersion parameter for {self.family_name} family taken to be {self.dispersion:.6g})",
            "",
            f"    Null deviance: {self.null_deviance:.2f}  on {self.df_null} degrees of freedom",
            f"Residual deviance: {self.deviance:.2f}  on {self.df_residual} degrees of freedom",
            f"AIC: {self.aic:.2f}",
            "",
            f"Number of Fisher Scoring iterations: {self.n_iter}",
        ]
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"GLMSolution(family={self.family_name!r}, link={self.link_name!r}, "
            f"n={self._design.n}, p={self._design.p}, deviance={self.deviance:.4f})"
        )


# =====================================================================
# Multinomial
# =====================================================================

@dataclass
class MultinomSolution:
    """
    User-facing multinomial logit results.

    Coefficients are log-odds of each non-baseline response level
    against the baseline (first) level.
    """
    _result: Result[MultinomParams]
    _design: 'Design'

    @property
    def coefficients(self) -> NDArray[np.floating[Any]]:
        """Shape (K-1, p)."""
        return self._result.params.coefficients

    @property
    def standard_errors(self) -> NDArray[np.floating[Any]]:
        return self._result.params.standard_errors

    @property
    def term_names(self) -> tuple[str, ...]:
        return self._design.term_names

    @property
    def response_levels(self) -> tuple[str, ...]:
        return self._design.response_levels or ()

    @property
    def baseline(self) -> str:
        return self.response_levels[0]

    @property
    def coef(self) -> dict[str, dict[str, float]]:
        """{response level: {term: estimate}} for non-baseline levels."""
        return {
            level: _by_term(self.term_names, row)
            for level, row in zip(self.response_levels[1:], self.coefficients)
        }

    @property
    def z_values(self) -> NDArray[np.floating[Any]]:
        with np.errstate(divide='ignore', invalid='ignore'):
            z = self.coefficients / self.standard_errors
        return np.where(np.isfinite(z), z, np.nan)

    @property
    def p_values(self) -> NDArray[np.floating[Any]]:
        return 2.0 * sp_stats.norm.sf(np.abs(self.z_values))

    @property
    def fitted_probabilities(self) -> NDArray[np.floating[Any]]:
        """Shape (n, K), columns in response_levels order."""
        return self._result.params.fitted_probabilities

    def predict_class(self) -> NDArray:
        """Most probable response level per observation."""
        levels = np.array(self.response_levels, dtype=object)
        return levels[np.argmax(self.fitted_probabilities, axis=1)]

    @property
    def deviance(self) -> float:
        return self._result.params.deviance

    @property
    def aic(self) -> float:
        return self._result.params.aic

    @property
    def converged(self) -> bool:
        return self._result.params.converged

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def summary(self) -> str:
        """Coefficient blocks per non-baseline level, nnet::multinom style."""
        spec = self._design.spec
        lines = []
        if spec is not None:
            lines += ["Call:", f"multinom(formula = {spec})", ""]
        lines.append(f"Baseline level: {self.baseline}")
        for k, level in enumerate(self.response_levels[1:]):
            lines += ["", f"{level} vs {self.baseline}:"]
            lines += _coef_table(
                self.term_names, self.coefficients[k], self.standard_errors[k],
                self.z_values[k], self.p_values[k], 'z value',
            )[:-2]
        lines += [
            "",
            f"Residual Deviance: {self.deviance:.4f}",
            f"AIC: {self.aic:.4f}",
        ]
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"MultinomSolution(levels={list(self.response_levels)}, "
            f"n={self._design.n}, p={self._design.p}, deviance={self.deviance:.4f})"
        )
