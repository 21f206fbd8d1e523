"""
Bootstrap confidence intervals with per-term exclusion.

Replicate estimates arrive as an (R, k) array with NaN wherever a term
was not estimable. Each term's interval is computed from that term's
valid values only, so a term absent from some replicates has a smaller
effective sample than the others.

Methods (as in R's boot.ci):
- perc:  [Q(α/2), Q(1-α/2)]
- basic: [2·t0 - Q(1-α/2), 2·t0 - Q(α/2)]
- norm:  (2·t0 - mean(t)) ± z_{1-α/2}·sd(t)

Quantiles use numpy's 'linear' method (R's type 7).
"""

from __future__ import annotations

from typing import Iterable

import numpy as np
from numpy.typing import NDArray
from scipy import stats as sp_stats

from pybootreg.montecarlo._common import TermInterval

CI_TYPES = ('perc', 'basic', 'norm')


def compute_intervals(
    term_names: tuple[str, ...],
    t0: NDArray,
    t: NDArray,
    conf: float,
    types: Iterable[str],
    min_valid: int,
) -> dict[str, dict[str, TermInterval]]:
    """
    Intervals for every term and every requested type.

    Args:
        term_names: Term labels, column order of t
        t0: Full-data estimates, shape (k,)
        t: Replicate estimates with NaN for missing, shape (R, k)
        conf: Confidence level in (0, 1)
        types: Subset of CI_TYPES
        min_valid: Below this many valid estimates a term's interval is
            flagged unreliable

    Returns:
        {type: {term: TermInterval}}
    """
    alpha = 1.0 - conf
    out: dict[str, dict[str, TermInterval]] = {}

    for ci_type in types:
        if ci_type == 'perc':
            fn = _ci_percentile
        elif ci_type == 'basic':
            fn = _ci_basic
        elif ci_type == 'norm':
            fn = _ci_normal
        else:
            raise ValueError(
                f"Unknown CI type: {ci_type!r}. Valid types: {', '.join(CI_TYPES)}"
            )

        intervals: dict[str, TermInterval] = {}
        for j, name in enumerate(term_names):
            column = t[:, j] if t.size else np.empty(0)
            valid = column[np.isfinite(column)]
            n_valid = int(valid.size)
            if n_valid == 0:
                lo, hi = float('nan'), float('nan')
            else:
                lo, hi = fn(float(t0[j]), valid, alpha)
            intervals[name] = TermInterval(
                lower=lo,
                upper=hi,
                n_valid=n_valid,
                reliable=n_valid >= min_valid,
            )
        out[ci_type] = intervals

    return out


def _ci_percentile(t0: float, values: NDArray, alpha: float) -> tuple[float, float]:
    lo, hi = np.quantile(values, [alpha / 2.0, 1.0 - alpha / 2.0], method='linear')
    return float(lo), float(hi)


def _ci_basic(t0: float, values: NDArray, alpha: float) -> tuple[float, float]:
    q_lo, q_hi = np.quantile(values, [alpha / 2.0, 1.0 - alpha / 2.0], method='linear')
    return float(2.0 * t0 - q_hi), float(2.0 * t0 - q_lo)


def _ci_normal(t0: float, values: NDArray, alpha: float) -> tuple[float, float]:
    if values.size < 2:
        return float('nan'), float('nan')
    center = 2.0 * t0 - float(np.mean(values))
    half = sp_stats.norm.ppf(1.0 - alpha / 2.0) * float(np.std(values, ddof=1))
    return center - half, center + half
