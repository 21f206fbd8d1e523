"""
Common data structures for the bootstrap.

ReplicateFit is the typed outcome of fitting one resample. BootParams is
the payload wrapped by Result[P] and exposed through BootstrapSolution.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping

import numpy as np
from numpy.typing import NDArray

FitStatus = Literal['full', 'partial', 'failed']


@dataclass(frozen=True)
class ReplicateFit:
    """
    Outcome of fitting the model to one resample.

    status:
        'full'    - every term estimated
        'partial' - design was rank-deficient; ``missing`` lists the
                    inestimable terms, ``estimates`` holds the rest
        'failed'  - the numerical solve raised; nothing was estimated
    """
    index: int
    status: FitStatus
    estimates: Mapping[str, float]
    missing: tuple[str, ...] = ()
    converged: bool = True
    message: str | None = None

    @property
    def is_degenerate(self) -> bool:
        return self.status != 'full'


@dataclass(frozen=True)
class TermInterval:
    """
    Bootstrap confidence interval for one model term.

    n_valid is the number of replicates in which the term was
    estimable. reliable is False when n_valid is below the run's
    min_valid threshold; bounds are NaN when n_valid is zero.
    """
    lower: float
    upper: float
    n_valid: int
    reliable: bool

    def contains(self, value: float) -> bool:
        return bool(self.lower <= value <= self.upper)

    def as_tuple(self) -> tuple[float, float]:
        return (self.lower, self.upper)


@dataclass(frozen=True)
class BootParams:
    """
    Parameter payload for bootstrap results.

    - term_names: model terms, column order of t
    - t0: estimates on the full source data, shape (k,)
    - t: replicate estimates, shape (R_effective, k), NaN where a term
      was absent from that replicate's fit
    - valid_counts: non-NaN count per term, shape (k,)
    - bias: nanmean(t) - t0
    - se: nanstd(t, ddof=1)
    - indices: row indices of each completed resample, shape (R_effective, n)
    - ci: {ci type: {term: TermInterval}}; percentile at the run's conf
      level by default, replaced by boot_ci
    """
    term_names: tuple[str, ...]
    t0: NDArray[np.floating[Any]]
    t: NDArray[np.floating[Any]]
    R: int
    R_effective: int
    valid_counts: NDArray[np.intp]
    bias: NDArray[np.floating[Any]]
    se: NDArray[np.floating[Any]]
    replicates: tuple[ReplicateFit, ...]
    indices: NDArray[np.intp]
    ci: dict[str, dict[str, TermInterval]] | None = None
    ci_conf_level: float | None = None
    min_valid: int = 30
