"""
Solution wrapper for bootstrap results.

BootstrapSolution wraps Result[BootParams] and provides term-keyed
accessors, the exclusion report, and R-style summary output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from pybootreg.core.result import Result
from pybootreg.montecarlo._common import BootParams, ReplicateFit, TermInterval

if TYPE_CHECKING:
    from pybootreg.montecarlo.design import BootstrapDesign
    from pybootreg.regression.formula import ModelSpec


@dataclass
class BootstrapSolution:
    """
    User-facing bootstrap results.

    Mirrors R's boot object (t0, t, bias, SE) with model terms as
    labels. Columns of t are in term_names order; a NaN entry means the
    term was not estimable in that resample.
    """
    _result: Result[BootParams]
    _design: 'BootstrapDesign'

    # --- Core boot fields ---

    @property
    def t0(self) -> NDArray[np.floating[Any]]:
        """Full-data estimates, shape (k,)."""
        return self._result.params.t0

    @property
    def t(self) -> NDArray[np.floating[Any]]:
        """Replicate estimates, shape (R_effective, k)."""
        return self._result.params.t

    @property
    def R(self) -> int:
        """Number of replicates requested."""
        return self._result.params.R

    @property
    def R_effective(self) -> int:
        """Number of replicates completed."""
        return self._result.params.R_effective

    @property
    def term_names(self) -> tuple[str, ...]:
        return self._result.params.term_names

    @property
    def bias(self) -> NDArray[np.floating[Any]]:
        """mean(t) - t0 over each term's valid values."""
        return self._result.params.bias

    @property
    def se(self) -> NDArray[np.floating[Any]]:
        """sd(t) over each term's valid values."""
        return self._result.params.se

    @property
    def valid_counts(self) -> NDArray[np.intp]:
        return self._result.params.valid_counts

    @property
    def excluded_counts(self) -> dict[str, int]:
        """Replicates in which each term was not estimable."""
        R_eff = self.R_effective
        return {
            name: R_eff - int(count)
            for name, count in zip(self.term_names, self.valid_counts)
        }

    @property
    def replicates(self) -> tuple[ReplicateFit, ...]:
        return self._result.params.replicates

    @property
    def indices(self) -> NDArray[np.intp]:
        """Row indices of each completed resample, shape (R_effective, n)."""
        return self._result.params.indices

    @property
    def degenerate_count(self) -> int:
        return sum(r.is_degenerate for r in self.replicates)

    @property
    def coef(self) -> dict[str, float]:
        """Full-data estimates keyed by term."""
        return dict(zip(self.term_names, self.t0.tolist()))

    @property
    def ci(self) -> dict[str, dict[str, TermInterval]] | None:
        """Intervals keyed by type, then term."""
        return self._result.params.ci

    @property
    def ci_conf_level(self) -> float | None:
        return self._result.params.ci_conf_level

    @property
    def min_valid(self) -> int:
        return self._result.params.min_valid

    def intervals(self, type: str = 'perc') -> dict[str, tuple[float, float]]:
        """
        Term -> (lower, upper) for one interval type.

        Raises:
            KeyError: If that type has not been computed (see boot_ci)
        """
        if self.ci is None or type not in self.ci:
            available = sorted(self.ci) if self.ci else []
            raise KeyError(
                f"No {type!r} intervals computed; available: {available}. "
                f"Use boot_ci(solution, type={type!r})."
            )
        return {name: iv.as_tuple() for name, iv in self.ci[type].items()}

    @property
    def unreliable_terms(self) -> tuple[str, ...]:
        """Terms with fewer than min_valid valid estimates."""
        return tuple(
            name for name, count in zip(self.term_names, self.valid_counts)
            if count < self.min_valid
        )

    # --- Metadata ---

    @property
    def spec(self) -> 'ModelSpec | None':
        return self._design.spec

    @property
    def n(self) -> int:
        return self._design.n

    @property
    def seed_entropy(self) -> int:
        """Entropy of the run's RandomSource; reproduces the run."""
        return self._design.random_source.entropy

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

    # --- Display ---

    def exclusion_report(self) -> list[str]:
        """One line per term that was absent from at least one resample."""
        R_eff = self.R_effective
        return [
            f"{excluded} of {R_eff} resamples excluded term {name}"
            for name, excluded in self.excluded_counts.items()
            if excluded > 0
        ]

    def summary(self) -> str:
        """
        R-style print.boot output with term labels.

        Produces:
            ORDINARY NONPARAMETRIC BOOTSTRAP

            Call: boot(data, total_amount ~ age + gender, R=999)

            Bootstrap Statistics :
                            original       bias    std. error   valid
            (Intercept)    512.34567    1.23456      45.67890     999
            ...
        """
        lines = ["", "ORDINARY NONPARAMETRIC BOOTSTRAP", ""]

        spec = self.spec
        formula = str(spec) if spec is not None else "<matrix>"
        lines.append(f"Call: boot(data, {formula}, R={self.R})")
        if self.R_effective < self.R:
            lines.append(
                f"Stopped early: {self.R_effective} of {self.R} replicates completed"
            )
        lines.append("")

        width = max([12] + [len(name) for name in self.term_names])
        lines.append("Bootstrap Statistics :")
        lines.append(
            f"{'':<{width}s} {'original':>14s} {'bias':>14s} "
            f"{'std. error':>14s} {'valid':>7s}"
        )
        for j, name in enumerate(self.term_names):
            lines.append(
                f"{name:<{width}s} {self.t0[j]:14.5f} {self.bias[j]:14.5f} "
                f"{self.se[j]:14.5f} {int(self.valid_counts[j]):7d}"
            )

        if self.ci:
            conf_pct = f"{(self.ci_conf_level or 0.95) * 100:g}"
            for ci_type, by_term in self.ci.items():
                lines.append("")
                lines.append(f"{conf_pct}% {ci_type} intervals:")
                for name, iv in by_term.items():
                    flag = "" if iv.reliable else "  (unreliable)"
                    lines.append(
                        f"  {name:<{width}s} ({iv.lower:.5f}, {iv.upper:.5f}){flag}"
                    )

        report = self.exclusion_report()
        if report:
            lines.append("")
            lines.extend(report)

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"BootstrapSolution(R={self.R}, R_effective={self.R_effective}, "
            f"k={len(self.term_names)}, backend={self.backend_name!r})"
        )
