"""
CPU backend for model-based bootstrap.

Runs the three stages of a bootstrap once each:

    sampling     R index vectors, one child random stream per replicate
    fitting      one model fit per resample, in-process or on a Pool
    aggregating  bias, SE, valid counts, percentile intervals

Fitting honours BootstrapDesign.timeout and BootstrapDesign.abort
between replicates. When either trips, no further replicates are
issued and the run finishes with the replicates completed so far.
"""

from __future__ import annotations

import logging
from multiprocessing import Pool
from typing import Any, Iterator

import numpy as np
from numpy.typing import NDArray

from pybootreg.core.result import Result
from pybootreg.core.compute.timing import Timer
from pybootreg.core.exceptions import DegenerateFitError
from pybootreg.montecarlo._common import BootParams, ReplicateFit
from pybootreg.montecarlo._ci import compute_intervals
from pybootreg.montecarlo._replicate import fit_replicate
from pybootreg.montecarlo._resample import resample_indices
from pybootreg.montecarlo.design import BootstrapDesign
from pybootreg.regression.design import Design
from pybootreg.regression.families import Family

logger = logging.getLogger(__name__)

# Per-process state for pool workers, set once by _init_worker so the
# design matrix is pickled once per worker instead of once per task.
_WORKER: dict[str, Any] = {}


def _init_worker(design: Design, family: Family | None) -> None:
    _WORKER['design'] = design
    _WORKER['family'] = family


def _fit_task(task: tuple[int, NDArray[np.intp]]) -> ReplicateFit:
    b, indices = task
    return fit_replicate(_WORKER['design'], indices, _WORKER['family'], b)


class CPUBootstrapBackend:
    """
    CPU backend for ordinary nonparametric bootstrap of a regression.

    Output does not depend on n_jobs: indices come from per-replicate
    streams and replicates are re-ordered by index before aggregation.
    """

    @property
    def name(self) -> str:
        return 'cpu_bootstrap'

    def solve(self, design: BootstrapDesign) -> Result[BootParams]:
        """Run the bootstrap and return Result[BootParams]."""
        timer = Timer()
        timer.start()

        reg = design.design
        names = reg.term_names
        n, R = reg.n, design.R

        with timer.section('t0_computation'):
            full = fit_replicate(reg, np.arange(n), design.family, -1)
            if full.is_degenerate:
                raise DegenerateFitError(
                    f"Model is not estimable on the full data; terms "
                    f"{list(full.missing)} are aliased. Remove them from the "
                    f"spec before bootstrapping.",
                    missing_terms=full.missing,
                    rank=len(names) - len(full.missing),
                    expected_rank=len(names),
                )
            t0 = np.array([full.estimates[name] for name in names], dtype=np.float64)

        with timer.section('sampling'):
            indices = resample_indices(n, R, design.random_source)

        with timer.section('fitting'):
            fits, stop_reason = self._fit_all(design, indices, timer)

        with timer.section('aggregating'):
            fits.sort(key=lambda f: f.index)
            R_eff = len(fits)
            t = np.full((R_eff, len(names)), np.nan, dtype=np.float64)
            for row, fit in enumerate(fits):
                for j, name in enumerate(names):
                    value = fit.estimates.get(name)
                    if value is not None:
                        t[row, j] = value

            valid_counts, mean, se = _column_moments(t)
            bias = mean - t0
            ci = compute_intervals(
                names, t0, t, design.conf, ('perc',), design.min_valid,
            )

        timer.stop()

        warnings_list = _collect_warnings(
            names, fits, R, valid_counts, design.min_valid, stop_reason,
        )
        n_degenerate = sum(f.is_degenerate for f in fits)
        logger.info(
            "bootstrap finished: %d/%d replicates, %d degenerate, %.3fs",
            R_eff, R, n_degenerate, timer.result()['total_seconds'],
        )

        params = BootParams(
            term_names=names,
            t0=t0,
            t=t,
            R=R,
            R_effective=R_eff,
            valid_counts=valid_counts,
            bias=bias,
            se=se,
            replicates=tuple(fits),
            indices=indices[[f.index for f in fits]],
            ci=ci,
            ci_conf_level=design.conf,
            min_valid=design.min_valid,
        )

        return Result(
            params=params,
            info={
                'sim': 'ordinary',
                'n': n,
                'k': len(names),
                'n_jobs': design.n_jobs,
                'seed_entropy': design.random_source.entropy,
                'completed': R_eff,
                'stopped_early': stop_reason is not None,
                'stop_reason': stop_reason,
                'n_degenerate': n_degenerate,
                'n_failed': sum(f.status == 'failed' for f in fits),
                'family': design.family.name if design.family is not None else None,
            },
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(warnings_list),
        )

    def _fit_all(
        self,
        design: BootstrapDesign,
        indices: NDArray[np.intp],
        timer: Timer,
    ) -> tuple[list[ReplicateFit], str | None]:
        """Fit every resample until done, timed out, or aborted."""
        R = indices.shape[0]
        fits: list[ReplicateFit] = []
        step = max(1, R // 10)

        def stop_reason() -> str | None:
            if design.abort is not None and design.abort.is_set():
                return 'aborted'
            if design.timeout is not None and timer.elapsed() > design.timeout:
                return 'timeout'
            return None

        if design.n_jobs == 1:
            for b in range(R):
                reason = stop_reason()
                if reason is not None:
                    return fits, reason
                fits.append(fit_replicate(design.design, indices[b], design.family, b))
                if (b + 1) % step == 0:
                    logger.debug("replicate %d/%d", b + 1, R)
            return fits, None

        reason = stop_reason()
        if reason is not None:
            return fits, reason

        chunksize = max(1, R // (design.n_jobs * 8))
        tasks: Iterator[tuple[int, NDArray[np.intp]]] = (
            (b, indices[b]) for b in range(R)
        )
        with Pool(
            design.n_jobs,
            initializer=_init_worker,
            initargs=(design.design, design.family),
        ) as pool:
            for fit in pool.imap_unordered(_fit_task, tasks, chunksize=chunksize):
                fits.append(fit)
                if len(fits) % step == 0:
                    logger.debug("replicate %d/%d", len(fits), R)
                reason = stop_reason()
                if reason is not None:
                    break
        if reason is not None and len(fits) == R:
            reason = None
        return fits, reason


def _column_moments(t: NDArray) -> tuple[NDArray[np.intp], NDArray, NDArray]:
    """Valid counts, NaN-aware means and sample SDs per column."""
    valid = np.isfinite(t)
    counts = valid.sum(axis=0).astype(np.intp)
    filled = np.where(valid, t, 0.0)
    with np.errstate(invalid='ignore', divide='ignore'):
        mean = np.where(counts > 0, filled.sum(axis=0) / counts, np.nan)
        dev = np.where(valid, t - mean, 0.0)
        var = np.where(counts > 1, (dev ** 2).sum(axis=0) / (counts - 1), np.nan)
    return counts, mean, np.sqrt(var)


def _collect_warnings(
    names: tuple[str, ...],
    fits: list[ReplicateFit],
    R: int,
    valid_counts: NDArray[np.intp],
    min_valid: int,
    stop_reason: str | None,
) -> list[str]:
    out: list[str] = []
    R_eff = len(fits)
    if stop_reason is not None:
        out.append(
            f"bootstrap stopped after {R_eff} of {R} replicates ({stop_reason})"
        )
    n_failed = sum(f.status == 'failed' for f in fits)
    if n_failed:
        out.append(f"{n_failed} of {R_eff} replicate fits failed numerically")
    n_unconverged = sum(not f.converged and f.status != 'failed' for f in fits)
    if n_unconverged:
        out.append(f"{n_unconverged} of {R_eff} replicate fits did not converge")
    for name, count in zip(names, valid_counts):
        excluded = R_eff - int(count)
        if excluded:
            out.append(f"{excluded} of {R_eff} resamples excluded term {name}")
        if count < min_valid:
            out.append(
                f"term {name}: only {int(count)} valid estimates "
                f"(min_valid={min_valid}); interval unreliable"
            )
    return out
