"""
Public entry points for model-based bootstrap.

boot() validates everything, runs the bootstrap backend and returns a
BootstrapSolution carrying percentile intervals at the requested level.
boot_ci() recomputes intervals of other types or levels from the stored
replicates without refitting anything.
"""

from __future__ import annotations

import logging
import threading
import warnings
from dataclasses import replace
from typing import Mapping, Sequence

from pybootreg.core.datasource import DataSource
from pybootreg.core.exceptions import InvalidArgumentError
from pybootreg.core.random import RandomSource
from pybootreg.core.validation import check_open_unit_interval, check_positive_int
from pybootreg.regression.families import Family
from pybootreg.regression.formula import ModelSpec
from pybootreg.montecarlo._ci import CI_TYPES, compute_intervals
from pybootreg.montecarlo.backends.cpu import CPUBootstrapBackend
from pybootreg.montecarlo.design import BootstrapDesign
from pybootreg.montecarlo.solution import BootstrapSolution

logger = logging.getLogger(__name__)


def boot(
    source: DataSource,
    spec: ModelSpec | str,
    R: int = 999,
    *,
    seed: RandomSource | int | None = None,
    conf: float = 0.95,
    family: str | Family | None = None,
    levels: Mapping[str, tuple[str, ...]] | None = None,
    n_jobs: int = 1,
    timeout: float | None = None,
    abort: threading.Event | None = None,
    min_valid: int = 30,
) -> BootstrapSolution:
    """
    Ordinary nonparametric bootstrap of regression coefficients.

    Draws R resamples of the source rows with replacement, refits the
    model to each, and summarises every coefficient's empirical
    distribution. A resample in which a term is not estimable (for
    instance one that omits every row of a categorical level) keeps its
    other estimates; that term's interval is computed from the
    replicates where it was estimable.

    Args:
        source: The data
        spec: ModelSpec, or an R-style formula string
        R: Number of bootstrap replicates
        seed: RandomSource or integer seed; None draws fresh entropy
        conf: Confidence level for the percentile intervals
        family: None for least squares, otherwise a GLM family
        levels: Pinned categorical levels
        n_jobs: Worker processes; 1 runs in the calling process
        timeout: Seconds after which no new replicates are started
        abort: Event that stops issuing new replicates once set
        min_valid: Terms with fewer valid estimates are flagged unreliable

    Returns:
        BootstrapSolution

    Raises:
        InvalidArgumentError: Bad R, conf, n_jobs, timeout, min_valid,
            empty data or an empty/contradictory spec
        SchemaError: If the spec does not match the data
        DegenerateFitError: If the model is not estimable on the full data

    Example:
        >>> from pybootreg import DataSource, boot
        >>> ds = DataSource.from_file("retail_sales.csv")
        >>> result = boot(ds, "total_amount ~ age + gender", R=999, seed=42)
        >>> result.intervals()["genderMale"]
    """
    design = BootstrapDesign.for_model(
        source, spec, R,
        seed=seed,
        family=family,
        levels=levels,
        conf=conf,
        min_valid=min_valid,
        n_jobs=n_jobs,
        timeout=timeout,
        abort=abort,
    )
    logger.debug(
        "boot: n=%d, k=%d, R=%d, n_jobs=%d",
        design.n, len(design.term_names), design.R, design.n_jobs,
    )

    result = CPUBootstrapBackend().solve(design)
    solution = BootstrapSolution(_result=result, _design=design)

    if solution.R_effective < solution.R:
        warnings.warn(
            f"bootstrap stopped after {solution.R_effective} of {solution.R} "
            f"replicates ({result.info['stop_reason']})",
            RuntimeWarning,
            stacklevel=2,
        )
    unreliable = solution.unreliable_terms
    if unreliable:
        warnings.warn(
            f"fewer than {min_valid} valid estimates for terms {list(unreliable)}; "
            f"their intervals are unreliable",
            RuntimeWarning,
            stacklevel=2,
        )
    return solution


def boot_ci(
    boot_out: BootstrapSolution,
    conf: float = 0.95,
    type: str | Sequence[str] = 'perc',
    min_valid: int | None = None,
) -> BootstrapSolution:
    """
    Confidence intervals from stored bootstrap replicates.

    Args:
        boot_out: Result of boot()
        conf: Confidence level in (0, 1)
        type: 'perc', 'basic', 'norm', 'all', or a list of these
        min_valid: Reliability threshold; defaults to the one used by boot()

    Returns:
        New BootstrapSolution whose ci holds exactly the requested types

    Raises:
        InvalidArgumentError: Bad conf, type, or min_valid
    """
    if not isinstance(boot_out, BootstrapSolution):
        raise InvalidArgumentError(
            f"boot_out must be a BootstrapSolution, got {boot_out.__class__.__name__}",
            argument='boot_out',
        )
    conf = check_open_unit_interval(conf, 'conf')
    types = _resolve_types(type)
    if min_valid is None:
        min_valid = boot_out.min_valid
    min_valid = check_positive_int(min_valid, 'min_valid')

    ci = compute_intervals(
        boot_out.term_names, boot_out.t0, boot_out.t, conf, types, min_valid,
    )

    old = boot_out._result
    params = replace(old.params, ci=ci, ci_conf_level=conf, min_valid=min_valid)
    return BootstrapSolution(
        _result=replace(old, params=params),
        _design=boot_out._design,
    )


def _resolve_types(type: str | Sequence[str]) -> tuple[str, ...]:
    if isinstance(type, str):
        requested = list(CI_TYPES) if type == 'all' else [type]
    else:
        requested = list(type)
    if not requested:
        raise InvalidArgumentError(
            "at least one interval type is required", argument='type', value=type,
        )
    for ci_type in requested:
        if ci_type not in CI_TYPES:
            raise InvalidArgumentError(
                f"unknown interval type {ci_type!r}; valid types: "
                f"{', '.join(CI_TYPES)}, all",
                argument='type', value=ci_type,
            )
    return tuple(dict.fromkeys(requested))
