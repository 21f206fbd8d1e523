"""
Design for model-based bootstrap.

BootstrapDesign captures every tunable of a bootstrap run, validated
once at construction. It owns the full-data regression Design; each
replicate fits a row selection of it, so resamples keep the source's
categorical levels and term layout.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Mapping

from pybootreg.core.datasource import DataSource
from pybootreg.core.exceptions import InvalidArgumentError
from pybootreg.core.random import RandomSource
from pybootreg.core.validation import check_positive_int, check_open_unit_interval
from pybootreg.regression.design import Design
from pybootreg.regression.families import Family, resolve_family
from pybootreg.regression.formula import ModelSpec


@dataclass(frozen=True)
class BootstrapDesign:
    """
    Frozen design for bootstrap resampling of a regression model.

    Attributes:
        design: Regression design over the full source data.
        family: GLM family, or None for least squares.
        R: Number of bootstrap replicates requested.
        random_source: Root of the per-replicate random streams.
        conf: Confidence level for the default percentile intervals.
        min_valid: Minimum valid estimates for a term's interval to be
            considered reliable.
        n_jobs: Worker processes; 1 runs in the calling process.
        timeout: Seconds after which no new replicates are issued.
        abort: Event that, once set, stops issuing new replicates.
    """
    design: Design
    family: Family | None
    R: int
    random_source: RandomSource
    conf: float
    min_valid: int
    n_jobs: int
    timeout: float | None
    abort: threading.Event | None

    @classmethod
    def for_model(
        cls,
        source: DataSource,
        spec: ModelSpec | str,
        R: int = 999,
        *,
        seed: RandomSource | int | None = None,
        family: str | Family | None = None,
        levels: Mapping[str, tuple[str, ...]] | None = None,
        conf: float = 0.95,
        min_valid: int = 30,
        n_jobs: int = 1,
        timeout: float | None = None,
        abort: threading.Event | None = None,
    ) -> BootstrapDesign:
        """
        Create a bootstrap design with validation.

        Every check runs before any sampling starts.

        Raises:
            InvalidArgumentError: Non-positive R, min_valid, or n_jobs;
                conf outside (0, 1); negative timeout; empty data; empty
                or contradictory spec
            SchemaError: If the spec does not match the data
        """
        R = check_positive_int(R, 'R')
        conf = check_open_unit_interval(conf, 'conf')
        min_valid = check_positive_int(min_valid, 'min_valid')
        n_jobs = check_positive_int(n_jobs, 'n_jobs')
        if timeout is not None and not timeout > 0:
            raise InvalidArgumentError(
                f"timeout must be > 0 seconds, got {timeout}",
                argument='timeout', value=timeout,
            )
        if source.n_observations < 1:
            raise InvalidArgumentError(
                f"data must have at least 1 observation, got {source.n_observations}",
                argument='source', value=source.n_observations,
            )

        if isinstance(spec, str):
            spec = ModelSpec.parse(spec)
        fam = resolve_family(family) if family is not None else None
        response_kind = fam.response_kind if fam is not None else 'numeric'
        design = Design.from_datasource(
            source, spec, levels=levels, response=response_kind,
        )
        if fam is not None:
            fam.check_response(design.y)

        return cls(
            design=design,
            family=fam,
            R=R,
            random_source=RandomSource.coerce(seed),
            conf=conf,
            min_valid=min_valid,
            n_jobs=n_jobs,
            timeout=timeout,
            abort=abort,
        )

    @property
    def n(self) -> int:
        return self.design.n

    @property
    def term_names(self) -> tuple[str, ...]:
        return self.design.term_names

    @property
    def spec(self) -> ModelSpec | None:
        return self.design.spec
