"""
Regression Design.

Design turns a DataSource plus a ModelSpec into a numeric design matrix
X, a response y, and the term name of every column of X. It knows it is
building a regression; DataSource doesn't.

Categorical fields use treatment coding: one indicator column per level
except the first (reference) level. Levels can be pinned so that a
subset or resample of the data produces the same columns as the full
data, with all-zero columns for absent levels.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping
import numpy as np
from numpy.typing import ArrayLike, NDArray

from pybootreg.core.datasource import DataSource, KIND_CATEGORICAL, KIND_NUMERIC
from pybootreg.core.exceptions import ValidationError, SchemaError
from pybootreg.core.validation import (
    check_array,
    check_finite,
    check_1d,
    check_2d,
    check_consistent_length,
    check_min_samples,
)
from pybootreg.regression.formula import ModelSpec

INTERCEPT = '(Intercept)'

ResponseKind = Literal['numeric', 'binary', 'categorical']


@dataclass(frozen=True)
class Design:
    """
    Regression design matrix specification.

    Immutable after construction.

    Construction:
        Design.from_datasource(ds, spec)                  # from a ModelSpec
        Design.from_datasource(ds, spec, levels=pinned)   # fixed level sets
        Design.from_arrays(X, y)                          # direct from arrays
    """
    _X: NDArray[np.floating[Any]]
    _y: NDArray[np.floating[Any]]
    _n: int
    _p: int
    _term_names: tuple[str, ...]
    _spec: ModelSpec | None = None
    _levels: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    _response_levels: tuple[str, ...] | None = None

    @classmethod
    def from_datasource(
        cls,
        source: DataSource,
        spec: ModelSpec,
        *,
        levels: Mapping[str, tuple[str, ...]] | None = None,
        response: ResponseKind = 'numeric',
    ) -> Design:
        """
        Build Design from a DataSource and a ModelSpec.

        Args:
            source: The data
            spec: Response, predictors, and interactions
            levels: Optional pinned levels per categorical field. Fields
                not listed take their levels from ``source``.
            response: How to encode y:
                'numeric'     - numeric field used as is
                'binary'      - numeric 0/1 field, or a categorical field
                                with two levels (second level -> 1)
                'categorical' - categorical field coded 0..K-1 by level

        Returns:
            Design ready for fitting

        Raises:
            SchemaError: If a field is missing or has the wrong kind
            ValidationError: If model fields contain missing values
        """
        spec.check_schema(source)
        if source.n_observations < 1:
            raise ValidationError("data must have at least 1 observation")

        resolved = _resolve_levels(source, spec, levels)
        X, names = model_matrix(source, spec, resolved)
        y, response_levels = _encode_response(source, spec.response, response, resolved)

        check_finite(X, 'X')
        check_finite(y, 'y')

        return cls(
            _X=X,
            _y=y,
            _n=X.shape[0],
            _p=X.shape[1],
            _term_names=tuple(names),
            _spec=spec,
            _levels=resolved,
            _response_levels=response_levels,
        )

    @classmethod
    def from_arrays(
        cls,
        X: ArrayLike,
        y: ArrayLike,
        term_names: list[str] | None = None,
    ) -> Design:
        """Build Design directly from arrays (no intercept is added)."""
        X = check_array(X, 'X')
        y = check_array(y, 'y')
        if X.ndim == 1:
            X = X.reshape(-1, 1)
        if y.ndim == 2 and y.shape[1] == 1:
            y = y.ravel()

        check_2d(X, 'X')
        check_1d(y, 'y')
        check_finite(X, 'X')
        check_finite(y, 'y')
        check_consistent_length(X, y, names=('X', 'y'))
        check_min_samples(X, 1, 'X')

        n, p = X.shape
        if term_names is None:
            term_names = [f"x{j + 1}" for j in range(p)]
        if len(term_names) != p:
            raise ValidationError(
                f"term_names: expected {p} names, got {len(term_names)}"
            )
        return cls(_X=X, _y=y, _n=n, _p=p, _term_names=tuple(term_names))

    def take(self, indices: NDArray[np.intp]) -> Design:
        """
        Design over the given rows.

        Row selection commutes with treatment coding under pinned
        levels, so this equals rebuilding from ``source.take(indices)``.
        Inputs were validated when this Design was built.
        """
        X = self._X[indices]
        return Design(
            _X=X,
            _y=self._y[indices],
            _n=X.shape[0],
            _p=self._p,
            _term_names=self._term_names,
            _spec=self._spec,
            _levels=self._levels,
            _response_levels=self._response_levels,
        )

    # === Properties ===

    @property
    def X(self) -> NDArray[np.floating[Any]]:
        """Design matrix (n x p)."""
        return self._X

    @property
    def y(self) -> NDArray[np.floating[Any]]:
        """Response vector (n,)."""
        return self._y

    @property
    def n(self) -> int:
        """Number of observations."""
        return self._n

    @property
    def p(self) -> int:
        """Number of model columns."""
        return self._p

    @property
    def term_names(self) -> tuple[str, ...]:
        return self._term_names

    @property
    def spec(self) -> ModelSpec | None:
        return self._spec

    @property
    def levels(self) -> dict[str, tuple[str, ...]]:
        """Levels used for each categorical field."""
        return dict(self._levels)

    @property
    def response_levels(self) -> tuple[str, ...] | None:
        """Levels of a categorical response, or None for numeric y."""
        return self._response_levels

    @property
    def has_intercept(self) -> bool:
        return INTERCEPT in self._term_names


def model_matrix(
    source: DataSource,
    spec: ModelSpec,
    levels: Mapping[str, tuple[str, ...]],
) -> tuple[NDArray[np.floating[Any]], list[str]]:
    """
    Build the treatment-coded model matrix.

    Column order: intercept, main effects in predictor order, then
    interactions in listed order. Names follow R: ``age``,
    ``genderMale``, ``age:genderMale``.
    """
    n = source.n_observations
    blocks: list[NDArray] = []
    names: list[str] = []

    if spec.intercept:
        blocks.append(np.ones((n, 1), dtype=np.float64))
        names.append(INTERCEPT)

    for name in spec.predictors:
        cols, col_names = _field_block(source, name, levels)
        blocks.append(cols)
        names.extend(col_names)

    for a, b in spec.interactions:
        cols_a, names_a = _field_block(source, a, levels)
        cols_b, names_b = _field_block(source, b, levels)
        for j, na in enumerate(names_a):
            for k, nb in enumerate(names_b):
                blocks.append((cols_a[:, j] * cols_b[:, k]).reshape(-1, 1))
                names.append(f"{na}:{nb}")

    if not blocks:
        return np.empty((n, 0), dtype=np.float64), names
    return np.hstack(blocks), names


def _field_block(
    source: DataSource,
    name: str,
    levels: Mapping[str, tuple[str, ...]],
) -> tuple[NDArray[np.floating[Any]], list[str]]:
    """Model columns contributed by one field."""
    values = source[name]
    if source.kind(name) == KIND_NUMERIC:
        return values.reshape(-1, 1).astype(np.float64), [name]

    field_levels = levels[name]
    contrast = field_levels[1:]
    cols = np.empty((values.shape[0], len(contrast)), dtype=np.float64)
    for j, level in enumerate(contrast):
        cols[:, j] = values == level
    return cols, [f"{name}{level}" for level in contrast]


def _resolve_levels(
    source: DataSource,
    spec: ModelSpec,
    pinned: Mapping[str, tuple[str, ...]] | None,
) -> dict[str, tuple[str, ...]]:
    """Levels for each categorical model field, checked against the data."""
    pinned = dict(pinned or {})
    resolved: dict[str, tuple[str, ...]] = {}
    wanted = list(spec.fields)
    if source.kind(spec.response) == KIND_CATEGORICAL:
        wanted.append(spec.response)

    for name in wanted:
        if source.kind(name) != KIND_CATEGORICAL:
            continue
        values = source[name]
        n_missing = int(sum(v is None for v in values))
        if n_missing:
            raise ValidationError(
                f"{name}: contains {n_missing} missing values; drop or impute "
                f"them before fitting"
            )
        observed = source.levels(name)
        if name in pinned:
            field_levels = tuple(pinned[name])
            unknown = sorted(set(observed) - set(field_levels))
            if unknown:
                raise ValidationError(
                    f"{name}: values {unknown} are not among pinned levels "
                    f"{list(field_levels)}"
                )
        else:
            field_levels = observed
        if len(field_levels) < 1:
            raise ValidationError(f"{name}: categorical field has no levels")
        resolved[name] = field_levels
    return resolved


def _encode_response(
    source: DataSource,
    name: str,
    kind: ResponseKind,
    levels: Mapping[str, tuple[str, ...]],
) -> tuple[NDArray[np.floating[Any]], tuple[str, ...] | None]:
    """Encode the response column according to the model family."""
    values = source[name]
    field_kind = source.kind(name)

    if kind == 'numeric':
        if field_kind != KIND_NUMERIC:
            raise SchemaError(
                f"response '{name}' is categorical; a numeric response is required",
                field=name,
            )
        return values.astype(np.float64), None

    if kind == 'binary':
        if field_kind == KIND_NUMERIC:
            finite = values[np.isfinite(values)]
            if not np.all((finite == 0) | (finite == 1)):
                raise SchemaError(
                    f"response '{name}' must be 0/1 for a binary model",
                    field=name,
                )
            return values.astype(np.float64), None
        response_levels = levels[name]
        if len(response_levels) != 2:
            raise SchemaError(
                f"response '{name}' has {len(response_levels)} levels "
                f"{list(response_levels)}; a binary model needs exactly 2",
                field=name,
            )
        return (values == response_levels[1]).astype(np.float64), response_levels

    if kind == 'categorical':
        if field_kind != KIND_CATEGORICAL:
            raise SchemaError(
                f"response '{name}' is numeric; a categorical response is required",
                field=name,
            )
        response_levels = levels[name]
        if len(response_levels) < 2:
            raise SchemaError(
                f"response '{name}' needs at least 2 levels, got {list(response_levels)}",
                field=name,
            )
        lookup = {level: code for code, level in enumerate(response_levels)}
        codes = np.array([lookup[v] for v in values], dtype=np.float64)
        return codes, response_levels

    raise ValueError(f"Unknown response kind: {kind!r}")
