"""
Model specifications.

A ModelSpec names the response, the predictor fields, and pairwise
interactions explicitly. It is validated twice: structurally when built,
and against a DataSource schema before any fitting starts.

    spec = ModelSpec('amount', ['age', 'gender'], interactions=[('age', 'gender')])
    spec = ModelSpec.parse('amount ~ age * gender')      # same thing
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, TYPE_CHECKING

from pybootreg.core.exceptions import InvalidArgumentError, SchemaError

if TYPE_CHECKING:
    from pybootreg.core.datasource import DataSource

_NAME = re.compile(r'^[^~+*:]+$')


@dataclass(frozen=True)
class ModelSpec:
    """
    Response, predictors, and pairwise interactions.

    Attributes:
        response: Response field name.
        predictors: Main-effect fields, in model order.
        interactions: (a, b) field pairs. Each pair contributes the
            products of a's and b's model columns.
        intercept: Whether the model has an intercept column.
    """
    response: str
    predictors: tuple[str, ...] = ()
    interactions: tuple[tuple[str, str], ...] = ()
    intercept: bool = True

    def __init__(
        self,
        response: str,
        predictors: Iterable[str] = (),
        interactions: Iterable[tuple[str, str]] = (),
        intercept: bool = True,
    ):
        if isinstance(predictors, str):
            predictors = (predictors,)
        object.__setattr__(self, 'response', response)
        object.__setattr__(self, 'predictors', tuple(predictors))
        object.__setattr__(
            self, 'interactions', tuple(tuple(pair) for pair in interactions)
        )
        object.__setattr__(self, 'intercept', bool(intercept))
        self._validate()

    def _validate(self) -> None:
        if not isinstance(self.response, str) or not self.response.strip():
            raise InvalidArgumentError(
                "response must be a non-empty field name",
                argument='response', value=self.response,
            )
        if not self.intercept and not self.predictors and not self.interactions:
            raise InvalidArgumentError(
                "model has no terms: no intercept, predictors, or interactions",
                argument='predictors', value=self.predictors,
            )
        if len(set(self.predictors)) != len(self.predictors):
            dupes = sorted({p for p in self.predictors if self.predictors.count(p) > 1})
            raise InvalidArgumentError(
                f"predictors listed more than once: {dupes}",
                argument='predictors', value=self.predictors,
            )
        if self.response in self.predictors:
            raise InvalidArgumentError(
                f"response '{self.response}' also appears as a predictor",
                argument='predictors', value=self.predictors,
            )

        seen: set[frozenset[str]] = set()
        for pair in self.interactions:
            if len(pair) != 2:
                raise InvalidArgumentError(
                    f"interaction must name exactly two fields, got {pair!r}",
                    argument='interactions', value=pair,
                )
            a, b = pair
            if a == b:
                raise InvalidArgumentError(
                    f"interaction of '{a}' with itself",
                    argument='interactions', value=pair,
                )
            if self.response in pair:
                raise InvalidArgumentError(
                    f"response '{self.response}' appears in interaction {pair!r}",
                    argument='interactions', value=pair,
                )
            key = frozenset(pair)
            if key in seen:
                raise InvalidArgumentError(
                    f"interaction {pair!r} listed more than once",
                    argument='interactions', value=pair,
                )
            seen.add(key)

    # === Convenience ===

    @classmethod
    def parse(cls, formula: str) -> ModelSpec:
        """
        Build a spec from a small R-style formula.

        Supported: ``y ~ a + b``, ``a:b`` (interaction only), ``a * b``
        (a + b + a:b), ``- 1`` or ``+ 0`` (no intercept), ``y ~ 1``.
        Backticks quote names containing spaces.
        """
        if formula.count('~') != 1:
            raise InvalidArgumentError(
                f"formula must contain exactly one '~', got {formula!r}",
                argument='formula', value=formula,
            )
        lhs, rhs = (part.strip() for part in formula.split('~'))
        response = _unquote(lhs)

        intercept = True
        predictors: list[str] = []
        interactions: list[tuple[str, str]] = []

        rhs = re.sub(r'\s*-\s*1\b', ' + __no_intercept__', rhs)
        rhs = rhs.strip().removeprefix('+').strip()
        for raw in (t.strip() for t in rhs.split('+')):
            if not raw:
                raise InvalidArgumentError(
                    f"empty term in formula {formula!r}",
                    argument='formula', value=formula,
                )
            if raw == '__no_intercept__' or raw == '0':
                intercept = False
            elif raw == '1':
                intercept = True
            elif '*' in raw:
                a, b = _split_pair(raw, '*', formula)
                for name in (a, b):
                    if name not in predictors:
                        predictors.append(name)
                interactions.append((a, b))
            elif ':' in raw:
                interactions.append(_split_pair(raw, ':', formula))
            else:
                name = _unquote(raw)
                if name not in predictors:
                    predictors.append(name)

        return cls(response, predictors, interactions, intercept=intercept)

    @property
    def fields(self) -> tuple[str, ...]:
        """Every predictor-side field, main effects first, no repeats."""
        out = list(self.predictors)
        for a, b in self.interactions:
            for name in (a, b):
                if name not in out:
                    out.append(name)
        return tuple(out)

    def check_schema(self, source: 'DataSource') -> None:
        """
        Verify every field exists and is numeric or categorical.

        Raises:
            SchemaError: naming the first offending field
        """
        available = tuple(sorted(source.keys()))
        for name in (self.response,) + self.fields:
            if name not in source:
                raise SchemaError(
                    f"field '{name}' not found in data. Available: {list(available)}",
                    field=name, available=available,
                )
            kind = source.kind(name)
            if kind not in ('numeric', 'categorical'):
                raise SchemaError(
                    f"field '{name}' has kind '{kind}'; model fields must be "
                    f"numeric or categorical",
                    field=name, available=available,
                )

    def __str__(self) -> str:
        rhs = [_quote(p) for p in self.predictors]
        rhs += [f"{_quote(a)}:{_quote(b)}" for a, b in self.interactions]
        if not self.intercept:
            rhs.append('0')
        elif not rhs:
            rhs.append('1')
        return f"{_quote(self.response)} ~ {' + '.join(rhs)}"


def _unquote(token: str) -> str:
    token = token.strip()
    if token.startswith('`') and token.endswith('`') and len(token) > 1:
        return token[1:-1]
    if not token or not _NAME.match(token):
        raise InvalidArgumentError(
            f"invalid field name {token!r}", argument='formula', value=token,
        )
    return token


def _quote(name: str) -> str:
    return f"`{name}`" if ' ' in name else name


def _split_pair(raw: str, op: str, formula: str) -> tuple[str, str]:
    parts = raw.split(op)
    if len(parts) != 2:
        raise InvalidArgumentError(
            f"only pairwise interactions are supported, got {raw!r} in {formula!r}",
            argument='formula', value=formula,
        )
    return _unquote(parts[0]), _unquote(parts[1])
