"""
Universal DataSource for pybootreg.

DataSource is the "I have data" abstraction. It holds named columns of
equal length, each either numeric (float64) or categorical (strings),
and knows nothing about the models that will consume it.

Usage:
    from pybootreg import DataSource

    ds = DataSource.from_arrays(age=ages, gender=genders, amount=amounts)
    ds = DataSource.from_file("retail_sales.csv")
    ds = DataSource.from_dataframe(df)

    ds.keys()                 # frozenset({'age', 'gender', 'amount'})
    ds['age']                 # float64 array
    ds.levels('gender')       # ('Female', 'Male')
    boot_ds = ds.take(idx)    # resampled rows, same schema
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TYPE_CHECKING
import numpy as np
from numpy.typing import ArrayLike, NDArray

from pybootreg.core.exceptions import ValidationError, DimensionError

if TYPE_CHECKING:
    import pandas as pd

logger = logging.getLogger(__name__)

KIND_NUMERIC = 'numeric'
KIND_CATEGORICAL = 'categorical'
KIND_OTHER = 'other'


@dataclass
class DataSource:
    """
    Column store with a fixed schema. Domain-agnostic.

    Construct via factory classmethods, not directly.

    Every column has the same length. Numeric columns are float64
    arrays; categorical columns are object arrays of str with None for
    missing values; columns of any other kind (dates) are carried along
    but cannot be used as model fields.
    """
    _data: dict[str, NDArray]
    _kinds: dict[str, str]
    _metadata: dict[str, Any] = field(default_factory=dict)

    # === Array Access ===

    def keys(self) -> frozenset[str]:
        """Names of all available columns."""
        return frozenset(self._data.keys())

    @property
    def columns(self) -> tuple[str, ...]:
        """Column names in insertion order."""
        return tuple(self._data.keys())

    def __getitem__(self, key: str) -> NDArray:
        """
        Access a named column.

        Raises:
            KeyError: If key not found, listing the available columns
        """
        if key not in self._data:
            available = sorted(self.keys())
            raise KeyError(
                f"DataSource has no column '{key}'. Available: {available}"
            )
        return self._data[key]

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return self.n_observations

    # === Schema ===

    @property
    def n_observations(self) -> int:
        """Number of records (rows)."""
        return self._metadata.get('n_observations', 0)

    @property
    def metadata(self) -> dict[str, Any]:
        return self._metadata.copy()

    def kind(self, key: str) -> str:
        """'numeric', 'categorical', or 'other'."""
        self[key]
        return self._kinds[key]

    def numeric_fields(self) -> tuple[str, ...]:
        return tuple(k for k in self.columns if self._kinds[k] == KIND_NUMERIC)

    def categorical_fields(self) -> tuple[str, ...]:
        return tuple(k for k in self.columns if self._kinds[k] == KIND_CATEGORICAL)

    def levels(self, key: str) -> tuple[str, ...]:
        """
        Sorted distinct non-missing values of a categorical column.

        The first level is the reference level under treatment coding.
        """
        if self.kind(key) != KIND_CATEGORICAL:
            raise ValidationError(
                f"'{key}' is {self._kinds[key]}, levels() requires a categorical column"
            )
        values = self._data[key]
        present = {v for v in values if v is not None}
        return tuple(sorted(present))

    # === Row operations ===

    def take(self, indices: ArrayLike) -> DataSource:
        """
        New DataSource made of the given rows, in the given order.

        Indices may repeat; this is how a bootstrap resample is
        materialized.
        """
        idx = np.asarray(indices, dtype=np.intp)
        if idx.ndim != 1:
            raise DimensionError(
                f"indices: expected 1D array, got {idx.ndim}D with shape {idx.shape}"
            )
        n = self.n_observations
        if idx.size and (idx.min() < 0 or idx.max() >= n):
            raise ValidationError(
                f"indices: values must lie in [0, {n}), got range "
                f"[{idx.min()}, {idx.max()}]"
            )
        data = {k: v[idx] for k, v in self._data.items()}
        metadata = dict(self._metadata)
        metadata['n_observations'] = int(idx.size)
        metadata['source'] = 'take'
        return DataSource(_data=data, _kinds=dict(self._kinds), _metadata=metadata)

    def to_dataframe(self) -> 'pd.DataFrame':
        """Convert back to a pandas DataFrame (column order preserved)."""
        import pandas as pd
        return pd.DataFrame({k: self._data[k] for k in self.columns})

    # === Factory Methods ===

    @classmethod
    def from_arrays(cls, **columns: ArrayLike) -> DataSource:
        """
        Construct from named 1D array-likes.

        Numeric dtypes (including bool) become float64 columns, string
        and object dtypes become categorical columns.
        """
        if not columns:
            raise ValidationError("from_arrays: at least one column is required")

        storage: dict[str, NDArray] = {}
        kinds: dict[str, str] = {}
        n_obs: int | None = None

        for name, values in columns.items():
            arr = np.asarray(values)
            if arr.ndim != 1:
                raise DimensionError(
                    f"{name}: expected 1D array, got {arr.ndim}D with shape {arr.shape}"
                )
            if n_obs is None:
                n_obs = arr.shape[0]
            elif arr.shape[0] != n_obs:
                raise DimensionError(
                    f"Inconsistent lengths: {name}={arr.shape[0]}, expected {n_obs}"
                )
            storage[name], kinds[name] = _coerce_column(arr)

        return cls(
            _data=storage,
            _kinds=kinds,
            _metadata={'n_observations': n_obs, 'source': 'arrays'},
        )

    @classmethod
    def from_file(cls, path: str | Path, *, columns: list[str] | None = None) -> DataSource:
        """Construct from a delimited text file (CSV or TSV)."""
        import pandas as pd

        path = Path(path)
        suffix = path.suffix.lower()
        if suffix == '.csv':
            df = pd.read_csv(path, usecols=columns)
        elif suffix == '.tsv':
            df = pd.read_csv(path, sep='\t', usecols=columns)
        else:
            raise ValidationError(f"Unknown file format: {suffix}")

        logger.debug("read %d rows x %d columns from %s", len(df), df.shape[1], path)
        return cls.from_dataframe(df, source_path=str(path))

    @classmethod
    def from_dataframe(cls, df: 'pd.DataFrame', *, source_path: str | None = None) -> DataSource:
        """Construct from a pandas DataFrame."""
        from pandas.api import types as ptypes

        storage: dict[str, NDArray] = {}
        kinds: dict[str, str] = {}

        for col in df.columns:
            series = df[col]
            name = str(col)
            if ptypes.is_bool_dtype(series) or ptypes.is_numeric_dtype(series):
                storage[name] = series.to_numpy(dtype=np.float64, na_value=np.nan)
                kinds[name] = KIND_NUMERIC
            elif ptypes.is_datetime64_any_dtype(series):
                storage[name] = series.to_numpy()
                kinds[name] = KIND_OTHER
            else:
                present = series.notna().to_numpy()
                raw = series.to_numpy(dtype=object)
                out = np.empty(len(raw), dtype=object)
                for i, (v, ok) in enumerate(zip(raw, present)):
                    out[i] = str(v) if ok else None
                storage[name] = out
                kinds[name] = KIND_CATEGORICAL

        metadata = {
            'n_observations': len(df),
            'source': 'dataframe',
        }
        if source_path:
            metadata['source_path'] = source_path

        return cls(_data=storage, _kinds=kinds, _metadata=metadata)

    @classmethod
    def build(cls, *args, **kwargs) -> DataSource:
        """
        Convenience factory that dispatches to the appropriate from_* method.

        Examples:
            DataSource.build("data.csv")           # from_file
            DataSource.build(df)                   # from_dataframe
            DataSource.build(x=x, group=g)         # from_arrays
        """
        if args and isinstance(args[0], (str, Path)):
            return cls.from_file(args[0], **kwargs)
        if args and hasattr(args[0], 'columns') and hasattr(args[0], 'iloc'):
            return cls.from_dataframe(args[0], **kwargs)
        return cls.from_arrays(**kwargs)

    def __repr__(self) -> str:
        return (
            f"DataSource(n={self.n_observations}, "
            f"numeric={list(self.numeric_fields())}, "
            f"categorical={list(self.categorical_fields())})"
        )


def _coerce_column(arr: NDArray) -> tuple[NDArray, str]:
    """Classify a raw 1D array and convert it to its storage form."""
    if arr.dtype == np.bool_ or np.issubdtype(arr.dtype, np.number):
        return arr.astype(np.float64), KIND_NUMERIC
    if np.issubdtype(arr.dtype, np.datetime64):
        return arr.copy(), KIND_OTHER
    out = np.empty(arr.shape[0], dtype=object)
    for i, v in enumerate(arr):
        if v is None or (isinstance(v, float) and np.isnan(v)):
            out[i] = None
        else:
            out[i] = str(v)
    return out, KIND_CATEGORICAL
