"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np

from pybootreg import DataSource


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def linear_source(rng):
    """y = 2 + 3x - 1.5·[g == 'b'] + noise, with g in {'a', 'b'}."""
    n = 200
    x = rng.standard_normal(n)
    g = rng.choice(['a', 'b'], size=n)
    y = 2.0 + 3.0 * x - 1.5 * (g == 'b') + rng.standard_normal(n) * 0.5
    return DataSource.from_arrays(y=y, x=x, g=g)


@pytest.fixture
def grouped_source(rng):
    """1000 records: response ~ N(0, 1), group in {A, B, C}."""
    n = 1000
    return DataSource.from_arrays(
        response=rng.standard_normal(n),
        group=rng.choice(['A', 'B', 'C'], size=n),
    )


@pytest.fixture
def rare_level_source(rng):
    """Group 'D' appears in exactly one row."""
    n = 200
    group = rng.choice(['A', 'B', 'C'], size=n).astype(object)
    group[17] = 'D'
    y = rng.standard_normal(n) + (group == 'B') * 0.5
    return DataSource.from_arrays(y=y, group=group)
