"""
Shared fixtures for regression tests.
"""

import numpy as np
import pytest

from pybootreg import DataSource


@pytest.fixture
def retail_source():
    """Small hand-checkable dataset with numeric and categorical fields."""
    return DataSource.from_arrays(
        amount=[100.0, 150.0, 90.0, 300.0, 50.0, 500.0, 120.0, 80.0],
        age=[25.0, 34.0, 45.0, 52.0, 23.0, 61.0, 38.0, 29.0],
        gender=['Male', 'Female', 'Male', 'Female', 'Female', 'Male', 'Male', 'Female'],
        category=['Beauty', 'Clothing', 'Electronics', 'Clothing',
                  'Beauty', 'Electronics', 'Clothing', 'Beauty'],
    )


@pytest.fixture
def logistic_source(rng):
    n = 500
    x = rng.standard_normal(n)
    p = 1.0 / (1.0 + np.exp(-(-0.5 + 1.2 * x)))
    y = (rng.random(n) < p).astype(float)
    return DataSource.from_arrays(y=y, x=x)


@pytest.fixture
def poisson_source(rng):
    n = 500
    x = rng.uniform(-1, 1, n)
    y = rng.poisson(np.exp(0.3 + 0.8 * x)).astype(float)
    return DataSource.from_arrays(y=y, x=x)
