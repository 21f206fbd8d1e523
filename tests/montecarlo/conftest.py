"""
Shared fixtures for bootstrap tests.
"""

import threading

import numpy as np
import pytest

from pybootreg import DataSource


class CountdownEvent(threading.Event):
    """Reports set after a fixed number of checks."""

    def __init__(self, checks_before_set: int):
        super().__init__()
        self._remaining = checks_before_set

    def is_set(self) -> bool:
        if self._remaining <= 0:
            return True
        self._remaining -= 1
        return False


@pytest.fixture
def countdown_event():
    return CountdownEvent


@pytest.fixture
def null_source(rng):
    """y independent of x."""
    n = 150
    return DataSource.from_arrays(y=rng.standard_normal(n), x=rng.standard_normal(n))
