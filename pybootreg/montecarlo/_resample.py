"""
Ordinary nonparametric resampling.

Replicate b draws n row indices uniformly with replacement from
range(n) using its own child stream of the run's RandomSource. The
index sequence of replicate b therefore depends only on the root seed
and b, not on worker count or completion order.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pybootreg.core.random import RandomSource
from pybootreg.core.validation import check_positive_int


def draw_indices(n: int, seed_seq: np.random.SeedSequence) -> NDArray[np.intp]:
    """One resample: n indices in [0, n), with replacement."""
    rng = np.random.default_rng(seed_seq)
    return rng.integers(0, n, size=n, dtype=np.intp)


def resample_indices(
    n: int,
    R: int,
    random_state: RandomSource | int | None = None,
) -> NDArray[np.intp]:
    """
    Draw R independent bootstrap index vectors.

    Args:
        n: Source dataset size (>= 1)
        R: Number of resamples (>= 1)
        random_state: RandomSource, integer seed, or None

    Returns:
        Array of shape (R, n); row b holds the row indices of resample b

    Raises:
        InvalidArgumentError: If n < 1 or R < 1

    Passing the same integer seed reproduces the same indices. Passing
    the same RandomSource object twice continues its spawn counter and
    gives new draws.
    """
    n = check_positive_int(n, 'n')
    R = check_positive_int(R, 'R')
    source = RandomSource.coerce(random_state)

    out = np.empty((R, n), dtype=np.intp)
    for b, seed_seq in enumerate(source.spawn_sequences(R)):
        out[b] = draw_indices(n, seed_seq)
    return out
