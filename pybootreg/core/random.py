"""
Explicit random state for resampling runs.

A RandomSource is created once per analysis run and passed to whatever
needs randomness. Child streams are derived with SeedSequence.spawn, so
replicate b always sees the same stream no matter which worker runs it
or in which order replicates complete.
"""

from __future__ import annotations

import numbers

import numpy as np

from pybootreg.core.exceptions import InvalidArgumentError


class RandomSource:
    """
    Seedable root of a tree of independent random streams.

    Args:
        seed: Integer seed, an existing SeedSequence, or None for fresh
            OS entropy. The resolved entropy is kept so an unseeded run
            can still be reproduced from ``source.entropy``.

    Usage:
        source = RandomSource(42)
        streams = source.spawn(1000)     # one Generator per replicate
        rng = source.generator()         # a single Generator
    """

    def __init__(self, seed: int | np.random.SeedSequence | None = None):
        if isinstance(seed, np.random.SeedSequence):
            self._seed_seq = seed
            return
        if seed is not None and (
            isinstance(seed, bool)
            or not isinstance(seed, numbers.Integral)
            or seed < 0
        ):
            raise InvalidArgumentError(
                f"seed must be a non-negative integer or None, got {seed!r}",
                argument='seed',
                value=seed,
            )
        self._seed_seq = np.random.SeedSequence(None if seed is None else int(seed))

    @classmethod
    def coerce(cls, random_state: RandomSource | int | None) -> RandomSource:
        """Accept a RandomSource, an int seed, or None."""
        if isinstance(random_state, RandomSource):
            return random_state
        return cls(random_state)

    @property
    def entropy(self) -> int:
        """Entropy of the root SeedSequence (reproduces the whole run)."""
        return self._seed_seq.entropy

    @property
    def seed_sequence(self) -> np.random.SeedSequence:
        return self._seed_seq

    def generator(self) -> np.random.Generator:
        """A Generator over the root stream."""
        return np.random.default_rng(self._seed_seq)

    def spawn_sequences(self, n: int) -> list[np.random.SeedSequence]:
        """
        n child SeedSequences.

        Picklable, so they can be shipped to worker processes.
        Successive calls continue the spawn counter and return new
        children.
        """
        return self._seed_seq.spawn(n)

    def spawn(self, n: int) -> list[np.random.Generator]:
        """n independent child Generators."""
        return [np.random.default_rng(s) for s in self.spawn_sequences(n)]

    def __repr__(self) -> str:
        return f"RandomSource(entropy={self.entropy})"
