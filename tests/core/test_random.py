"""
Tests for RandomSource.

Validates seed reproducibility, independence of spawned streams, and
the continuing spawn counter.
"""

import numpy as np
import pytest

from pybootreg.core.exceptions import InvalidArgumentError
from pybootreg.core.random import RandomSource


class TestRandomSource:

    def test_same_seed_same_streams(self):
        a = [g.integers(0, 1000, size=5) for g in RandomSource(42).spawn(3)]
        b = [g.integers(0, 1000, size=5) for g in RandomSource(42).spawn(3)]
        for x, y in zip(a, b):
            np.testing.assert_array_equal(x, y)

    def test_different_seeds_differ(self):
        a = RandomSource(1).generator().random(10)
        b = RandomSource(2).generator().random(10)
        assert not np.array_equal(a, b)

    def test_children_differ(self):
        g1, g2 = RandomSource(42).spawn(2)
        assert not np.array_equal(g1.random(10), g2.random(10))

    def test_spawn_counter_continues(self):
        source = RandomSource(42)
        first = source.spawn(1)[0].random(5)
        second = source.spawn(1)[0].random(5)
        assert not np.array_equal(first, second)

    def test_unseeded_entropy_reproduces(self):
        source = RandomSource()
        replay = RandomSource(source.entropy)
        np.testing.assert_array_equal(
            source.generator().random(5), replay.generator().random(5),
        )

    def test_accepts_seed_sequence(self):
        ss = np.random.SeedSequence(7)
        assert RandomSource(ss).seed_sequence is ss

    @pytest.mark.parametrize("seed", [-1, True, 2.5, "7"])
    def test_rejects_bad_seed(self, seed):
        with pytest.raises(InvalidArgumentError) as info:
            RandomSource(seed)
        assert info.value.argument == 'seed'

    def test_coerce(self):
        source = RandomSource(3)
        assert RandomSource.coerce(source) is source
        assert RandomSource.coerce(3).entropy == 3
        assert isinstance(RandomSource.coerce(None), RandomSource)

    def test_spawn_sequences_count(self):
        seqs = RandomSource(0).spawn_sequences(4)
        assert len(seqs) == 4
        assert all(isinstance(s, np.random.SeedSequence) for s in seqs)
