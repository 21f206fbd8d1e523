"""
Tests for model-based bootstrap.

Covers shapes and consistency with the full-data fit, seed and worker
count reproducibility, per-term exclusion for resamples that lose a
categorical level, early stopping, and argument validation.
"""

import threading
import warnings

import numpy as np
import pytest

from pybootreg import DataSource, boot, fit
from pybootreg.core.exceptions import (
    DegenerateFitError,
    InvalidArgumentError,
    SchemaError,
)
from pybootreg.montecarlo import BootstrapSolution, ReplicateFit


# ---------------------------------------------------------------------------
# Basics
# ---------------------------------------------------------------------------

class TestOrdinaryBootstrap:

    def test_shapes_and_t0(self, linear_source):
        result = boot(linear_source, 'y ~ x + g', R=200, seed=42)
        full = fit(linear_source, 'y ~ x + g')

        assert isinstance(result, BootstrapSolution)
        assert result.term_names == ('(Intercept)', 'x', 'gb')
        assert result.t.shape == (200, 3)
        assert result.R == 200
        assert result.R_effective == 200
        assert result.indices.shape == (200, 200)
        assert len(result.replicates) == 200
        np.testing.assert_allclose(result.t0, full.coefficients, rtol=1e-10)
        assert result.coef['x'] == pytest.approx(full.coef['x'])

    def test_mean_approaches_full_fit(self, linear_source):
        result = boot(linear_source, 'y ~ x + g', R=1000, seed=1)
        assert np.all(np.abs(result.bias) < 0.2 * result.se)

    def test_se_close_to_model_se(self, linear_source):
        result = boot(linear_source, 'y ~ x + g', R=1000, seed=2)
        model_se = fit(linear_source, 'y ~ x + g').standard_errors
        np.testing.assert_allclose(result.se, model_se, rtol=0.25)

    def test_replicate_matches_refit(self, linear_source):
        result = boot(linear_source, 'y ~ x + g', R=5, seed=3)
        idx = result.indices[4]
        refit = fit(linear_source.take(idx), 'y ~ x + g')
        np.testing.assert_allclose(result.t[4], refit.coefficients, rtol=1e-8)

    def test_default_percentile_intervals(self, linear_source):
        result = boot(linear_source, 'y ~ x + g', R=300, seed=4, conf=0.9)
        assert set(result.ci) == {'perc'}
        assert result.ci_conf_level == 0.9
        intervals = result.intervals()
        assert set(intervals) == set(result.term_names)
        for j, name in enumerate(result.term_names):
            lo, hi = intervals[name]
            assert lo <= hi
            assert lo == pytest.approx(np.quantile(result.t[:, j], 0.05))
            assert hi == pytest.approx(np.quantile(result.t[:, j], 0.95))

    def test_intervals_missing_type(self, linear_source):
        result = boot(linear_source, 'y ~ x', R=50, seed=0)
        with pytest.raises(KeyError, match="boot_ci"):
            result.intervals('norm')

    def test_info_and_timing(self, linear_source):
        result = boot(linear_source, 'y ~ x', R=50, seed=0)
        assert result.backend_name == 'cpu_bootstrap'
        assert result.info['completed'] == 50
        assert result.info['stopped_early'] is False
        assert result.info['n'] == 200
        for section in ('t0_computation', 'sampling', 'fitting', 'aggregating'):
            assert section in result.timing

    def test_summary(self, linear_source):
        result = boot(linear_source, 'y ~ x + g', R=100, seed=0)
        text = result.summary()
        assert "ORDINARY NONPARAMETRIC BOOTSTRAP" in text
        assert "boot(data, y ~ x + g, R=100)" in text
        assert "95% perc intervals:" in text
        assert "gb" in text
        assert "BootstrapSolution(R=100" in repr(result)

    def test_glm_family(self, rng):
        n = 300
        x = rng.standard_normal(n)
        y = (rng.random(n) < 1 / (1 + np.exp(-x))).astype(float)
        ds = DataSource.from_arrays(y=y, x=x)
        result = boot(ds, 'y ~ x', R=100, seed=0, family='binomial')
        full = fit(ds, 'y ~ x', family='binomial')
        np.testing.assert_allclose(result.t0, full.coefficients, rtol=1e-6)
        assert result.info['family'] == 'binomial'
        assert np.all(result.valid_counts == 100)


# ---------------------------------------------------------------------------
# Reproducibility
# ---------------------------------------------------------------------------

class TestReproducibility:

    def test_same_seed_identical(self, linear_source):
        a = boot(linear_source, 'y ~ x + g', R=100, seed=42)
        b = boot(linear_source, 'y ~ x + g', R=100, seed=42)
        np.testing.assert_array_equal(a.t, b.t)
        np.testing.assert_array_equal(a.indices, b.indices)

    def test_different_seeds_differ(self, linear_source):
        a = boot(linear_source, 'y ~ x + g', R=100, seed=1)
        b = boot(linear_source, 'y ~ x + g', R=100, seed=2)
        assert not np.array_equal(a.t, b.t)

    def test_unseeded_run_replays_from_entropy(self, linear_source):
        a = boot(linear_source, 'y ~ x', R=30)
        b = boot(linear_source, 'y ~ x', R=30, seed=a.seed_entropy)
        np.testing.assert_array_equal(a.t, b.t)

    def test_worker_count_does_not_change_results(self, linear_source):
        seq = boot(linear_source, 'y ~ x + g', R=60, seed=11, n_jobs=1)
        par = boot(linear_source, 'y ~ x + g', R=60, seed=11, n_jobs=2)
        np.testing.assert_array_equal(seq.t, par.t)
        np.testing.assert_array_equal(seq.indices, par.indices)
        assert [r.index for r in par.replicates] == list(range(60))


# ---------------------------------------------------------------------------
# Categorical levels and per-term exclusion
# ---------------------------------------------------------------------------

class TestGroupedResponse:

    def test_three_groups(self, grouped_source):
        result = boot(grouped_source, 'response ~ group', R=2000, seed=42)
        assert result.term_names == ('(Intercept)', 'groupB', 'groupC')
        assert result.t.shape == (2000, 3)
        assert result.degenerate_count == 0
        assert result.exclusion_report() == []
        intervals = result.intervals()
        assert len(intervals) == 3
        # response does not depend on group, and its mean is 0
        for name, (lo, hi) in intervals.items():
            assert lo <= hi
            assert 0.05 < hi - lo < 0.5
            assert lo <= result.coef[name] <= hi
            assert lo <= 0.0 <= hi


class TestRareLevel:

    def test_exclusion_counts(self, rare_level_source):
        result = boot(rare_level_source, 'y ~ group', R=500, seed=42)
        excluded = result.excluded_counts
        assert result.term_names == ('(Intercept)', 'groupB', 'groupC', 'groupD')
        assert excluded['groupD'] > 0
        assert excluded['(Intercept)'] == 0
        assert excluded['groupB'] == 0
        assert excluded['groupD'] + result.valid_counts[3] == 500
        # P(row absent from a resample) = (1 - 1/n)^n ~ 0.37 for n = 200
        assert 120 < excluded['groupD'] < 250

    def test_intervals_still_valid(self, rare_level_source):
        result = boot(rare_level_source, 'y ~ group', R=500, seed=42)
        for name, interval in result.ci['perc'].items():
            assert interval.lower <= interval.upper
            assert interval.reliable
        assert result.ci['perc']['groupD'].n_valid == result.valid_counts[3]

    def test_partial_replicates_recorded(self, rare_level_source):
        result = boot(rare_level_source, 'y ~ group', R=200, seed=7)
        partial = [r for r in result.replicates if r.status == 'partial']
        assert len(partial) == result.excluded_counts['groupD']
        for rep in partial:
            assert isinstance(rep, ReplicateFit)
            assert rep.missing == ('groupD',)
            assert 'groupD' not in rep.estimates
            assert not np.any(np.isin(17, result.indices[rep.index]))
            assert np.isnan(result.t[rep.index, 3])

    def test_report_and_warnings(self, rare_level_source):
        result = boot(rare_level_source, 'y ~ group', R=500, seed=42)
        k = result.excluded_counts['groupD']
        assert result.exclusion_report() == [
            f"{k} of 500 resamples excluded term groupD"
        ]
        assert f"{k} of 500 resamples excluded term groupD" in result.summary()
        assert result.info['n_degenerate'] == k

    def test_unreliable_flag(self, rare_level_source):
        with pytest.warns(RuntimeWarning, match="unreliable"):
            result = boot(rare_level_source, 'y ~ group', R=40, seed=42, min_valid=35)
        assert result.unreliable_terms == ('groupD',)
        assert not result.ci['perc']['groupD'].reliable
        assert result.ci['perc']['groupB'].reliable

    def test_absent_level_on_full_data_raises(self, grouped_source):
        with pytest.raises(DegenerateFitError) as info:
            boot(grouped_source, 'response ~ group', R=10, seed=0,
                 levels={'group': ('A', 'B', 'C', 'Z')})
        assert info.value.missing_terms == ('groupZ',)


# ---------------------------------------------------------------------------
# Early stopping
# ---------------------------------------------------------------------------

class TestStopping:

    def test_preset_abort(self, linear_source):
        event = threading.Event()
        event.set()
        with pytest.warns(RuntimeWarning, match="stopped after 0 of 100"):
            result = boot(linear_source, 'y ~ x', R=100, seed=0, abort=event)
        assert result.R_effective == 0
        assert result.t.shape == (0, 2)
        assert result.info['stop_reason'] == 'aborted'
        assert np.all(np.isnan(result.se))

    def test_abort_mid_run_keeps_completed(self, linear_source, countdown_event):
        full = boot(linear_source, 'y ~ x', R=50, seed=5)
        with warnings.catch_warnings():
            warnings.simplefilter('ignore', RuntimeWarning)
            partial = boot(linear_source, 'y ~ x', R=50, seed=5, abort=countdown_event(10))
        assert partial.R_effective == 10
        assert partial.R == 50
        np.testing.assert_array_equal(partial.t, full.t[:10])
        assert "Stopped early: 10 of 50" in partial.summary()

    def test_abort_with_workers(self, linear_source):
        event = threading.Event()
        event.set()
        with pytest.warns(RuntimeWarning, match="stopped after"):
            result = boot(linear_source, 'y ~ x', R=100, seed=0, abort=event, n_jobs=2)
        assert result.R_effective < 100

    def test_timeout(self, linear_source):
        with pytest.warns(RuntimeWarning, match="timeout"):
            result = boot(linear_source, 'y ~ x', R=100, seed=0, timeout=1e-9)
        assert result.R_effective < 100
        assert result.info['stop_reason'] == 'timeout'


# ---------------------------------------------------------------------------
# Validation happens before sampling
# ---------------------------------------------------------------------------

class TestValidation:

    @pytest.mark.parametrize("kwargs", [
        {'R': 0},
        {'R': -10},
        {'conf': 0.0},
        {'conf': 1.0},
        {'conf': 1.5},
        {'n_jobs': 0},
        {'min_valid': 0},
        {'timeout': -1.0},
        {'seed': -1},
        {'seed': 1.5},
    ])
    def test_bad_arguments(self, linear_source, kwargs):
        with pytest.raises(InvalidArgumentError):
            boot(linear_source, 'y ~ x', **kwargs)

    def test_empty_spec(self, linear_source):
        with pytest.raises(InvalidArgumentError):
            boot(linear_source, 'y ~ 0', R=10)

    def test_contradictory_spec(self, linear_source):
        with pytest.raises(InvalidArgumentError):
            boot(linear_source, 'y ~ x + y', R=10)

    def test_unknown_field(self, linear_source):
        with pytest.raises(SchemaError):
            boot(linear_source, 'y ~ z', R=10)

    def test_empty_data(self):
        ds = DataSource.from_arrays(y=np.array([]), x=np.array([]))
        with pytest.raises(InvalidArgumentError, match="at least 1 observation"):
            boot(ds, 'y ~ x', R=10)
