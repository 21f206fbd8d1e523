"""
Tests for OLS fitting.

Checks coefficients against numpy's least squares, the summary
statistics against their textbook definitions, and the strict handling
of rank-deficient designs.
"""

import numpy as np
import pytest
from scipy import stats

from pybootreg import DataSource, fit
from pybootreg.core.exceptions import (
    DegenerateFitError,
    InvalidArgumentError,
    SchemaError,
)
from pybootreg.regression import LinearSolution, ModelSpec
from pybootreg.regression.design import Design


class TestCoefficients:

    def test_matches_lstsq(self, retail_source):
        spec = ModelSpec('amount', ['age', 'gender', 'category'])
        result = fit(retail_source, spec)
        X = Design.from_datasource(retail_source, spec).X
        expected = np.linalg.lstsq(X, retail_source['amount'], rcond=None)[0]
        assert isinstance(result, LinearSolution)
        np.testing.assert_allclose(result.coefficients, expected, rtol=1e-10)
        assert result.coef['genderMale'] == pytest.approx(expected[2], rel=1e-10)

    def test_formula_string(self, retail_source):
        a = fit(retail_source, 'amount ~ age + gender')
        b = fit(retail_source, ModelSpec('amount', ['age', 'gender']))
        np.testing.assert_array_equal(a.coefficients, b.coefficients)

    def test_recovers_truth(self, linear_source):
        result = fit(linear_source, 'y ~ x + g')
        assert result.coef['(Intercept)'] == pytest.approx(2.0, abs=0.2)
        assert result.coef['x'] == pytest.approx(3.0, abs=0.15)
        assert result.coef['gb'] == pytest.approx(-1.5, abs=0.2)

    def test_residuals_sum_to_zero_with_intercept(self, linear_source):
        result = fit(linear_source, 'y ~ x + g')
        assert np.sum(result.residuals) == pytest.approx(0.0, abs=1e-9)
        np.testing.assert_allclose(
            result.fitted_values + result.residuals, linear_source['y'],
        )


class TestInference:

    def test_r_squared(self, linear_source):
        result = fit(linear_source, 'y ~ x + g')
        y = linear_source['y']
        tss = np.sum((y - y.mean()) ** 2)
        rss = np.sum(result.residuals ** 2)
        assert result.r_squared == pytest.approx(1 - rss / tss, rel=1e-10)
        n, p = 200, 3
        adj = 1 - (1 - result.r_squared) * (n - 1) / (n - p)
        assert result.adjusted_r_squared == pytest.approx(adj, rel=1e-10)

    def test_standard_errors(self, linear_source):
        spec = ModelSpec('y', ['x', 'g'])
        result = fit(linear_source, spec)
        X = Design.from_datasource(linear_source, spec).X
        sigma_sq = np.sum(result.residuals ** 2) / (200 - 3)
        expected = np.sqrt(sigma_sq * np.diag(np.linalg.inv(X.T @ X)))
        np.testing.assert_allclose(result.standard_errors, expected, rtol=1e-8)
        assert result.sigma == pytest.approx(np.sqrt(sigma_sq), rel=1e-10)

    def test_p_values_from_t(self, linear_source):
        result = fit(linear_source, 'y ~ x + g')
        expected = 2 * stats.t.sf(np.abs(result.t_statistics), result.df_residual)
        np.testing.assert_allclose(result.p_values, expected)
        assert result.p_values[1] < 1e-10

    def test_f_statistic(self, linear_source):
        result = fit(linear_source, 'y ~ x + g')
        f, df1, df2 = result.f_statistic
        assert (df1, df2) == (2, 197)
        r2 = result.r_squared
        assert f == pytest.approx((r2 / 2) / ((1 - r2) / 197), rel=1e-8)

    def test_conf_int_contains_estimate(self, linear_source):
        result = fit(linear_source, 'y ~ x + g')
        for name, (lo, hi) in result.conf_int(0.95).items():
            assert lo < result.coef[name] < hi
        narrow = result.conf_int(0.5)['x']
        wide = result.conf_int(0.99)['x']
        assert wide[0] < narrow[0] and narrow[1] < wide[1]

    def test_summary(self, retail_source):
        text = fit(retail_source, 'amount ~ age + gender').summary()
        assert "lm(formula = amount ~ age + gender)" in text
        assert "genderMale" in text
        assert "Residual standard error" in text
        assert "F-statistic" in text


class TestErrors:

    def test_rank_deficient_raises(self):
        ds = DataSource.from_arrays(
            y=[1.0, 2.0, 3.0, 4.0],
            x=[1.0, 2.0, 3.0, 4.0],
            x2=[2.0, 4.0, 6.0, 8.0],
        )
        with pytest.raises(DegenerateFitError) as info:
            fit(ds, 'y ~ x + x2')
        assert info.value.missing_terms == ('x2',)
        assert info.value.rank == 2
        assert info.value.expected_rank == 3

    def test_pinned_absent_level_raises(self, retail_source):
        sub = retail_source.take([0, 2, 4, 5, 7])
        with pytest.raises(DegenerateFitError) as info:
            fit(sub, 'amount ~ category',
                levels={'category': ('Beauty', 'Clothing', 'Electronics')})
        assert info.value.missing_terms == ('categoryClothing',)

    def test_unknown_field(self, retail_source):
        with pytest.raises(SchemaError):
            fit(retail_source, 'amount ~ income')

    def test_contradictory_spec(self, retail_source):
        with pytest.raises(InvalidArgumentError):
            fit(retail_source, 'amount ~ amount')

    def test_unknown_backend(self, retail_source):
        with pytest.raises(ValueError):
            fit(retail_source, 'amount ~ age', backend='gpu')

    def test_bad_spec_type(self, retail_source):
        with pytest.raises(TypeError):
            fit(retail_source, 42)
