"""
Tests for baseline-category multinomial logit.
"""

import numpy as np
import pytest

from pybootreg import DataSource, fit_multinomial
from pybootreg.core.exceptions import SchemaError
from pybootreg.regression import MultinomSolution


@pytest.fixture
def category_source(rng):
    n = 600
    age = rng.uniform(18, 65, n)
    centered = (age - 40.0) / 10.0
    eta = np.column_stack([np.zeros(n), 0.3 + 0.8 * centered, -0.2 - 0.6 * centered])
    probs = np.exp(eta) / np.exp(eta).sum(axis=1, keepdims=True)
    labels = np.array(['Beauty', 'Clothing', 'Electronics'])
    draws = np.array([rng.choice(3, p=row) for row in probs])
    return DataSource.from_arrays(category=labels[draws], age=centered)


class TestMultinomial:

    def test_intercept_only_matches_log_odds(self, category_source):
        result = fit_multinomial(category_source, 'category ~ 1')
        counts = {
            level: int(np.sum(category_source['category'] == level))
            for level in ('Beauty', 'Clothing', 'Electronics')
        }
        assert isinstance(result, MultinomSolution)
        assert result.baseline == 'Beauty'
        for level in ('Clothing', 'Electronics'):
            expected = np.log(counts[level] / counts['Beauty'])
            assert result.coef[level]['(Intercept)'] == pytest.approx(expected, abs=1e-5)

    def test_recovers_slopes(self, category_source):
        result = fit_multinomial(category_source, 'category ~ age')
        assert result.coef['Clothing']['age'] == pytest.approx(0.8, abs=0.3)
        assert result.coef['Electronics']['age'] == pytest.approx(-0.6, abs=0.3)
        assert result.coefficients.shape == (2, 2)
        assert result.standard_errors.shape == (2, 2)
        assert np.all(result.standard_errors > 0)

    def test_probabilities(self, category_source):
        result = fit_multinomial(category_source, 'category ~ age')
        probs = result.fitted_probabilities
        assert probs.shape == (600, 3)
        np.testing.assert_allclose(probs.sum(axis=1), 1.0)
        assert set(result.predict_class()) <= {'Beauty', 'Clothing', 'Electronics'}

    def test_deviance_and_aic(self, category_source):
        result = fit_multinomial(category_source, 'category ~ age')
        probs = result.fitted_probabilities
        lookup = {level: k for k, level in enumerate(result.response_levels)}
        codes = np.array([lookup[v] for v in category_source['category']])
        loglik = np.sum(np.log(probs[np.arange(600), codes]))
        assert result.deviance == pytest.approx(-2 * loglik, rel=1e-8)
        assert result.aic == pytest.approx(result.deviance + 2 * 4, rel=1e-10)

    def test_p_values_in_unit_interval(self, category_source):
        result = fit_multinomial(category_source, 'category ~ age')
        assert np.all((result.p_values >= 0) & (result.p_values <= 1))

    def test_summary(self, category_source):
        text = fit_multinomial(category_source, 'category ~ age').summary()
        assert "Baseline level: Beauty" in text
        assert "Clothing vs Beauty:" in text
        assert "AIC" in text

    def test_numeric_response_rejected(self, category_source):
        with pytest.raises(SchemaError, match="categorical response"):
            fit_multinomial(category_source, 'age ~ category')
