"""
Tests for pivoted QR least squares.
"""

import numpy as np

from pybootreg.core.compute.linalg import qr_pivoted, qr_solve, unscaled_covariance


class TestQRSolve:

    def test_matches_lstsq(self, rng):
        X = np.column_stack([np.ones(50), rng.standard_normal((50, 3))])
        y = X @ np.array([1.0, -2.0, 0.5, 3.0]) + rng.standard_normal(50) * 0.1
        beta, qr_result = qr_solve(X, y)
        expected = np.linalg.lstsq(X, y, rcond=None)[0]
        np.testing.assert_allclose(beta, expected, rtol=1e-10)
        assert qr_result.rank == 4
        assert qr_result.aliased.size == 0

    def test_zero_column_is_aliased(self, rng):
        X = np.column_stack([np.ones(30), rng.standard_normal(30), np.zeros(30)])
        y = rng.standard_normal(30)
        beta, qr_result = qr_solve(X, y)
        assert qr_result.rank == 2
        np.testing.assert_array_equal(qr_result.aliased, [2])
        assert np.isnan(beta[2])
        assert np.all(np.isfinite(beta[:2]))

    def test_collinear_column_is_aliased(self, rng):
        x1 = rng.standard_normal(40)
        x2 = rng.standard_normal(40)
        X = np.column_stack([x1, x2, x1 + x2])
        beta, qr_result = qr_solve(X, rng.standard_normal(40))
        assert qr_result.rank == 2
        assert np.sum(np.isnan(beta)) == 1

    def test_all_zero_matrix(self):
        beta, qr_result = qr_solve(np.zeros((5, 2)), np.ones(5))
        assert qr_result.rank == 0
        assert np.all(np.isnan(beta))


class TestUnscaledCovariance:

    def test_matches_inverse_gram(self, rng):
        X = np.column_stack([np.ones(40), rng.standard_normal((40, 2))])
        cov = unscaled_covariance(qr_pivoted(X), 3)
        np.testing.assert_allclose(cov, np.linalg.inv(X.T @ X), rtol=1e-10)

    def test_nan_for_aliased(self, rng):
        X = np.column_stack([np.ones(20), rng.standard_normal(20), np.zeros(20)])
        cov = unscaled_covariance(qr_pivoted(X), 3)
        assert np.all(np.isnan(cov[2, :]))
        assert np.all(np.isnan(cov[:, 2]))
        assert np.all(np.isfinite(cov[:2, :2]))

    def test_rank_from_pivoted(self):
        X = np.array([[1.0, 2.0], [2.0, 4.0], [3.0, 6.0]])
        assert qr_pivoted(X).rank == 1
