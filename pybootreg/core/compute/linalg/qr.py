"""
QR decomposition and least squares.

Column-pivoted QR through LAPACK (scipy.linalg.qr). Shared by the OLS
backend, the IRLS inner solve, and the bootstrap replicate fitter.

Rank deficiency is reported, not raised: aliased columns come back as
NaN coefficients and their indices in QRResult.aliased. Callers decide
whether that is fatal.
"""

from dataclasses import dataclass
from typing import Any
import numpy as np
from numpy.typing import NDArray
from scipy.linalg import qr as scipy_qr, solve_triangular


@dataclass(frozen=True)
class QRResult:
    """
    Result of a column-pivoted QR decomposition X[:, pivot] = Q R.

    Attributes:
        Q: Orthonormal factor (n x k, k = min(n, p))
        R: Upper triangular factor (k x p)
        pivot: Column permutation chosen by LAPACK
        rank: Numerical rank determined from |diag(R)|
    """
    Q: NDArray[np.floating[Any]]
    R: NDArray[np.floating[Any]]
    pivot: NDArray[np.intp]
    rank: int

    @property
    def aliased(self) -> NDArray[np.intp]:
        """Original column indices that could not be estimated, sorted."""
        return np.sort(self.pivot[self.rank:])


def qr_pivoted(X: NDArray[np.floating[Any]], tol: float | None = None) -> QRResult:
    """
    Column-pivoted economy QR with numerical rank.

    Args:
        X: Matrix to decompose (n x p)
        tol: Relative tolerance on |diag(R)|. Defaults to
             max(n, p) * eps, scaled by the largest diagonal entry.

    Returns:
        QRResult with Q, R, pivot, and rank
    """
    Q, R, pivot = scipy_qr(X, mode='economic', pivoting=True)

    diag_R = np.abs(np.diag(R))
    if len(diag_R) > 0 and diag_R[0] > 0:
        if tol is None:
            tol = max(X.shape) * np.finfo(np.float64).eps
        rank = int(np.sum(diag_R > tol * diag_R[0]))
    else:
        rank = 0

    return QRResult(Q=Q, R=R, pivot=pivot, rank=rank)


def qr_solve(
    X: NDArray[np.floating[Any]],
    y: NDArray[np.floating[Any]],
) -> tuple[NDArray[np.floating[Any]], QRResult]:
    """
    Least squares via pivoted QR.

    Solves min_β ||y - Xβ||² over the estimable columns. Aliased
    columns get NaN coefficients, matching R's lm().

    Args:
        X: Design matrix (n x p)
        y: Response vector (n,)

    Returns:
        (coefficients of shape (p,), QRResult)
    """
    p = X.shape[1]
    qr_result = qr_pivoted(X)
    r = qr_result.rank

    beta = np.full(p, np.nan, dtype=np.float64)
    if r == 0:
        return beta, qr_result

    Qty = qr_result.Q[:, :r].T @ y
    beta_active = solve_triangular(qr_result.R[:r, :r], Qty, lower=False)
    beta[qr_result.pivot[:r]] = beta_active

    return beta, qr_result


def unscaled_covariance(qr_result: QRResult, p: int) -> NDArray[np.floating[Any]]:
    """
    (X'X)⁻¹ restricted to estimable columns, in original column order.

    Rows and columns for aliased coefficients are NaN.
    """
    r = qr_result.rank
    cov = np.full((p, p), np.nan, dtype=np.float64)
    if r == 0:
        return cov

    R_inv = solve_triangular(
        qr_result.R[:r, :r], np.eye(r), lower=False
    )
    active = qr_result.pivot[:r]
    cov[np.ix_(active, active)] = R_inv @ R_inv.T
    return cov
