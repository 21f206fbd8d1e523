"""
CPU backend for baseline-category multinomial logit.

Maximizes the multinomial log-likelihood with scipy.optimize.minimize
using the exact trust-region method (analytic gradient and Hessian).
The negative log-likelihood is convex, so Newton steps converge fast
unless the classes are separable. Standard errors come from the inverse
of the information matrix at the optimum.

    P(y = k | x) = exp(x'β_k) / (1 + Σ_j exp(x'β_j)),  k = 1..K-1
    P(y = 0 | x) = 1 / (1 + Σ_j exp(x'β_j))
"""

import logging
import numpy as np
from numpy.typing import NDArray
from scipy.optimize import minimize
from scipy.special import logsumexp

from pybootreg.core.result import Result
from pybootreg.core.compute.timing import Timer
from pybootreg.regression.design import Design
from pybootreg.regression.solution import MultinomParams

logger = logging.getLogger(__name__)


def _probabilities(X: NDArray, B: NDArray) -> tuple[NDArray, NDArray]:
    """(eta, probs), each (n, K) with the baseline in column 0."""
    n = X.shape[0]
    eta = np.column_stack([np.zeros(n), X @ B.T])
    probs = np.exp(eta - logsumexp(eta, axis=1)[:, np.newaxis])
    return eta, probs


def _information(X: NDArray, probs: NDArray) -> NDArray:
    """Fisher information for the stacked (K-1)·p coefficient vector."""
    p = X.shape[1]
    P = probs[:, 1:]
    m = P.shape[1]
    info = np.empty((m * p, m * p), dtype=np.float64)
    for j in range(m):
        for k in range(m):
            w = P[:, j] * ((j == k) - P[:, k])
            info[j * p:(j + 1) * p, k * p:(k + 1) * p] = (X * w[:, np.newaxis]).T @ X
    return info


class CPUMultinomBackend:
    """Multinomial logit by trust-region Newton maximum likelihood."""

    @property
    def name(self) -> str:
        return 'cpu_multinom'

    def solve(
        self,
        design: Design,
        tol: float = 1e-8,
        max_iter: int = 100,
    ) -> Result[MultinomParams]:
        timer = Timer()
        timer.start()

        X = design.X
        codes = design.y.astype(np.intp)
        n, p = design.n, design.p
        K = len(design.response_levels)
        Y = np.zeros((n, K), dtype=np.float64)
        Y[np.arange(n), codes] = 1.0
        rows = np.arange(n)

        warnings_list: list[str] = []

        def nll(theta: NDArray) -> float:
            eta, _ = _probabilities(X, theta.reshape(K - 1, p))
            return -float(np.sum(eta[rows, codes] - logsumexp(eta, axis=1)))

        def grad(theta: NDArray) -> NDArray:
            _, probs = _probabilities(X, theta.reshape(K - 1, p))
            return -((Y[:, 1:] - probs[:, 1:]).T @ X).ravel()

        def hess(theta: NDArray) -> NDArray:
            _, probs = _probabilities(X, theta.reshape(K - 1, p))
            return _information(X, probs)

        with timer.section('optimize'):
            opt = minimize(
                nll,
                np.zeros((K - 1) * p),
                jac=grad,
                hess=hess,
                method='trust-exact',
                options={'maxiter': max_iter, 'gtol': tol},
            )

        B = opt.x.reshape(K - 1, p)
        converged = bool(opt.success)
        if not converged:
            warnings_list.append(
                f"multinomial optimizer did not converge after {opt.nit} "
                f"iterations: {opt.message}"
            )
            logger.debug("trust-exact stopped: %s", opt.message)

        with timer.section('inference'):
            _, probs = _probabilities(X, B)
            try:
                cov = np.linalg.inv(_information(X, probs))
                diag = np.diag(cov)
                with np.errstate(invalid='ignore'):
                    se = np.sqrt(np.where(diag >= 0, diag, np.nan)).reshape(K - 1, p)
            except np.linalg.LinAlgError:
                warnings_list.append("information matrix is singular; standard errors are NA")
                se = np.full((K - 1, p), np.nan)
            deviance = 2.0 * float(opt.fun)
            aic = deviance + 2.0 * (K - 1) * p

        timer.stop()

        params = MultinomParams(
            coefficients=B,
            standard_errors=se,
            fitted_probabilities=probs,
            deviance=deviance,
            aic=aic,
            n_iter=int(opt.nit),
            converged=converged,
        )

        return Result(
            params=params,
            info={
                'method': 'trust-exact',
                'n_levels': K,
                'baseline': design.response_levels[0],
            },
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(warnings_list),
        )
