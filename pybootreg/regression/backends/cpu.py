"""
CPU backend for linear regression.

Column-pivoted QR via LAPACK, the same decomposition R's lm() uses.
Aliased (inestimable) columns are detected rather than raised here; the
solver layer decides whether a rank-deficient fit is an error.
"""

from typing import Any
import numpy as np

from pybootreg.core.result import Result
from pybootreg.core.compute.timing import Timer
from pybootreg.core.compute.linalg.qr import qr_solve, unscaled_covariance
from pybootreg.regression.design import Design
from pybootreg.regression.solution import LinearParams


class CPUQRBackend:
    """
    OLS via pivoted QR.

    Algorithm:
        1. X[:, pivot] = QR with numerical rank r
        2. β_active = R[:r, :r]⁻¹ Q[:, :r]'y, aliased β = NaN
        3. Residuals, fitted values, RSS, TSS, (X'X)⁻¹
    """

    @property
    def name(self) -> str:
        return 'cpu_qr'

    def solve(self, design: Design) -> Result[LinearParams]:
        timer = Timer()
        timer.start()

        X = design.X
        y = design.y
        n, p = design.n, design.p

        with timer.section('qr_solve'):
            coefficients, qr_result = qr_solve(X, y)

        with timer.section('residuals'):
            fitted_values = X @ np.nan_to_num(coefficients, nan=0.0)
            residuals = y - fitted_values

        with timer.section('statistics'):
            rss = float(residuals @ residuals)
            if design.has_intercept:
                tss = float(np.sum((y - np.mean(y)) ** 2))
            else:
                tss = float(y @ y)
            cov_unscaled = unscaled_covariance(qr_result, p)

        timer.stop()

        params = LinearParams(
            coefficients=coefficients,
            residuals=residuals,
            fitted_values=fitted_values,
            cov_unscaled=cov_unscaled,
            rss=rss,
            tss=tss,
            rank=qr_result.rank,
            df_residual=n - qr_result.rank,
        )

        info: dict[str, Any] = {
            'method': 'qr',
            'rank': qr_result.rank,
            'pivot': qr_result.pivot.tolist(),
            'aliased': [design.term_names[j] for j in qr_result.aliased],
        }

        return Result(
            params=params,
            info=info,
            timing=timer.result(),
            backend_name=self.name,
            warnings=(),
        )
