"""Dense linear algebra (CPU, via LAPACK)."""

from pybootreg.core.compute.linalg.qr import (
    QRResult,
    qr_pivoted,
    qr_solve,
    unscaled_covariance,
)

__all__ = [
    "QRResult",
    "qr_pivoted",
    "qr_solve",
    "unscaled_covariance",
]
