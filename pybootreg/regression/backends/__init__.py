"""
Regression backends.

Available backends:
    CPUQRBackend: least squares via pivoted QR
    CPUIRLSBackend: GLM fitting by iteratively reweighted least squares
    CPUMultinomBackend: baseline-category logit by maximum likelihood
"""

from pybootreg.regression.backends.cpu import CPUQRBackend
from pybootreg.regression.backends.cpu_glm import CPUIRLSBackend
from pybootreg.regression.backends.cpu_multinom import CPUMultinomBackend

__all__ = [
    "CPUQRBackend",
    "CPUIRLSBackend",
    "CPUMultinomBackend",
]
