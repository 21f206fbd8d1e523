"""
Core infrastructure for pybootreg.

Shared abstractions used by the regression and montecarlo subpackages.

Key components:
    datasource: DataSource column store
    random: RandomSource (explicit, splittable random state)
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    compute: Timing and QR linear algebra
"""

from pybootreg.core.datasource import DataSource
from pybootreg.core.random import RandomSource
from pybootreg.core.result import Result
from pybootreg.core.exceptions import (
    PyBootRegError,
    ValidationError,
    InvalidArgumentError,
    DimensionError,
    SchemaError,
    NumericalError,
    SingularMatrixError,
    DegenerateFitError,
    ConvergenceError,
)

__all__ = [
    "DataSource",
    "RandomSource",
    "Result",
    # Exceptions
    "PyBootRegError",
    "ValidationError",
    "InvalidArgumentError",
    "DimensionError",
    "SchemaError",
    "NumericalError",
    "SingularMatrixError",
    "DegenerateFitError",
    "ConvergenceError",
]
