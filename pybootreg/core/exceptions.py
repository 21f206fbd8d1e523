"""
Exception hierarchy for pybootreg.

All exceptions inherit from PyBootRegError so callers can catch any
library-specific error. Domain-specific exceptions inherit from the
appropriate base class here.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""


class PyBootRegError(Exception):
    """Base exception for all pybootreg errors."""
    pass


class ValidationError(PyBootRegError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks.
    """
    pass


class InvalidArgumentError(ValidationError):
    """
    A scalar argument is out of its allowed range.

    Raised before any computation starts, e.g. a non-positive replicate
    count, an empty dataset, or a confidence level outside (0, 1).

    Attributes:
        argument: Name of the offending argument
        value: The value that was rejected
    """

    def __init__(
        self,
        message: str,
        argument: str | None = None,
        value: object = None,
    ):
        super().__init__(message)
        self.argument = argument
        self.value = value


class DimensionError(ValidationError):
    """
    Array dimensions are incorrect or inconsistent.

    Raised when array shapes don't match expected dimensions or
    when multiple arrays have inconsistent shapes.
    """
    pass


class SchemaError(ValidationError):
    """
    A model specification does not match the dataset schema.

    Raised when a field named by a ModelSpec is missing from the data,
    or has the wrong kind (e.g. a categorical response for OLS).

    Attributes:
        field: The offending field name
        available: Field names present in the data
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        available: tuple[str, ...] | None = None,
    ):
        super().__init__(message)
        self.field = field
        self.available = available


class NumericalError(PyBootRegError):
    """
    Numerical computation failed.

    Base class for errors arising from numerical issues during computation.
    """
    pass


class SingularMatrixError(NumericalError):
    """
    Matrix is singular or nearly singular.

    Raised when a matrix operation requires invertibility but the matrix
    is singular or numerically rank-deficient.

    Attributes:
        matrix_name: Name/description of the problematic matrix
        condition_number: Estimated condition number, if available
        rank: Numerical rank, if computed
        expected_rank: Expected rank (typically min(n, p))
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        condition_number: float | None = None,
        rank: int | None = None,
        expected_rank: int | None = None
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.condition_number = condition_number
        self.rank = rank
        self.expected_rank = expected_rank


class DegenerateFitError(SingularMatrixError):
    """
    Model terms cannot be estimated from the data at hand.

    Raised by strict fitters when the design matrix is rank-deficient,
    typically because a categorical level is absent from the rows being
    fit. The bootstrap treats this as a per-replicate condition and
    records the missing terms instead of raising.

    Attributes:
        missing_terms: Names of the inestimable (aliased) terms
    """

    def __init__(
        self,
        message: str,
        missing_terms: tuple[str, ...] = (),
        rank: int | None = None,
        expected_rank: int | None = None,
    ):
        super().__init__(
            message,
            matrix_name='X',
            rank=rank,
            expected_rank=expected_rank,
        )
        self.missing_terms = tuple(missing_terms)


class ConvergenceError(PyBootRegError):
    """
    Iterative algorithm failed to converge.

    Raised when an iterative method (IRLS, quasi-Newton) fails to meet
    convergence criteria within the maximum number of iterations.

    Attributes:
        iterations: Number of iterations completed
        final_change: Final parameter or objective change
        reason: Why convergence failed (e.g., 'max_iterations', 'diverging')
        threshold: The convergence threshold that was not met
    """

    def __init__(
        self,
        message: str,
        iterations: int,
        final_change: float | None = None,
        reason: str | None = None,
        threshold: float | None = None
    ):
        super().__init__(message)
        self.iterations = iterations
        self.final_change = final_change
        self.reason = reason
        self.threshold = threshold
