"""
Exception hierarchy for pyriskstats.

All exceptions inherit from PyRiskStatsError to allow catching any
library-specific error. Operations report expected failures through
Result.status; these exceptions are raised by Result.unwrap(), by
configuration errors at construction time, and by contract violations
such as using a released accelerator.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""


class PyRiskStatsError(Exception):
    """Base exception for all pyriskstats errors."""
    pass


class ValidationError(PyRiskStatsError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks.
    """
    pass


class DimensionError(ValidationError):
    """
    Array dimensions are incorrect or inconsistent.

    Raised when array shapes don't match expected dimensions or
    when multiple arrays have inconsistent shapes.
    """
    pass


class BackendError(PyRiskStatsError):
    """
    The accelerator reported a device failure.

    Attributes:
        code: Device status code reported by the accelerator, if any
    """

    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.code = code


class HandleReleasedError(PyRiskStatsError):
    """
    An accelerator was used after it was released.

    This is a programming error: the owning engine was closed (or its
    ``with`` block exited) and a call still reached the handle.

    Attributes:
        backend_name: Name of the released accelerator
    """

    def __init__(self, message: str, backend_name: str | None = None):
        super().__init__(message)
        self.backend_name = backend_name
