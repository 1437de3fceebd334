"""
Status-carrying result container for all pyriskstats computations.

Every engine, composer and risk operation returns a Result. Expected
failures (bad input, shape violations, device errors) are reported through
``status`` rather than raised, so callers decide when to escalate.

Design decisions:
    - Generic over value payload V for type safety
    - value is meaningful only when status is SUCCESS
    - backend_code carries the accelerator's device code verbatim
    - timing is optional (don't burden unit tests)
    - Immutable (frozen=True) for reproducibility
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TypeVar, Generic, Any

from pyriskstats.core.exceptions import (
    BackendError,
    DimensionError,
    ValidationError,
)

V = TypeVar('V')  # Value payload type


class Status(Enum):
    """Outcome of an operation."""
    SUCCESS = 'success'
    INVALID_INPUT = 'invalid_input'
    DIMENSION_MISMATCH = 'dimension_mismatch'
    BACKEND_FAILURE = 'backend_failure'

    @classmethod
    def from_exception(cls, exc: Exception) -> Status:
        """Status reported for a validation or backend exception."""
        if isinstance(exc, DimensionError):
            return cls.DIMENSION_MISMATCH
        if isinstance(exc, ValidationError):
            return cls.INVALID_INPUT
        if isinstance(exc, BackendError):
            return cls.BACKEND_FAILURE
        raise TypeError(f"No status for {type(exc).__name__}") from exc


@dataclass(frozen=True)
class Result(Generic[V]):
    """
    Immutable result envelope.

    Type Parameters:
        V: The operation's value type (float for scalar statistics,
           ndarray for matrices)

    Attributes:
        status: Outcome of the operation
        value: Computed value. Only trustworthy when status is SUCCESS.
            Scalar operations leave it None on failure; matrix builders may
            carry a partially filled matrix.
        info: Structured metadata (operation, dtype, n, ...)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the accelerator that produced this result
        message: Human-readable failure description, None on success
        backend_code: Device status code reported by the accelerator on
            BACKEND_FAILURE, passed through untouched
        warnings: Non-fatal issues encountered during computation

    Examples:
        >>> Result(
        ...     status=Status.SUCCESS,
        ...     value=2.0,
        ...     info={'operation': 'standard_deviation', 'n': 8},
        ...     timing=None,
        ...     backend_name='cpu_numpy',
        ... )
    """
    status: Status
    value: V | None
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    message: str | None = None
    backend_code: int | None = None
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        """True if the operation succeeded."""
        return self.status is Status.SUCCESS

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)

    def unwrap(self) -> V:
        """
        Return the value, or raise the exception matching the status.

        Raises:
            ValidationError: status is INVALID_INPUT
            DimensionError: status is DIMENSION_MISMATCH
            BackendError: status is BACKEND_FAILURE
        """
        if self.status is Status.SUCCESS:
            return self.value
        message = self.message or self.status.value
        if self.status is Status.DIMENSION_MISMATCH:
            raise DimensionError(message)
        if self.status is Status.BACKEND_FAILURE:
            raise BackendError(message, code=self.backend_code)
        raise ValidationError(message)

    @classmethod
    def failure(
        cls,
        status: Status,
        message: str,
        *,
        info: dict[str, Any] | None = None,
        backend_name: str,
        value: V | None = None,
        backend_code: int | None = None,
    ) -> Result[V]:
        """Build a failed result with no timing."""
        if status is Status.SUCCESS:
            raise ValueError("Result.failure() requires a failing status")
        return cls(
            status=status,
            value=value,
            info=dict(info or {}),
            timing=None,
            backend_name=backend_name,
            message=message,
            backend_code=backend_code,
        )
