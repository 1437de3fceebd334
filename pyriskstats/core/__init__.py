"""
Core infrastructure for pyriskstats.

Shared abstractions used by the accelerator, statistics, linear algebra
and risk subpackages.

Key components:
    result: Status enum and generic Result[V] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    compute: Device detection, timing, tolerance tiers
"""

from pyriskstats.core.result import Result, Status
from pyriskstats.core.exceptions import (
    PyRiskStatsError,
    ValidationError,
    DimensionError,
    BackendError,
    HandleReleasedError,
)

__all__ = [
    # Result
    "Result",
    "Status",
    # Exceptions
    "PyRiskStatsError",
    "ValidationError",
    "DimensionError",
    "BackendError",
    "HandleReleasedError",
]
