"""
Tests for the exception hierarchy.
"""

import pytest

from pyriskstats.core.exceptions import (
    BackendError,
    DimensionError,
    HandleReleasedError,
    PyRiskStatsError,
    ValidationError,
)


class TestHierarchy:
    """Every library exception is a PyRiskStatsError."""

    @pytest.mark.parametrize("exc_type", [
        ValidationError, DimensionError, BackendError, HandleReleasedError,
    ])
    def test_inherits_base(self, exc_type):
        assert issubclass(exc_type, PyRiskStatsError)

    def test_dimension_is_validation(self):
        assert issubclass(DimensionError, ValidationError)

    def test_released_is_not_validation(self):
        assert not issubclass(HandleReleasedError, ValidationError)


class TestAttributes:

    def test_backend_error_code(self):
        exc = BackendError("device failure", code=4)
        assert exc.code == 4
        assert str(exc) == "device failure"

    def test_backend_error_code_optional(self):
        assert BackendError("device failure").code is None

    def test_handle_released_backend_name(self):
        exc = HandleReleasedError("released", backend_name='cpu_numpy')
        assert exc.backend_name == 'cpu_numpy'
        with pytest.raises(PyRiskStatsError, match="released"):
            raise exc
