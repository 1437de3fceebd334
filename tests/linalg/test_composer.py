"""
Tests for MatrixComposer.multiply().
"""

import numpy as np
import pytest

from pyriskstats.accelerator import DEVICE_ALLOCATION_FAILED
from pyriskstats.core.result import Status
from pyriskstats.linalg import as_matrix
from pyriskstats.core.exceptions import DimensionError, ValidationError


@pytest.fixture
def composer(engine):
    return engine.composer


class TestMultiply:

    def test_plain_product(self, composer, rng):
        a = rng.standard_normal((2, 3))
        b = rng.standard_normal((3, 4))
        result = composer.multiply(False, False, 1.0, a, b)
        assert result.ok
        np.testing.assert_allclose(result.value, a @ b, rtol=1e-12)
        assert result.info['shape'] == (2, 4)
        assert 'gemm' in result.timing

    @pytest.mark.parametrize("tl, tr, a_shape, b_shape", [
        (False, True, (2, 3), (4, 3)),
        (True, False, (3, 2), (3, 4)),
        (True, True, (3, 2), (4, 3)),
    ])
    def test_transposes(self, composer, rng, tl, tr, a_shape, b_shape):
        a = rng.standard_normal(a_shape)
        b = rng.standard_normal(b_shape)
        op_a = a.T if tl else a
        op_b = b.T if tr else b
        result = composer.multiply(tl, tr, 1.0, a, b)
        np.testing.assert_allclose(result.value, op_a @ op_b, rtol=1e-12)

    def test_alpha_beta(self, composer, rng):
        a = rng.standard_normal((2, 2))
        b = rng.standard_normal((2, 2))
        c = rng.standard_normal((2, 2))
        result = composer.multiply(False, False, 3.0, a, b, 0.5, c)
        np.testing.assert_allclose(result.value, 3.0 * a @ b + 0.5 * c, rtol=1e-12)

    def test_alpha_zero_returns_scaled_accumulator(self, composer):
        c = np.array([[1.0, 2.0], [3.0, 4.0]])
        result = composer.multiply(False, False, 0.0, np.eye(2), np.eye(2), 2.0, c)
        np.testing.assert_array_equal(result.value, 2.0 * c)

    def test_beta_zero_ignores_accumulator(self, composer):
        c = np.full((2, 2), 100.0)
        result = composer.multiply(False, False, 1.0, np.eye(2), np.eye(2), 0.0, c)
        np.testing.assert_array_equal(result.value, np.eye(2))

    def test_alpha_zero_does_not_read_operands(self, composer):
        a = np.array([[np.nan, 1.0], [np.inf, 2.0]])
        c = np.ones((2, 2))
        result = composer.multiply(False, False, 0.0, a, a, 2.0, c)
        assert result.ok
        np.testing.assert_array_equal(result.value, 2.0 * c)

    def test_beta_zero_does_not_read_accumulator(self, composer):
        c = np.full((2, 2), np.nan)
        result = composer.multiply(False, False, 1.0, np.eye(2), np.eye(2), 0.0, c)
        assert result.ok
        np.testing.assert_array_equal(result.value, np.eye(2))

    def test_row_vector_operand(self, composer):
        result = composer.multiply(False, True, 1.0, [1.0, 2.0], [3.0, 4.0])
        assert result.value.shape == (1, 1)
        assert result.value[0, 0] == pytest.approx(11.0)

    def test_inputs_not_modified(self, composer):
        a = np.eye(2)
        c = np.ones((2, 2))
        composer.multiply(False, False, 1.0, a, a, 1.0, c)
        np.testing.assert_array_equal(c, np.ones((2, 2)))

    def test_float32(self, composer):
        a = np.eye(3, dtype=np.float32)
        assert composer.multiply(False, False, 1.0, a, a).value.dtype == np.float32


class TestMultiplyFailures:

    def test_inner_dimension_mismatch(self, recording):
        engine, accelerator = recording()
        result = engine.composer.multiply(False, False, 1.0, np.ones((2, 3)), np.ones((2, 3)))
        assert result.status is Status.DIMENSION_MISMATCH
        assert "inner dimensions 3 != 2" in result.message
        assert accelerator.calls == []

    def test_accumulator_shape(self, composer):
        result = composer.multiply(False, False, 1.0, np.eye(2), np.eye(2), 1.0, np.ones((3, 3)))
        assert result.status is Status.DIMENSION_MISMATCH

    def test_three_dimensional(self, composer):
        result = composer.multiply(False, False, 1.0, np.ones((2, 2, 2)), np.eye(2))
        assert result.status is Status.DIMENSION_MISMATCH

    def test_mixed_precision(self, composer):
        result = composer.multiply(False, False, 1.0, np.eye(2, dtype=np.float32), np.eye(2))
        assert result.status is Status.INVALID_INPUT

    def test_non_finite_scale(self, composer):
        result = composer.multiply(False, False, np.nan, np.eye(2), np.eye(2))
        assert result.status is Status.INVALID_INPUT

    def test_non_finite_operand_read_by_product(self, composer):
        a = np.array([[np.nan, 1.0], [0.0, 2.0]])
        result = composer.multiply(False, False, 1.0, a, np.eye(2))
        assert result.status is Status.INVALID_INPUT
        assert "NaN" in result.message

    def test_alpha_zero_still_checks_shapes(self, composer):
        a = np.full((2, 3), np.nan)
        result = composer.multiply(False, False, 0.0, a, a, 1.0, np.ones((2, 3)))
        assert result.status is Status.DIMENSION_MISMATCH

    def test_device_failure(self, recording):
        engine, _ = recording(allocation_size=32)
        result = engine.composer.multiply(False, False, 1.0, np.eye(4), np.eye(4))
        assert result.status is Status.BACKEND_FAILURE
        assert result.backend_code == DEVICE_ALLOCATION_FAILED


class TestAsMatrix:

    def test_row_vector(self):
        assert as_matrix([1.0, 2.0, 3.0], 'w').shape == (1, 3)

    def test_empty(self):
        with pytest.raises(ValidationError, match="empty"):
            as_matrix(np.ones((0, 2)), 'a')

    def test_too_many_dimensions(self):
        with pytest.raises(DimensionError):
            as_matrix(np.ones((1, 1, 1)), 'a')
