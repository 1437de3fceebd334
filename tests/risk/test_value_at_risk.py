"""
Tests for portfolio variance and parametric Value-at-Risk.

Hand-computed scenario: W = [100, 200], Σ = [[0.04, 0.01], [0.01, 0.09]]
    W Σ     = [6, 19]
    W Σ Wᵗ  = 600 + 3800 = 4400
    VaR     = sqrt(4400) * z * sqrt(T)
"""

import numpy as np
import pytest

from pyriskstats.accelerator import DEVICE_EXECUTION_FAILED
from pyriskstats.core.result import Status


EXPECTED_VAR_95 = np.sqrt(4400.0) * 1.645  # 109.1169556...


# ═══════════════════════════════════════════════════════════════════════
# Portfolio variance
# ═══════════════════════════════════════════════════════════════════════


class TestPortfolioVariance:

    def test_scenario(self, engine, two_asset_portfolio):
        result = engine.risk.portfolio_variance(*two_asset_portfolio)
        assert result.ok
        assert result.value == pytest.approx(4400.0, rel=1e-12)

    def test_two_multiplies(self, recording, two_asset_portfolio):
        engine, accelerator = recording()
        engine.risk.portfolio_variance(*two_asset_portfolio)
        assert accelerator.calls == ['multiply', 'multiply']

    def test_matches_quadratic_form(self, engine, rng):
        a = rng.standard_normal((5, 5))
        covariance = a @ a.T
        weights = rng.uniform(0, 100, 5)
        result = engine.risk.portfolio_variance(weights, covariance)
        np.testing.assert_allclose(result.value, weights @ covariance @ weights, rtol=1e-12)

    def test_negative_variance(self, engine):
        # W Σ = [-1, 1], W Σ Wᵗ = -2
        result = engine.risk.portfolio_variance([1.0, -1.0], [[1.0, 2.0], [2.0, 1.0]])
        assert result.status is Status.INVALID_INPUT
        assert "negative" in result.message


# ═══════════════════════════════════════════════════════════════════════
# Value-at-Risk
# ═══════════════════════════════════════════════════════════════════════


class TestValueAtRisk:

    def test_scenario(self, engine, two_asset_portfolio):
        result = engine.value_at_risk(*two_asset_portfolio, confidence_level=1.645)
        assert result.ok
        assert result.value == pytest.approx(EXPECTED_VAR_95, rel=1e-12)
        assert result.value == pytest.approx(109.1169556, rel=1e-9)
        assert result.info['portfolio_variance'] == pytest.approx(4400.0)

    def test_horizon_scales_by_square_root(self, engine, two_asset_portfolio):
        result = engine.value_at_risk(*two_asset_portfolio, confidence_level=1.645, time_period=4)
        assert result.value == pytest.approx(2.0 * EXPECTED_VAR_95, rel=1e-12)

    def test_row_matrix_weights(self, engine, two_asset_portfolio):
        weights, covariance = two_asset_portfolio
        result = engine.value_at_risk(weights.reshape(1, -1), covariance, 1.645)
        assert result.value == pytest.approx(EXPECTED_VAR_95, rel=1e-12)

    def test_integer_weights_with_float32_covariance(self, engine):
        covariance = np.array([[0.04, 0.01], [0.01, 0.09]], dtype=np.float32)
        result = engine.value_at_risk([100, 200], covariance, 1.645)
        assert result.ok
        assert result.info['dtype'] == 'float32'
        assert result.value == pytest.approx(EXPECTED_VAR_95, rel=1e-5)

    def test_zero_weights(self, engine, two_asset_portfolio):
        _, covariance = two_asset_portfolio
        assert engine.value_at_risk([0.0, 0.0], covariance, 1.645).value == 0.0

    def test_timing_sums_both_multiplies(self, engine, two_asset_portfolio):
        timing = engine.value_at_risk(*two_asset_portfolio, confidence_level=1.645).timing
        assert timing['gemm'] <= timing['total_seconds']


class TestValueAtRiskFailures:

    def test_length_mismatch_before_any_multiply(self, recording):
        engine, accelerator = recording()
        result = engine.value_at_risk([1.0, 2.0, 3.0], [[0.04, 0.01], [0.01, 0.09]], 1.645)
        assert result.status is Status.DIMENSION_MISMATCH
        assert accelerator.calls == []

    def test_non_square_covariance(self, engine):
        result = engine.value_at_risk([1.0, 2.0], np.ones((2, 3)), 1.645)
        assert result.status is Status.DIMENSION_MISMATCH

    @pytest.mark.parametrize("time_period", [0, -5, 2.5])
    def test_bad_time_period(self, recording, two_asset_portfolio, time_period):
        engine, accelerator = recording()
        result = engine.value_at_risk(*two_asset_portfolio, 1.645, time_period)
        assert result.status is Status.INVALID_INPUT
        assert "time_period" in result.message
        assert accelerator.calls == []

    def test_non_finite_confidence_level(self, engine, two_asset_portfolio):
        result = engine.value_at_risk(*two_asset_portfolio, confidence_level=np.inf)
        assert result.status is Status.INVALID_INPUT

    def test_nan_covariance(self, engine):
        result = engine.value_at_risk([1.0, 2.0], [[np.nan, 0.0], [0.0, 1.0]], 1.645)
        assert result.status is Status.INVALID_INPUT

    def test_second_multiply_failure_propagates(self, recording, two_asset_portfolio):
        engine, accelerator = recording(fail_calls={1: DEVICE_EXECUTION_FAILED})
        result = engine.value_at_risk(*two_asset_portfolio, confidence_level=1.645)
        assert result.status is Status.BACKEND_FAILURE
        assert result.backend_code == DEVICE_EXECUTION_FAILED
        assert result.value is None
        assert "(W @ covariance) @ W.T" in result.message
        assert len(accelerator.calls) == 2
