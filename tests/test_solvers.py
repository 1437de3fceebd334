"""
Tests for the one-shot functional API.
"""

import numpy as np
import pytest

import pyriskstats
from pyriskstats import Status


class TestOneShot:

    def test_sd(self, textbook_sample):
        assert pyriskstats.sd(textbook_sample, device='cpu').value == pytest.approx(2.0)

    def test_sample_sd(self, textbook_sample):
        result = pyriskstats.sample_sd(textbook_sample, device='cpu')
        assert result.value == pytest.approx(2.138089935299395)

    def test_var(self, textbook_sample):
        assert pyriskstats.var(textbook_sample, device='cpu').value == pytest.approx(32.0 / 7.0)
        assert pyriskstats.var(textbook_sample, unbiased=False, device='cpu').value == pytest.approx(4.0)

    def test_cov_and_cor(self):
        x = [1.0, 2.0, 3.0]
        y = [2.0, 4.0, 6.0]
        assert pyriskstats.sample_cov(x, y, device='cpu').value == pytest.approx(2.0)
        assert pyriskstats.cov(x, y, device='cpu').value == pytest.approx(4.0 / 3.0)
        assert pyriskstats.cor(x, y, device='cpu').value == pytest.approx(1.0)

    def test_matrices(self, rng):
        data = rng.standard_normal((3, 50))
        np.testing.assert_allclose(
            pyriskstats.cov_matrix(data, device='cpu').value, np.cov(data, ddof=0), rtol=1e-12,
        )
        np.testing.assert_allclose(
            pyriskstats.cor_matrix(data, device='cpu').value, np.corrcoef(data), rtol=1e-12,
        )

    def test_multiply(self):
        result = pyriskstats.multiply(False, True, 2.0, [[1.0, 2.0]], [[3.0, 4.0]], device='cpu')
        assert result.value[0, 0] == pytest.approx(22.0)

    def test_value_at_risk(self, two_asset_portfolio):
        result = pyriskstats.value_at_risk(*two_asset_portfolio, 1.645, device='cpu')
        assert result.value == pytest.approx(np.sqrt(4400.0) * 1.645)

    def test_failure_status(self):
        result = pyriskstats.sample_sd([1.0], device='cpu')
        assert result.status is Status.INVALID_INPUT
        with pytest.raises(pyriskstats.ValidationError):
            result.unwrap()

    def test_allocation_size(self, textbook_sample):
        result = pyriskstats.sd(textbook_sample, device='cpu', allocation_size=8)
        assert result.status is Status.BACKEND_FAILURE

    def test_version(self):
        assert pyriskstats.__version__ == "0.1.0"
