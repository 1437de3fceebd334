"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np

from pyriskstats.accelerator.base import DEFAULT_ALLOCATION_SIZE
from pyriskstats.accelerator.cpu import CPUAccelerator
from pyriskstats.stats import StatsEngine


# Classic textbook sample: mean 5, population sd 2
TEXTBOOK_SAMPLE = [2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]
TEXTBOOK_SAMPLE_SD = 2.138089935299395  # sqrt(32 / 7)


class RecordingAccelerator(CPUAccelerator):
    """
    CPU accelerator that records every primitive call.

    Args:
        fail_calls: Maps a 0-based call index to the device code that call
            should report instead of running.
    """

    def __init__(self, fail_calls=None, allocation_size=DEFAULT_ALLOCATION_SIZE):
        super().__init__(allocation_size=allocation_size)
        self.calls = []
        self.fail_calls = dict(fail_calls or {})

    @property
    def name(self):
        return 'recording'

    def _run(self, operation, buffers, kernel, *args, extra_bytes=0):
        if self.released:
            return super()._run(operation, buffers, kernel, *args, extra_bytes=extra_bytes)
        index = len(self.calls)
        self.calls.append(operation)
        if index in self.fail_calls:
            return self.fail_calls[index], None
        return super()._run(operation, buffers, kernel, *args, extra_bytes=extra_bytes)


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def engine():
    """CPU engine, closed after the test."""
    with StatsEngine(device='cpu') as e:
        yield e


@pytest.fixture
def recording():
    """Build an engine on a RecordingAccelerator: returns (engine, accelerator)."""
    engines = []

    def _make(fail_calls=None, allocation_size=DEFAULT_ALLOCATION_SIZE):
        accelerator = RecordingAccelerator(fail_calls, allocation_size)
        e = StatsEngine(accelerator=accelerator)
        engines.append(e)
        return e, accelerator

    yield _make
    for e in engines:
        e.close()


@pytest.fixture
def textbook_sample():
    return np.array(TEXTBOOK_SAMPLE)


@pytest.fixture
def two_asset_portfolio():
    """Weights and covariance with W Σ Wᵗ = 4400."""
    weights = np.array([100.0, 200.0])
    covariance = np.array([[0.04, 0.01], [0.01, 0.09]])
    return weights, covariance
