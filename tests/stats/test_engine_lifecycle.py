"""
Tests for StatsEngine ownership of its accelerator.
"""

import gc
import logging
import threading

import numpy as np
import pytest

from pyriskstats.accelerator.cpu import CPUAccelerator
from pyriskstats.core.exceptions import HandleReleasedError, ValidationError
from pyriskstats.stats import StatsEngine


class TestOwnership:

    def test_close_releases_accelerator(self):
        accelerator = CPUAccelerator()
        engine = StatsEngine(accelerator=accelerator)
        engine.close()
        assert engine.closed
        assert accelerator.released

    def test_close_is_idempotent(self):
        engine = StatsEngine(device='cpu')
        engine.close()
        engine.close()
        assert engine.closed

    def test_context_manager(self):
        with StatsEngine(device='cpu') as engine:
            assert not engine.closed
        assert engine.closed

    def test_released_accelerator_rejected(self):
        accelerator = CPUAccelerator()
        accelerator.release()
        with pytest.raises(HandleReleasedError):
            StatsEngine(accelerator=accelerator)

    def test_unknown_device(self):
        with pytest.raises(ValidationError):
            StatsEngine(device='tpu')

    def test_bad_allocation_size(self):
        with pytest.raises(ValidationError, match="allocation_size"):
            StatsEngine(device='cpu', allocation_size=0)

    def test_allocation_size_reaches_accelerator(self, textbook_sample):
        with StatsEngine(device='cpu', allocation_size=8) as engine:
            assert not engine.standard_deviation(textbook_sample).ok

    def test_unclosed_engine_warns(self):
        engine = StatsEngine(device='cpu')
        with pytest.warns(ResourceWarning, match="not closed"):
            del engine
            gc.collect()

    def test_acquire_logged(self, caplog):
        with caplog.at_level(logging.DEBUG, logger='pyriskstats'):
            StatsEngine(device='cpu').close()
        assert any("Acquired cpu_numpy" in r.getMessage() for r in caplog.records)

    def test_repr(self, engine):
        assert "cpu_numpy" in repr(engine)
        assert "open" in repr(engine)


class TestUseAfterClose:

    def test_operations_raise(self, textbook_sample):
        engine = StatsEngine(device='cpu')
        engine.close()
        with pytest.raises(HandleReleasedError):
            engine.standard_deviation(textbook_sample)
        with pytest.raises(HandleReleasedError):
            engine.correlation_matrix([textbook_sample])

    def test_sub_components_raise(self):
        engine = StatsEngine(device='cpu')
        engine.close()
        with pytest.raises(HandleReleasedError):
            engine.composer
        with pytest.raises(HandleReleasedError):
            engine.value_at_risk([1.0], [[1.0]], 1.645)

    def test_borrowed_composer_raises(self):
        engine = StatsEngine(device='cpu')
        composer = engine.composer
        engine.close()
        with pytest.raises(HandleReleasedError):
            composer.multiply(False, False, 1.0, np.eye(2), np.eye(2))


class TestSharedEngine:

    def test_threads_share_one_engine(self, engine, rng):
        data = rng.standard_normal((4, 300))
        expected = engine.correlation_matrix(data).value
        results = []

        def worker():
            results.append(engine.correlation_matrix(data))

        threads = [threading.Thread(target=worker) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert all(r.ok for r in results)
        for r in results:
            np.testing.assert_array_equal(r.value, expected)

    def test_independent_engines(self, textbook_sample):
        with StatsEngine(device='cpu') as a, StatsEngine(device='cpu') as b:
            a.close()
            assert b.standard_deviation(textbook_sample).value == pytest.approx(2.0)
