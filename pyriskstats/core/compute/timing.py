"""
Execution timing utilities.

Accurate timing for CPU and GPU accelerators. GPU kernels launch
asynchronously, so the timer calls the accelerator's synchronize hook
before each measurement.
"""

import time
from contextlib import contextmanager
from typing import Callable, Iterator


def _no_sync() -> None:
    return None


class Timer:
    """
    Accumulating timer with an optional device synchronization hook.

    Usage:
        timer = Timer(sync=accelerator.synchronize)
        timer.start()

        with timer.section('mean'):
            mean = float(np.mean(sample))

        with timer.section('reduction'):
            code, value = accelerator.sample_stddev(sample, mean)

        timer.stop()
        timer.result()
        # {'total_seconds': 0.004, 'mean': 0.001, 'reduction': 0.003}
    """

    def __init__(self, sync: Callable[[], None] | None = None):
        """
        Args:
            sync: Called before every clock read. Accelerators running
                asynchronous kernels pass their synchronize method.
        """
        self._sync = sync or _no_sync
        self._sections: dict[str, float] = {}
        self._start_time: float | None = None
        self._total: float | None = None

    def start(self) -> None:
        """Start the overall timer."""
        self._sync()
        self._start_time = time.perf_counter()

    def stop(self) -> None:
        """Stop the overall timer."""
        self._sync()
        if self._start_time is None:
            raise RuntimeError("Timer.stop() called before start()")
        self._total = time.perf_counter() - self._start_time

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        """
        Time a named section.

        Repeated sections with the same name accumulate, which is how the
        matrix builders report total reduction time over all pairs.
        """
        self._sync()
        start = time.perf_counter()
        try:
            yield
        finally:
            self._sync()
            elapsed = time.perf_counter() - start
            self._sections[name] = self._sections.get(name, 0.0) + elapsed

    def result(self) -> dict[str, float]:
        """
        Get timing results.

        Returns:
            Dictionary with 'total_seconds' and all section timings

        Raises:
            RuntimeError: If called before stop()
        """
        if self._total is None:
            raise RuntimeError("Timer.result() called before stop()")

        result = {'total_seconds': self._total}
        result.update(self._sections)
        return result
