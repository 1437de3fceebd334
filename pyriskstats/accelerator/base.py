"""
Accelerator handle: the device-resident numeric service.

An accelerator is bound to one compute device and a working-set budget
(allocation_size, in bytes). It exposes scalar reductions over raw sample
buffers with caller-supplied means, and a dense GEMM. Every primitive
returns ``(code, value)`` where ``code`` is a device status integer;
DEVICE_OK means success and anything else is a device failure whose value
must not be used.

Lifecycle: acquired at construction, released exactly once by release().
Further release() calls are no-ops. Any primitive called after release
raises HandleReleasedError.

All primitives run under a per-instance lock, so one accelerator may be
shared by threads; the device work itself is serialized.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable

import numpy as np
from numpy.typing import NDArray

from pyriskstats.core.compute.device import DeviceInfo
from pyriskstats.core.exceptions import HandleReleasedError
from pyriskstats.core.validation import check_positive_int

logger = logging.getLogger(__name__)

# Device status codes
DEVICE_OK = 0
DEVICE_ALLOCATION_FAILED = 2
DEVICE_EXECUTION_FAILED = 4

DEFAULT_ALLOCATION_SIZE = 256 * 1024 * 1024

ScalarReply = tuple[int, float | None]
MatrixReply = tuple[int, NDArray[np.floating[Any]] | None]


class Accelerator(ABC):
    """
    Abstract accelerator handle.

    Subclasses implement the private kernels (_stddev, _covariance,
    _pearson, _gemm). The public primitives add locking, release checks,
    the allocation budget and translation of device exceptions into
    status codes.
    """

    def __init__(self, device: DeviceInfo, allocation_size: int = DEFAULT_ALLOCATION_SIZE):
        self._device = device
        self._allocation_size = check_positive_int(allocation_size, 'allocation_size')
        self._lock = threading.Lock()
        self._released = False
        logger.debug(
            "Acquired %s on %s (allocation_size=%d)",
            self.name, device, self._allocation_size,
        )

    # --- Identity and lifecycle ---

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Accelerator identifier.

        Convention: '{device}_{library}[_{precision}]'
        Examples: 'cpu_numpy', 'gpu_cuda_fp32', 'gpu_mps_fp32'
        """

    @property
    def device(self) -> DeviceInfo:
        return self._device

    @property
    def allocation_size(self) -> int:
        """Working-set budget in bytes."""
        return self._allocation_size

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Release device resources. Safe to call more than once."""
        with self._lock:
            if self._released:
                return
            self._released = True
            self._release_resources()
        logger.debug("Released %s on %s", self.name, self._device)

    def synchronize(self) -> None:
        """Block until queued device work has finished."""
        return None

    def __enter__(self) -> Accelerator:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self._released else "active"
        return (
            f"{type(self).__name__}(device={self._device}, "
            f"allocation_size={self._allocation_size}, {state})"
        )

    # --- Primitives ---

    def sample_stddev(self, sample: NDArray, mean: float) -> ScalarReply:
        """Unbiased (n - 1) standard deviation of sample around mean."""
        return self._run('sample_stddev', (sample,), self._stddev, sample, mean, 1)

    def population_stddev(self, sample: NDArray, mean: float) -> ScalarReply:
        """Population (n) standard deviation of sample around mean."""
        return self._run('population_stddev', (sample,), self._stddev, sample, mean, 0)

    def sample_covariance(
        self, x: NDArray, x_mean: float, y: NDArray, y_mean: float,
    ) -> ScalarReply:
        """Unbiased (n - 1) covariance of equal-length x and y."""
        return self._run(
            'sample_covariance', (x, y), self._covariance, x, x_mean, y, y_mean, 1,
        )

    def population_covariance(
        self, x: NDArray, x_mean: float, y: NDArray, y_mean: float,
    ) -> ScalarReply:
        """Population (n) covariance of equal-length x and y."""
        return self._run(
            'population_covariance', (x, y), self._covariance, x, x_mean, y, y_mean, 0,
        )

    def pearson_correlation(
        self, x: NDArray, x_mean: float, y: NDArray, y_mean: float,
    ) -> ScalarReply:
        """Pearson correlation of equal-length x and y."""
        return self._run(
            'pearson_correlation', (x, y), self._pearson, x, x_mean, y, y_mean,
        )

    def multiply(
        self,
        transpose_left: bool,
        transpose_right: bool,
        alpha: float,
        a: NDArray,
        b: NDArray,
        beta: float,
        c: NDArray | None = None,
    ) -> MatrixReply:
        """
        GEMM: alpha * op(a) @ op(b) + beta * c.

        Operands must already be 2D, of one dtype, and shape-compatible.
        As in BLAS, a and b are not read when alpha is zero and c is not
        read when beta is zero.
        """
        rows = a.shape[1] if transpose_left else a.shape[0]
        cols = b.shape[0] if transpose_right else b.shape[1]
        buffers = (a, b) if c is None else (a, b, c)
        return self._run(
            'multiply', buffers, self._gemm,
            transpose_left, transpose_right, alpha, a, b, beta, c,
            extra_bytes=rows * cols * a.dtype.itemsize,
        )

    # --- Plumbing ---

    def _run(
        self,
        operation: str,
        buffers: tuple[NDArray, ...],
        kernel: Callable[..., Any],
        *args: Any,
        extra_bytes: int = 0,
    ) -> tuple[int, Any]:
        with self._lock:
            if self._released:
                raise HandleReleasedError(
                    f"{operation}() called on released accelerator {self.name}",
                    backend_name=self.name,
                )
            needed = sum(buf.nbytes for buf in buffers) + extra_bytes
            if needed > self._allocation_size:
                logger.warning(
                    "%s: %s needs %d bytes, allocation_size is %d",
                    self.name, operation, needed, self._allocation_size,
                )
                return DEVICE_ALLOCATION_FAILED, None
            try:
                return DEVICE_OK, kernel(*args)
            except Exception as exc:
                code = self._classify_error(exc)
                if code is None:
                    raise
                logger.warning("%s: %s failed with code %d: %s", self.name, operation, code, exc)
                return code, None

    def _classify_error(self, exc: Exception) -> int | None:
        """Map a kernel exception to a device code, or None to re-raise."""
        if isinstance(exc, MemoryError):
            return DEVICE_ALLOCATION_FAILED
        return None

    def _release_resources(self) -> None:
        """Free device memory held by this accelerator."""
        return None

    # --- Kernels ---

    @abstractmethod
    def _stddev(self, sample: NDArray, mean: float, ddof: int) -> float:
        ...

    @abstractmethod
    def _covariance(
        self, x: NDArray, x_mean: float, y: NDArray, y_mean: float, ddof: int,
    ) -> float:
        ...

    @abstractmethod
    def _pearson(self, x: NDArray, x_mean: float, y: NDArray, y_mean: float) -> float:
        ...

    @abstractmethod
    def _gemm(
        self,
        transpose_left: bool,
        transpose_right: bool,
        alpha: float,
        a: NDArray,
        b: NDArray,
        beta: float,
        c: NDArray | None,
    ) -> NDArray:
        ...
