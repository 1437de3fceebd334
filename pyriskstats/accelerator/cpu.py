"""
CPU reference accelerator using NumPy.

Reductions accumulate in float64 regardless of sample precision, over
deviations scaled by their largest magnitude. GEMM runs in the operands'
own precision (BLAS sgemm/dgemm via NumPy).
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pyriskstats.accelerator.base import Accelerator, DEFAULT_ALLOCATION_SIZE
from pyriskstats.core.compute.device import DeviceInfo, get_cpu_info


def _scaled_deviations(sample: NDArray, mean: float) -> tuple[NDArray, float]:
    """
    Deviations from mean in float64, divided by their largest magnitude.

    Returns the scaled deviations and the scale. Squaring unit-bounded
    values cannot overflow, and tiny deviations are not flushed to zero.
    A scale of 0 means every deviation is exactly zero.
    """
    d = sample.astype(np.float64) - mean
    scale = float(np.max(np.abs(d)))
    if scale == 0.0 or not np.isfinite(scale):
        return d, scale
    return d / scale, scale


class CPUAccelerator(Accelerator):
    """CPU reference accelerator."""

    def __init__(
        self,
        device: DeviceInfo | None = None,
        allocation_size: int = DEFAULT_ALLOCATION_SIZE,
    ):
        if device is None:
            device = get_cpu_info()
        elif device.device_type != 'cpu':
            raise ValueError(f"CPUAccelerator requires a CPU device, got {device.device_type}")
        super().__init__(device, allocation_size)

    @property
    def name(self) -> str:
        return 'cpu_numpy'

    def _stddev(self, sample: NDArray, mean: float, ddof: int) -> float:
        u, scale = _scaled_deviations(sample, mean)
        return scale * float(np.sqrt(np.dot(u, u) / (sample.shape[0] - ddof)))

    def _covariance(
        self, x: NDArray, x_mean: float, y: NDArray, y_mean: float, ddof: int,
    ) -> float:
        ux, sx = _scaled_deviations(x, x_mean)
        uy, sy = _scaled_deviations(y, y_mean)
        return sx * sy * float(np.dot(ux, uy) / (x.shape[0] - ddof))

    def _pearson(self, x: NDArray, x_mean: float, y: NDArray, y_mean: float) -> float:
        ux, _ = _scaled_deviations(x, x_mean)
        uy, _ = _scaled_deviations(y, y_mean)
        # All-zero deviations give 0/0; the engine reports the NaN
        with np.errstate(invalid='ignore', divide='ignore'):
            return float(np.dot(ux, uy) / np.sqrt(np.dot(ux, ux) * np.dot(uy, uy)))

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
        op_a = a.T if transpose_left else a
        op_b = b.T if transpose_right else b
        dtype = a.dtype

        if alpha == 0:
            out = np.zeros((op_a.shape[0], op_b.shape[1]), dtype=dtype)
        else:
            out = (op_a @ op_b) * dtype.type(alpha)

        if beta != 0 and c is not None:
            out = out + c * dtype.type(beta)

        return np.ascontiguousarray(out, dtype=dtype)
