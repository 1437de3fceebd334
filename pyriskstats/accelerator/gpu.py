"""
GPU accelerator using PyTorch.

Performance path for large samples, validated against the CPU reference.
Supports CUDA (Linux/Windows) and MPS (macOS Apple Silicon).

FP32 by default. With use_fp64=True, float64 samples are reduced and
multiplied in float64 (CUDA only; MPS has no float64). Results always
come back as host values: Python floats for reductions, NumPy arrays in
the operands' precision for GEMM.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import NDArray

from pyriskstats.accelerator.base import (
    Accelerator,
    DEFAULT_ALLOCATION_SIZE,
    DEVICE_ALLOCATION_FAILED,
    DEVICE_EXECUTION_FAILED,
)
from pyriskstats.core.compute.device import DeviceInfo, detect_gpu


class GPUAccelerator(Accelerator):
    """
    GPU accelerator using PyTorch.

    Reductions are dot products over centered device tensors scaled by
    their largest magnitude; GEMM is torch.matmul. Device out-of-memory is reported as
    DEVICE_ALLOCATION_FAILED and other device runtime errors as
    DEVICE_EXECUTION_FAILED.
    """

    def __init__(
        self,
        device: DeviceInfo | None = None,
        allocation_size: int = DEFAULT_ALLOCATION_SIZE,
        use_fp64: bool = False,
    ):
        """
        Args:
            device: GPU DeviceInfo from select_device(). If None, auto-selects.
            allocation_size: Working-set budget in bytes.
            use_fp64: Keep float64 samples in float64 on the device.
        """
        import torch

        self._torch = torch

        if device is None:
            device = detect_gpu()
            if device is None:
                raise RuntimeError("No GPU available. Use device='cpu' instead.")
        if not device.is_gpu:
            raise ValueError(f"GPUAccelerator requires GPU device, got {device.device_type}")
        if device.device_type == 'mps' and use_fp64:
            raise RuntimeError(
                "MPS does not support float64. Use use_fp64=False "
                "or device='cpu' for double precision."
            )

        self._torch_device = torch.device(device.torch_device)
        self._use_fp64 = use_fp64
        super().__init__(device, allocation_size)

    @property
    def name(self) -> str:
        precision = "fp64" if self._use_fp64 else "fp32"
        return f'gpu_{self._device.device_type}_{precision}'

    def synchronize(self) -> None:
        if self._device.device_type == 'cuda':
            self._torch.cuda.synchronize(self._torch_device)
        elif self._device.device_type == 'mps':
            self._torch.mps.synchronize()

    def _release_resources(self) -> None:
        if self._device.device_type == 'cuda':
            self._torch.cuda.empty_cache()
        elif self._device.device_type == 'mps':
            self._torch.mps.empty_cache()

    def _classify_error(self, exc: Exception) -> int | None:
        torch = self._torch
        if isinstance(exc, (MemoryError, torch.cuda.OutOfMemoryError)):
            return DEVICE_ALLOCATION_FAILED
        if isinstance(exc, RuntimeError):
            return DEVICE_EXECUTION_FAILED
        return None

    def _compute_dtype(self, dtype: np.dtype) -> Any:
        if self._use_fp64 and dtype == np.float64:
            return self._torch.float64
        return self._torch.float32

    def _to_device(self, array: NDArray) -> Any:
        return self._torch.from_numpy(np.ascontiguousarray(array)).to(
            device=self._torch_device, dtype=self._compute_dtype(array.dtype)
        )

    def _scaled_deviations(self, sample: NDArray, mean: float) -> tuple[Any, float]:
        d = self._to_device(sample) - mean
        scale = float(d.abs().max().item())
        if scale == 0.0 or not np.isfinite(scale):
            return d, scale
        return d / scale, scale

    def _stddev(self, sample: NDArray, mean: float, ddof: int) -> float:
        u, scale = self._scaled_deviations(sample, mean)
        return scale * float(self._torch.sqrt(self._torch.dot(u, u) / (sample.shape[0] - ddof)).item())

    def _covariance(
        self, x: NDArray, x_mean: float, y: NDArray, y_mean: float, ddof: int,
    ) -> float:
        ux, sx = self._scaled_deviations(x, x_mean)
        uy, sy = self._scaled_deviations(y, y_mean)
        return sx * sy * float((self._torch.dot(ux, uy) / (x.shape[0] - ddof)).item())

    def _pearson(self, x: NDArray, x_mean: float, y: NDArray, y_mean: float) -> float:
        torch = self._torch
        ux, _ = self._scaled_deviations(x, x_mean)
        uy, _ = self._scaled_deviations(y, y_mean)
        r = torch.dot(ux, uy) / torch.sqrt(torch.dot(ux, ux) * torch.dot(uy, uy))
        return float(r.item())

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
        torch = self._torch
        rows = a.shape[1] if transpose_left else a.shape[0]
        cols = b.shape[0] if transpose_right else b.shape[1]

        if alpha == 0:
            out = torch.zeros(
                (rows, cols), device=self._torch_device, dtype=self._compute_dtype(a.dtype)
            )
        else:
            op_a = self._to_device(a)
            op_b = self._to_device(b)
            if transpose_left:
                op_a = op_a.T
            if transpose_right:
                op_b = op_b.T
            out = torch.matmul(op_a, op_b) * alpha

        if beta != 0 and c is not None:
            out = out + self._to_device(c) * beta

        return out.cpu().numpy().astype(a.dtype, copy=False)
