"""
Accelerator handles.

An accelerator performs the raw reductions and dense matrix products the
statistics layer is built on.

Available accelerators:
    CPUAccelerator: NumPy reference implementation
    GPUAccelerator: PyTorch on CUDA or MPS (imported lazily)
"""

from pyriskstats.accelerator.base import (
    Accelerator,
    DEFAULT_ALLOCATION_SIZE,
    DEVICE_ALLOCATION_FAILED,
    DEVICE_EXECUTION_FAILED,
    DEVICE_OK,
)
from pyriskstats.accelerator.cpu import CPUAccelerator
from pyriskstats.accelerator.select import open_accelerator

__all__ = [
    "Accelerator",
    "CPUAccelerator",
    "open_accelerator",
    "DEFAULT_ALLOCATION_SIZE",
    "DEVICE_OK",
    "DEVICE_ALLOCATION_FAILED",
    "DEVICE_EXECUTION_FAILED",
]
