"""
Accelerator selection.

Turns a device argument ('auto', 'cpu', 'gpu', a CUDA ordinal or a
DeviceInfo) into a freshly acquired accelerator. The caller owns the
returned handle and must release() it.
"""

from __future__ import annotations

from typing import Literal

from pyriskstats.accelerator.base import Accelerator, DEFAULT_ALLOCATION_SIZE
from pyriskstats.accelerator.cpu import CPUAccelerator
from pyriskstats.core.compute.device import DeviceInfo, resolve_device


DeviceChoice = DeviceInfo | Literal['auto', 'cpu', 'gpu'] | int


def open_accelerator(
    device: DeviceChoice = 'auto',
    allocation_size: int = DEFAULT_ALLOCATION_SIZE,
    *,
    use_fp64: bool = False,
) -> Accelerator:
    """
    Acquire an accelerator for a device.

    Args:
        device: 'auto' (GPU if available, else CPU), 'cpu', 'gpu' (raises
            if no GPU), a CUDA device ordinal, or a DeviceInfo.
        allocation_size: Working-set budget in bytes.
        use_fp64: GPU only. Keep float64 operands in float64 on the device.

    Returns:
        An active accelerator owned by the caller.

    Raises:
        RuntimeError: If a GPU was requested but is not available
        ValidationError: If device or allocation_size is invalid
    """
    info = resolve_device(device)

    if not info.is_gpu:
        return CPUAccelerator(info, allocation_size)

    # detect_gpu() only reports a GPU when torch imports, so this is safe
    from pyriskstats.accelerator.gpu import GPUAccelerator
    return GPUAccelerator(info, allocation_size, use_fp64=use_fp64)
