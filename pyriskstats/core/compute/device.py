"""
Hardware detection and device management.

Provides a unified interface for detecting available compute devices
and their capabilities. Accelerators are bound to the DeviceInfo returned
here.
"""

from dataclasses import dataclass
from typing import Literal
import platform

from pyriskstats.core.exceptions import ValidationError


DevicePreference = Literal['cpu', 'gpu', 'auto']


@dataclass(frozen=True)
class DeviceInfo:
    """
    Information about a compute device.

    Attributes:
        device_type: Type of device ('cpu', 'cuda', 'mps')
        device_index: Device index (None for CPU)
        name: Human-readable device name
        memory_bytes: Total device memory in bytes (None if unknown)
        compute_capability: CUDA compute capability as (major, minor), None for non-CUDA
    """
    device_type: Literal['cpu', 'cuda', 'mps']
    device_index: int | None
    name: str
    memory_bytes: int | None
    compute_capability: tuple[int, int] | None

    def __str__(self) -> str:
        if self.device_type == 'cpu':
            return f"CPU ({self.name})"
        mem_str = ""
        if self.memory_bytes is not None:
            mem_gb = self.memory_bytes / (1024**3)
            mem_str = f", {mem_gb:.1f}GB"
        return f"{self.device_type.upper()}:{self.device_index} ({self.name}{mem_str})"

    @property
    def is_gpu(self) -> bool:
        """True if this is a GPU device."""
        return self.device_type in ('cuda', 'mps')

    @property
    def torch_device(self) -> str:
        """Device string understood by torch.device()."""
        if self.device_type == 'cuda':
            return f"cuda:{self.device_index or 0}"
        return self.device_type


def detect_gpu(index: int | None = None) -> DeviceInfo | None:
    """
    Detect available GPU, if any.

    Args:
        index: CUDA device ordinal to describe. None selects the current
            device. Ignored for MPS.

    Returns:
        DeviceInfo for the best available GPU, or None if no GPU available.

    Priority: CUDA > MPS (Apple Silicon)

    Note:
        torch is imported lazily; without it no GPU is reported.
    """
    try:
        import torch
    except ImportError:
        return None

    if torch.cuda.is_available():
        idx = torch.cuda.current_device() if index is None else index
        if idx >= torch.cuda.device_count():
            return None
        props = torch.cuda.get_device_properties(idx)
        return DeviceInfo(
            device_type='cuda',
            device_index=idx,
            name=props.name,
            memory_bytes=props.total_memory,
            compute_capability=(props.major, props.minor)
        )

    if hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
        return DeviceInfo(
            device_type='mps',
            device_index=0,
            name='Apple Silicon GPU',
            memory_bytes=None,  # MPS doesn't expose memory info easily
            compute_capability=None
        )

    return None


def get_cpu_info() -> DeviceInfo:
    """Get CPU device info."""
    processor = platform.processor()
    if not processor:
        processor = platform.machine() or "Unknown CPU"

    return DeviceInfo(
        device_type='cpu',
        device_index=None,
        name=processor,
        memory_bytes=None,
        compute_capability=None
    )


def select_device(prefer: DevicePreference = 'auto') -> DeviceInfo:
    """
    Select compute device based on preference and availability.

    Args:
        prefer: Device preference
            - 'cpu': Always use CPU
            - 'gpu': Require GPU (raises if unavailable)
            - 'auto': Use GPU if available, else CPU

    Returns:
        DeviceInfo for selected device

    Raises:
        RuntimeError: If 'gpu' requested but no GPU available
        ValidationError: If prefer is not a known preference
    """
    if prefer not in ('cpu', 'gpu', 'auto'):
        raise ValidationError(
            f"Unknown device preference: {prefer!r}. Use 'auto', 'cpu' or 'gpu'."
        )

    if prefer == 'cpu':
        return get_cpu_info()

    gpu = detect_gpu()

    if prefer == 'gpu':
        if gpu is None:
            raise RuntimeError(
                "GPU requested but no GPU available. "
                "Ensure PyTorch is installed with CUDA/MPS support."
            )
        return gpu

    return gpu if gpu is not None else get_cpu_info()


def resolve_device(device: DeviceInfo | DevicePreference | int) -> DeviceInfo:
    """
    Turn a device argument into a DeviceInfo.

    Args:
        device: A DeviceInfo (returned unchanged), a preference string
            accepted by select_device(), or a CUDA ordinal.

    Raises:
        RuntimeError: If the requested GPU is not available
        ValidationError: If the argument is not understood
    """
    if isinstance(device, DeviceInfo):
        return device
    if isinstance(device, bool):
        raise ValidationError(f"Unknown device: {device!r}")
    if isinstance(device, int):
        gpu = detect_gpu(index=device)
        if gpu is None or gpu.device_type != 'cuda':
            raise RuntimeError(f"CUDA device {device} is not available")
        return gpu
    return select_device(device)
