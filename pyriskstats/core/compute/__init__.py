"""
Shared compute infrastructure for pyriskstats.

IMPORTANT: This is NOT where accelerators live. Those go in
pyriskstats.accelerator. This module contains device detection and
measurement helpers shared by every accelerator.

Submodules:
    device: Hardware detection and device selection
    timing: Execution timing utilities
    tolerances: Per-precision comparison tolerances
"""

from pyriskstats.core.compute.device import (
    DeviceInfo,
    detect_gpu,
    get_cpu_info,
    resolve_device,
    select_device,
)
from pyriskstats.core.compute.timing import Timer
from pyriskstats.core.compute.tolerances import ToleranceTier, select_tolerance

__all__ = [
    # Device detection
    "DeviceInfo",
    "detect_gpu",
    "get_cpu_info",
    "resolve_device",
    "select_device",
    # Timing
    "Timer",
    # Tolerances
    "ToleranceTier",
    "select_tolerance",
]
