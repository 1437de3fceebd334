"""
Tolerance tiers for numerical validation.

Defines precision expectations per compute path:
- CPU FP64 (reference): machine precision
- CPU FP32: single-precision reductions accumulated in float64
- GPU FP64: same as CPU FP64
- GPU FP32: relaxed for single-precision device arithmetic
- MPS FP32: Apple Silicon, always single precision

Used to compare accelerator output against the CPU float64 reference, and
by the engine to bound how far rounding may push a correlation past +/-1.
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class ToleranceTier:
    """Tolerance specification for numerical comparison."""
    rtol: float
    atol: float
    name: str
    description: str


CPU_FP64 = ToleranceTier(
    rtol=1e-10,
    atol=1e-12,
    name='cpu_fp64',
    description='CPU double precision reference',
)

CPU_FP32 = ToleranceTier(
    rtol=1e-5,
    atol=1e-6,
    name='cpu_fp32',
    description='CPU single-precision input, float64 accumulation',
)

GPU_FP64 = ToleranceTier(
    rtol=1e-10,
    atol=1e-12,
    name='gpu_fp64',
    description='GPU double precision, matches CPU reference',
)

GPU_FP32 = ToleranceTier(
    rtol=1e-4,
    atol=1e-5,
    name='gpu_fp32',
    description='GPU single precision, statistically equivalent',
)

# MPS (Apple Silicon GPU) has no float64
MPS_FP32 = ToleranceTier(
    rtol=1e-4,
    atol=1e-5,
    name='mps_fp32',
    description='Apple Silicon GPU, single precision only',
)


def select_tolerance(backend_name: str, dtype: np.dtype | type = np.float64) -> ToleranceTier:
    """Select the tolerance tier for a backend and sample precision."""
    is_fp32 = np.dtype(dtype) == np.float32
    if 'mps' in backend_name:
        return MPS_FP32
    if 'gpu' in backend_name:
        if is_fp32 or 'fp32' in backend_name:
            return GPU_FP32
        return GPU_FP64
    return CPU_FP32 if is_fp32 else CPU_FP64
