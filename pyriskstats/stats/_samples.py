"""
Host-side sample preparation shared by the engine's operations.

Everything here runs before the accelerator is touched, so a rejected
input never costs a device call.
"""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyriskstats.core.exceptions import ValidationError
from pyriskstats.core.validation import (
    check_1d,
    check_array,
    check_consistent_length,
    check_finite,
    check_finite_scalar,
    check_min_samples,
    check_same_dtype,
)


def prepare_sample(sample: ArrayLike, name: str, min_samples: int = 1) -> NDArray[np.floating[Any]]:
    """Validate one sample: float32/float64, 1D, finite, long enough."""
    arr = check_array(sample, name)
    check_1d(arr, name)
    check_min_samples(arr, min_samples, name)
    check_finite(arr, name)
    return arr


def prepare_pair(
    x: ArrayLike,
    y: ArrayLike,
    min_samples: int = 1,
) -> tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]]:
    """Validate two samples of equal length and equal precision."""
    x_arr = prepare_sample(x, 'x', min_samples)
    y_arr = prepare_sample(y, 'y', min_samples)
    check_consistent_length(x_arr, y_arr, names=('x', 'y'))
    check_same_dtype(x_arr, y_arr, names=('x', 'y'))
    return x_arr, y_arr


def prepare_sets(sets: Sequence[ArrayLike]) -> list[NDArray[np.floating[Any]]]:
    """
    Validate a collection of samples for a pairwise matrix.

    Every set must be 1D, finite and of one common precision. Lengths are
    not compared here; that happens per pair.
    """
    try:
        items = list(sets)
    except TypeError as e:
        raise ValidationError(f"sets: expected a sequence of samples: {e}") from e
    if not items:
        raise ValidationError("sets: need at least 1 sample, got 0")

    arrays = []
    for i, item in enumerate(items):
        name = f'sets[{i}]'
        arr = check_array(item, name)
        check_1d(arr, name)
        check_finite(arr, name)
        arrays.append(arr)

    check_same_dtype(*arrays, names=tuple(f'sets[{i}]' for i in range(len(arrays))))
    return arrays


def sample_mean(sample: NDArray[np.floating[Any]]) -> float:
    """Arithmetic mean, accumulated in float64."""
    return float(np.mean(sample, dtype=np.float64))


def resolve_mean(sample: NDArray[np.floating[Any]], mean: Any, name: str) -> float:
    """Use the caller's mean if given, else compute it (an extra pass)."""
    if mean is None:
        m = sample_mean(sample)
        if not np.isfinite(m):
            raise ValidationError(f"{name}: sample mean overflows float64 ({m!r})")
        return m
    return check_finite_scalar(mean, name)
