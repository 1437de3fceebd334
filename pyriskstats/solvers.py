"""
One-shot functional API.

Each function opens a StatsEngine for a single call and closes it before
returning, so no accelerator outlives the call. For repeated work, hold a
StatsEngine open instead; acquiring a GPU accelerator is not free.
"""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyriskstats.accelerator.base import DEFAULT_ALLOCATION_SIZE
from pyriskstats.accelerator.select import DeviceChoice
from pyriskstats.core.result import Result
from pyriskstats.stats.engine import StatsEngine


def sample_sd(
    sample: ArrayLike,
    mean: float | None = None,
    *,
    device: DeviceChoice = 'auto',
    allocation_size: int = DEFAULT_ALLOCATION_SIZE,
) -> Result[float]:
    """Unbiased (n - 1) standard deviation."""
    with StatsEngine(device, allocation_size) as engine:
        return engine.sample_standard_deviation(sample, mean)


def sd(
    sample: ArrayLike,
    mean: float | None = None,
    *,
    device: DeviceChoice = 'auto',
    allocation_size: int = DEFAULT_ALLOCATION_SIZE,
) -> Result[float]:
    """Population (n) standard deviation."""
    with StatsEngine(device, allocation_size) as engine:
        return engine.standard_deviation(sample, mean)


def var(
    sample: ArrayLike,
    mean: float | None = None,
    *,
    unbiased: bool = True,
    device: DeviceChoice = 'auto',
    allocation_size: int = DEFAULT_ALLOCATION_SIZE,
) -> Result[float]:
    """Variance, unbiased (n - 1) by default."""
    with StatsEngine(device, allocation_size) as engine:
        return engine.variance(sample, mean, unbiased=unbiased)


def sample_cov(
    x: ArrayLike,
    y: ArrayLike,
    *,
    x_mean: float | None = None,
    y_mean: float | None = None,
    device: DeviceChoice = 'auto',
    allocation_size: int = DEFAULT_ALLOCATION_SIZE,
) -> Result[float]:
    """Unbiased (n - 1) covariance of x and y."""
    with StatsEngine(device, allocation_size) as engine:
        return engine.sample_covariance(x, y, x_mean=x_mean, y_mean=y_mean)


def cov(
    x: ArrayLike,
    y: ArrayLike,
    *,
    x_mean: float | None = None,
    y_mean: float | None = None,
    device: DeviceChoice = 'auto',
    allocation_size: int = DEFAULT_ALLOCATION_SIZE,
) -> Result[float]:
    """Population (n) covariance of x and y."""
    with StatsEngine(device, allocation_size) as engine:
        return engine.covariance(x, y, x_mean=x_mean, y_mean=y_mean)


def cor(
    x: ArrayLike,
    y: ArrayLike,
    *,
    x_mean: float | None = None,
    y_mean: float | None = None,
    device: DeviceChoice = 'auto',
    allocation_size: int = DEFAULT_ALLOCATION_SIZE,
) -> Result[float]:
    """Pearson correlation of x and y."""
    with StatsEngine(device, allocation_size) as engine:
        return engine.correlation(x, y, x_mean=x_mean, y_mean=y_mean)


def cov_matrix(
    sets: Sequence[ArrayLike],
    *,
    unbiased: bool = False,
    fail_fast: bool = False,
    device: DeviceChoice = 'auto',
    allocation_size: int = DEFAULT_ALLOCATION_SIZE,
) -> Result[NDArray[np.floating[Any]]]:
    """N x N covariance matrix over every ordered pair of samples."""
    with StatsEngine(device, allocation_size) as engine:
        return engine.covariance_matrix(sets, unbiased=unbiased, fail_fast=fail_fast)


def cor_matrix(
    sets: Sequence[ArrayLike],
    *,
    fail_fast: bool = False,
    device: DeviceChoice = 'auto',
    allocation_size: int = DEFAULT_ALLOCATION_SIZE,
) -> Result[NDArray[np.floating[Any]]]:
    """N x N Pearson correlation matrix over every ordered pair of samples."""
    with StatsEngine(device, allocation_size) as engine:
        return engine.correlation_matrix(sets, fail_fast=fail_fast)


def multiply(
    transpose_left: bool,
    transpose_right: bool,
    alpha: float,
    a: ArrayLike,
    b: ArrayLike,
    beta: float = 0.0,
    c: ArrayLike | None = None,
    *,
    device: DeviceChoice = 'auto',
    allocation_size: int = DEFAULT_ALLOCATION_SIZE,
) -> Result[NDArray[np.floating[Any]]]:
    """alpha * op(a) @ op(b) + beta * c. See MatrixComposer.multiply()."""
    with StatsEngine(device, allocation_size) as engine:
        return engine.composer.multiply(transpose_left, transpose_right, alpha, a, b, beta, c)


def value_at_risk(
    weights: ArrayLike,
    covariance: ArrayLike,
    confidence_level: float,
    time_period: int = 1,
    *,
    device: DeviceChoice = 'auto',
    allocation_size: int = DEFAULT_ALLOCATION_SIZE,
) -> Result[float]:
    """
    Parametric portfolio VaR: sqrt(W Σ Wᵗ) * confidence_level * sqrt(time_period).

    Example:
        >>> result = value_at_risk([100, 200], [[0.04, 0.01], [0.01, 0.09]], 1.645,
        ...                        device='cpu')
        >>> round(result.value, 4)
        109.117
    """
    with StatsEngine(device, allocation_size) as engine:
        return engine.value_at_risk(weights, covariance, confidence_level, time_period)
