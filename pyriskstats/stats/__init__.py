"""
Dispersion and association statistics.

Public API:
    StatsEngine(device, allocation_size)
        .sample_standard_deviation(sample, mean=None)
        .standard_deviation(sample, mean=None)
        .variance(sample, mean=None, unbiased=True)
        .sample_covariance(x, y, x_mean=None, y_mean=None)
        .covariance(x, y, x_mean=None, y_mean=None)
        .correlation(x, y, x_mean=None, y_mean=None)
        .covariance_matrix(sets, unbiased=False, fail_fast=False)
        .correlation_matrix(sets, fail_fast=False)
        .value_at_risk(weights, covariance, confidence_level, time_period=1)
"""

from pyriskstats.stats.engine import StatsEngine

__all__ = [
    "StatsEngine",
]
