"""
Portfolio risk.

Public API:
    RiskCalculator.portfolio_variance(weights, covariance)
    RiskCalculator.value_at_risk(weights, covariance, confidence_level, time_period)
"""

from pyriskstats.risk.calculator import RiskCalculator

__all__ = [
    "RiskCalculator",
]
