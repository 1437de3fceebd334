"""
pyriskstats: accelerator-backed statistics and portfolio risk.

Dispersion and association statistics, pairwise covariance/correlation
matrices and parametric Value-at-Risk, computed on a CPU (NumPy) or GPU
(PyTorch) accelerator. Every operation returns a status-carrying Result.

Submodules:
    stats: StatsEngine (owns an accelerator)
    linalg: MatrixComposer (GEMM with transpose flags and scaling)
    risk: RiskCalculator (quadratic form and VaR)
    accelerator: CPU and GPU accelerator handles
"""

__version__ = "0.1.0"

from pyriskstats.core.result import Result, Status
from pyriskstats.core.exceptions import (
    PyRiskStatsError,
    ValidationError,
    DimensionError,
    BackendError,
    HandleReleasedError,
)
from pyriskstats.stats import StatsEngine
from pyriskstats.linalg import MatrixComposer
from pyriskstats.risk import RiskCalculator
from pyriskstats.solvers import (
    sample_sd,
    sd,
    var,
    sample_cov,
    cov,
    cor,
    cov_matrix,
    cor_matrix,
    multiply,
    value_at_risk,
)

__all__ = [
    "__version__",
    # Results
    "Result",
    "Status",
    # Exceptions
    "PyRiskStatsError",
    "ValidationError",
    "DimensionError",
    "BackendError",
    "HandleReleasedError",
    # Components
    "StatsEngine",
    "MatrixComposer",
    "RiskCalculator",
    # One-shot API
    "sample_sd",
    "sd",
    "var",
    "sample_cov",
    "cov",
    "cor",
    "cov_matrix",
    "cor_matrix",
    "multiply",
    "value_at_risk",
]
