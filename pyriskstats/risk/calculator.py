"""
Parametric portfolio Value-at-Risk.

Portfolio variance is the quadratic form W Σ Wᵗ, evaluated as two GEMMs
on the accelerator:

    M1 = W @ Σ          (1 x N)
    M2 = M1 @ Wᵗ        (1 x 1)

VaR then scales the portfolio standard deviation by a caller-supplied
z-score and the square root of the horizon:

    VaR = sqrt(M2[0, 0]) * z * sqrt(T)

No distribution lookup happens here; 1.645 means 95% one-sided (90%
two-sided) and it is the caller's job to pick it.
"""

from __future__ import annotations

import math
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyriskstats.core.exceptions import DimensionError, ValidationError
from pyriskstats.core.result import Result, Status
from pyriskstats.core.validation import (
    check_1d,
    check_array,
    check_finite,
    check_finite_scalar,
    check_positive_int,
    check_square,
)
from pyriskstats.linalg.composer import MatrixComposer


def _prepare_inputs(
    weights: ArrayLike,
    covariance: ArrayLike,
) -> tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]]:
    """Return (W as 1 x N in the covariance precision, Σ)."""
    cov = check_array(covariance, 'covariance')
    check_square(cov, 'covariance')
    check_finite(cov, 'covariance')

    w = check_array(weights, 'weights')
    if w.ndim == 2 and w.shape[0] == 1:
        w = w.ravel()
    check_1d(w, 'weights')
    check_finite(w, 'weights')

    if w.shape[0] != cov.shape[0]:
        raise DimensionError(
            f"weights has length {w.shape[0]} but covariance is "
            f"{cov.shape[0]}x{cov.shape[1]}"
        )
    if w.shape[0] == 0:
        raise ValidationError("weights: need at least 1 position, got 0")

    return w.astype(cov.dtype).reshape(1, -1), cov


class RiskCalculator:
    """
    Portfolio risk on top of a MatrixComposer.

    Usage:
        with StatsEngine(device='cpu') as engine:
            var_result = engine.risk.value_at_risk(
                weights=[100.0, 200.0],
                covariance=[[0.04, 0.01], [0.01, 0.09]],
                confidence_level=1.645,
            )
    """

    def __init__(self, composer: MatrixComposer):
        self._composer = composer

    @property
    def backend_name(self) -> str:
        return self._composer.backend_name

    def portfolio_variance(
        self,
        weights: ArrayLike,
        covariance: ArrayLike,
    ) -> Result[float]:
        """
        Compute the portfolio variance W Σ Wᵗ.

        Args:
            weights: Invested amounts, length N (or a 1 x N matrix)
            covariance: N x N covariance matrix of the positions

        Returns:
            Result[float]. DIMENSION_MISMATCH when the weights length
            differs from the covariance side (checked before any multiply)
            or the product does not reduce to 1 x 1. INVALID_INPUT for
            non-finite inputs or a negative variance from an ill-conditioned
            covariance. Multiply failures are propagated.
        """
        info: dict[str, Any] = {'operation': 'portfolio_variance'}
        try:
            w, cov = _prepare_inputs(weights, covariance)
        except ValidationError as e:
            return Result.failure(
                Status.from_exception(e), str(e),
                info=info, backend_name=self.backend_name,
            )
        return self._quadratic_form(w, cov, info)

    def value_at_risk(
        self,
        weights: ArrayLike,
        covariance: ArrayLike,
        confidence_level: float,
        time_period: int = 1,
    ) -> Result[float]:
        """
        Compute parametric Value-at-Risk.

        Args:
            weights: Invested amounts, length N (or a 1 x N matrix)
            covariance: N x N covariance matrix for one period
            confidence_level: z-score of the confidence level
                (e.g. 1.645 for 95% one-sided)
            time_period: Horizon in periods; scales by sqrt(time_period)

        Returns:
            Result[float] holding VaR in the units of weights. Failure
            statuses as for portfolio_variance(), plus INVALID_INPUT for a
            non-finite confidence_level or a non-positive time_period.
        """
        info: dict[str, Any] = {'operation': 'value_at_risk'}
        try:
            z = check_finite_scalar(confidence_level, 'confidence_level')
            horizon = check_positive_int(time_period, 'time_period')
            w, cov = _prepare_inputs(weights, covariance)
        except ValidationError as e:
            return Result.failure(
                Status.from_exception(e), str(e),
                info=info, backend_name=self.backend_name,
            )

        info.update(confidence_level=z, time_period=horizon)
        variance = self._quadratic_form(w, cov, info)
        if not variance.ok:
            return variance

        var = math.sqrt(variance.value) * z * math.sqrt(horizon)
        info['portfolio_variance'] = variance.value
        return Result(
            status=Status.SUCCESS,
            value=var,
            info=info,
            timing=variance.timing,
            backend_name=self.backend_name,
        )

    def _quadratic_form(
        self,
        w: NDArray[np.floating[Any]],
        cov: NDArray[np.floating[Any]],
        info: dict[str, Any],
    ) -> Result[float]:
        info.update(n_positions=w.shape[1], dtype=str(cov.dtype))

        m1 = self._composer.multiply(False, False, 1.0, w, cov, 0.0)
        if not m1.ok:
            return self._propagate(m1, 'W @ covariance', info)

        m2 = self._composer.multiply(False, True, 1.0, m1.value, w, 0.0)
        if not m2.ok:
            return self._propagate(m2, '(W @ covariance) @ W.T', info)

        if m2.value.shape != (1, 1):
            return Result.failure(
                Status.DIMENSION_MISMATCH,
                f"W @ covariance @ W.T must be 1x1, got shape {m2.value.shape}",
                info=info, backend_name=self.backend_name,
            )

        variance = float(m2.value[0, 0])
        if variance < 0:
            return Result.failure(
                Status.INVALID_INPUT,
                f"portfolio variance is negative ({variance!r}); "
                f"covariance is not positive semi-definite",
                info=info, backend_name=self.backend_name,
            )

        timing = {
            'total_seconds': m1.timing['total_seconds'] + m2.timing['total_seconds'],
            'gemm': m1.timing['gemm'] + m2.timing['gemm'],
        }
        return Result(
            status=Status.SUCCESS,
            value=variance,
            info=info,
            timing=timing,
            backend_name=self.backend_name,
        )

    def _propagate(self, step: Result, label: str, info: dict[str, Any]) -> Result[float]:
        return Result.failure(
            step.status,
            f"{label}: {step.message}",
            info=info,
            backend_name=self.backend_name,
            backend_code=step.backend_code,
        )
