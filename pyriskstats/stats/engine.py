"""
Statistics engine: dispersion and association statistics on an accelerator.

The engine owns exactly one accelerator, acquired at construction and
released by close() (or on leaving a ``with`` block). Each operation is
generic over precision: float32 samples stay float32 on the way to the
accelerator, float64 samples stay float64, and the two are never mixed
within one call. Means are optional; when omitted they are computed on
the host first, which costs one extra pass over the sample.

Every operation returns a Result. Input problems are detected before the
accelerator is touched.
"""

from __future__ import annotations

import itertools
import logging
import warnings
from typing import Any, Callable, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyriskstats.accelerator.base import (
    Accelerator,
    DEFAULT_ALLOCATION_SIZE,
    DEVICE_OK,
    ScalarReply,
)
from pyriskstats.accelerator.select import DeviceChoice, open_accelerator
from pyriskstats.core.compute.device import DeviceInfo
from pyriskstats.core.compute.timing import Timer
from pyriskstats.core.compute.tolerances import select_tolerance
from pyriskstats.core.exceptions import HandleReleasedError, ValidationError
from pyriskstats.core.result import Result, Status
from pyriskstats.core.validation import check_nonconstant
from pyriskstats.linalg.composer import MatrixComposer
from pyriskstats.risk.calculator import RiskCalculator
from pyriskstats.stats import _samples

logger = logging.getLogger(__name__)


class StatsEngine:
    """
    Accelerator-backed statistics.

    Usage:
        with StatsEngine(device='cpu') as engine:
            sd = engine.sample_standard_deviation([2, 4, 4, 4, 5, 5, 7, 9])
            if sd.ok:
                print(sd.value)

    Thread safety: the accelerator serializes device calls behind its own
    lock, so one engine may be shared between threads. Separate engines
    share no state.
    """

    def __init__(
        self,
        device: DeviceChoice = 'auto',
        allocation_size: int = DEFAULT_ALLOCATION_SIZE,
        *,
        use_fp64: bool = False,
        accelerator: Accelerator | None = None,
    ):
        """
        Args:
            device: 'auto', 'cpu', 'gpu', a CUDA ordinal or a DeviceInfo.
            allocation_size: Accelerator working-set budget in bytes.
            use_fp64: GPU only. Keep float64 samples in float64 on device.
            accelerator: An already acquired accelerator. The engine takes
                ownership and releases it on close(); device,
                allocation_size and use_fp64 are ignored.
        """
        if accelerator is None:
            accelerator = open_accelerator(device, allocation_size, use_fp64=use_fp64)
        elif accelerator.released:
            raise HandleReleasedError(
                f"cannot build an engine on released accelerator {accelerator.name}",
                backend_name=accelerator.name,
            )
        self._accelerator = accelerator
        self._composer = MatrixComposer(accelerator)
        self._risk = RiskCalculator(self._composer)
        self._closed = False

    # --- Lifecycle ---

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def backend_name(self) -> str:
        return self._accelerator.name

    @property
    def device(self) -> DeviceInfo:
        """DeviceInfo of the owned accelerator."""
        return self._accelerator.device

    @property
    def composer(self) -> MatrixComposer:
        """Matrix composer sharing this engine's accelerator."""
        self._check_open()
        return self._composer

    @property
    def risk(self) -> RiskCalculator:
        """Risk calculator sharing this engine's accelerator."""
        self._check_open()
        return self._risk

    def close(self) -> None:
        """Release the accelerator. Calling close() again does nothing."""
        if self._closed:
            return
        self._closed = True
        self._accelerator.release()

    def __enter__(self) -> StatsEngine:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, '_closed', True):
            return
        warnings.warn(
            f"StatsEngine on {self._accelerator.name} was not closed",
            ResourceWarning,
            stacklevel=2,
        )
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"StatsEngine(backend={self.backend_name!r}, device={self.device}, {state})"

    def _check_open(self) -> None:
        if self._closed:
            raise HandleReleasedError(
                f"StatsEngine on {self._accelerator.name} is closed",
                backend_name=self._accelerator.name,
            )

    # --- Dispersion ---

    def sample_standard_deviation(
        self, sample: ArrayLike, mean: float | None = None,
    ) -> Result[float]:
        """
        Unbiased (n - 1) standard deviation.

        Args:
            sample: 1D float32 or float64 sample (integers promote to float64)
            mean: Mean to center on. Computed from sample when omitted.

        Returns:
            Result[float]. INVALID_INPUT for an empty or single-value
            sample, non-finite data, a non-finite mean or a result that
            exceeds the float64 range.
        """
        return self._dispersion(
            'sample_standard_deviation', self._accelerator.sample_stddev, sample, mean, 2,
        )

    def standard_deviation(
        self, sample: ArrayLike, mean: float | None = None,
    ) -> Result[float]:
        """Population (n) standard deviation. Same contract as the sample variant."""
        return self._dispersion(
            'standard_deviation', self._accelerator.population_stddev, sample, mean, 1,
        )

    def variance(
        self, sample: ArrayLike, mean: float | None = None, *, unbiased: bool = True,
    ) -> Result[float]:
        """Variance as the square of the matching standard deviation."""
        if unbiased:
            sd = self.sample_standard_deviation(sample, mean)
        else:
            sd = self.standard_deviation(sample, mean)
        if not sd.ok:
            return sd
        info = {**sd.info, 'operation': 'variance', 'unbiased': unbiased}
        value = sd.value * sd.value
        if not np.isfinite(value):
            return Result.failure(
                Status.INVALID_INPUT,
                f"variance: {sd.value!r} squared exceeds the {info['dtype']} range",
                info=info, backend_name=sd.backend_name,
            )
        return Result(
            status=Status.SUCCESS,
            value=value,
            info=info,
            timing=sd.timing,
            backend_name=sd.backend_name,
            warnings=sd.warnings,
        )

    # --- Association ---

    def sample_covariance(
        self,
        x: ArrayLike,
        y: ArrayLike,
        *,
        x_mean: float | None = None,
        y_mean: float | None = None,
    ) -> Result[float]:
        """
        Unbiased (n - 1) covariance of two equal-length samples.

        Returns:
            Result[float]. INVALID_INPUT for different lengths, mixed
            precision, fewer than two observations or non-finite data.
        """
        return self._association(
            'sample_covariance', self._accelerator.sample_covariance,
            x, y, x_mean, y_mean, min_samples=2,
        )

    def covariance(
        self,
        x: ArrayLike,
        y: ArrayLike,
        *,
        x_mean: float | None = None,
        y_mean: float | None = None,
    ) -> Result[float]:
        """Population (n) covariance. Same contract as sample_covariance()."""
        return self._association(
            'covariance', self._accelerator.population_covariance,
            x, y, x_mean, y_mean, min_samples=1,
        )

    def correlation(
        self,
        x: ArrayLike,
        y: ArrayLike,
        *,
        x_mean: float | None = None,
        y_mean: float | None = None,
    ) -> Result[float]:
        """
        Pearson correlation coefficient.

        Returns:
            Result[float] in [-1, 1]. INVALID_INPUT when either sample is
            constant (zero variance), in addition to the covariance checks.
            A sample whose deviations all vanish at the accelerator's
            precision is also INVALID_INPUT. Values pushed past +/-1 by no
            more than the backend's rounding tolerance are clipped and a
            warning is recorded; anything further out is BACKEND_FAILURE.
        """
        result = self._association(
            'correlation', self._accelerator.pearson_correlation,
            x, y, x_mean, y_mean, min_samples=1, nonconstant=True,
            non_finite="a sample has zero variance at the accelerator's precision",
        )
        if not result.ok or -1.0 <= result.value <= 1.0:
            return result

        tol = select_tolerance(self.backend_name, result.info['dtype'])
        if abs(result.value) - 1.0 > tol.rtol:
            return Result.failure(
                Status.BACKEND_FAILURE,
                f"correlation: accelerator {self.backend_name} returned "
                f"{result.value!r}, outside [-1, 1] beyond rounding tolerance {tol.rtol}",
                info=result.info, backend_name=self.backend_name,
            )
        clipped = float(np.clip(result.value, -1.0, 1.0))
        return Result(
            status=result.status,
            value=clipped,
            info=result.info,
            timing=result.timing,
            backend_name=result.backend_name,
            warnings=result.warnings + (
                f"correlation {result.value!r} outside [-1, 1] from rounding, clipped",
            ),
        )

    # --- Matrices ---

    def correlation_matrix(
        self,
        sets: Sequence[ArrayLike],
        *,
        fail_fast: bool = False,
    ) -> Result[NDArray[np.floating[Any]]]:
        """
        Pearson correlation between every ordered pair of samples.

        Args:
            sets: N samples (a sequence of 1D arrays, or the rows of a 2D
                array). Lengths only need to agree within each pair.
            fail_fast: Stop at the first failing pair and return no matrix.

        Returns:
            Result holding an N x N matrix in the samples' precision. By
            default every cell is attempted; if any fail, the status of the
            last failure is returned with the partially filled matrix
            (failed cells are 0). Do not read the matrix unless result.ok.
        """
        return self._pairwise_matrix('correlation_matrix', self.correlation, sets, fail_fast)

    def covariance_matrix(
        self,
        sets: Sequence[ArrayLike],
        *,
        unbiased: bool = False,
        fail_fast: bool = False,
    ) -> Result[NDArray[np.floating[Any]]]:
        """
        Covariance between every ordered pair of samples.

        Population covariance by default; unbiased=True uses n - 1.
        Failure policy as for correlation_matrix().
        """
        pair = self.sample_covariance if unbiased else self.covariance
        return self._pairwise_matrix(
            'covariance_matrix', pair, sets, fail_fast, unbiased=unbiased,
        )

    # --- Risk ---

    def value_at_risk(
        self,
        weights: ArrayLike,
        covariance: ArrayLike,
        confidence_level: float,
        time_period: int = 1,
    ) -> Result[float]:
        """Parametric VaR. See RiskCalculator.value_at_risk()."""
        return self.risk.value_at_risk(weights, covariance, confidence_level, time_period)

    # --- Plumbing ---

    def _dispersion(
        self,
        operation: str,
        primitive: Callable[[NDArray, float], ScalarReply],
        sample: ArrayLike,
        mean: float | None,
        min_samples: int,
    ) -> Result[float]:
        self._check_open()
        info: dict[str, Any] = {'operation': operation}

        timer = Timer(sync=self._accelerator.synchronize)
        timer.start()
        try:
            arr = _samples.prepare_sample(sample, 'sample', min_samples)
            with timer.section('mean'):
                m = _samples.resolve_mean(arr, mean, 'mean')
        except ValidationError as e:
            return self._rejected(e, info)

        info.update(n=arr.shape[0], dtype=str(arr.dtype), mean=m, mean_supplied=mean is not None)
        with timer.section('reduction'):
            code, value = primitive(arr, m)
        timer.stop()
        return self._scalar_result(code, value, info, timer)

    def _association(
        self,
        operation: str,
        primitive: Callable[[NDArray, float, NDArray, float], ScalarReply],
        x: ArrayLike,
        y: ArrayLike,
        x_mean: float | None,
        y_mean: float | None,
        *,
        min_samples: int,
        nonconstant: bool = False,
        non_finite: str | None = None,
    ) -> Result[float]:
        self._check_open()
        info: dict[str, Any] = {'operation': operation}

        timer = Timer(sync=self._accelerator.synchronize)
        timer.start()
        try:
            x_arr, y_arr = _samples.prepare_pair(x, y, min_samples)
            if nonconstant:
                check_nonconstant(x_arr, 'x')
                check_nonconstant(y_arr, 'y')
            with timer.section('mean'):
                xm = _samples.resolve_mean(x_arr, x_mean, 'x_mean')
                ym = _samples.resolve_mean(y_arr, y_mean, 'y_mean')
        except ValidationError as e:
            return self._rejected(e, info)

        info.update(n=x_arr.shape[0], dtype=str(x_arr.dtype), x_mean=xm, y_mean=ym)
        with timer.section('reduction'):
            code, value = primitive(x_arr, xm, y_arr, ym)
        timer.stop()
        return self._scalar_result(code, value, info, timer, non_finite)

    def _pairwise_matrix(
        self,
        operation: str,
        pair: Callable[..., Result[float]],
        sets: Sequence[ArrayLike],
        fail_fast: bool,
        **extra_info: Any,
    ) -> Result[NDArray[np.floating[Any]]]:
        self._check_open()
        info: dict[str, Any] = {'operation': operation, 'fail_fast': fail_fast, **extra_info}

        timer = Timer(sync=self._accelerator.synchronize)
        timer.start()
        try:
            with timer.section('validation'):
                arrays = _samples.prepare_sets(sets)
        except ValidationError as e:
            return self._rejected(e, info)

        p = len(arrays)
        with timer.section('mean'):
            means = [_samples.sample_mean(a) if a.shape[0] else None for a in arrays]

        out = np.zeros((p, p), dtype=arrays[0].dtype)
        info.update(n_sets=p, dtype=str(out.dtype))
        last_failure: Result[float] | None = None
        failed_cells: list[tuple[int, int]] = []
        warnings_list: list[str] = []

        # Every ordered pair, diagonal included; no symmetry shortcut
        with timer.section('pairs'):
            for i, j in itertools.product(range(p), repeat=2):
                cell = pair(arrays[i], arrays[j], x_mean=means[i], y_mean=means[j])
                if cell.ok:
                    out[i, j] = cell.value
                    warnings_list.extend(f"cell ({i}, {j}): {w}" for w in cell.warnings)
                    continue

                failed_cells.append((i, j))
                last_failure = cell
                if fail_fast:
                    break
        timer.stop()

        info['failed_cells'] = failed_cells
        if last_failure is not None and fail_fast:
            i, j = failed_cells[-1]
            return Result(
                status=last_failure.status,
                value=None,
                info=info,
                timing=timer.result(),
                backend_name=self.backend_name,
                message=f"cell ({i}, {j}): {last_failure.message}",
                backend_code=last_failure.backend_code,
                warnings=tuple(warnings_list),
            )
        if last_failure is not None:
            i, j = failed_cells[-1]
            logger.warning(
                "%s: %d of %d cells failed on %s", operation, len(failed_cells), p * p,
                self.backend_name,
            )
            return Result(
                status=last_failure.status,
                value=out,
                info=info,
                timing=timer.result(),
                backend_name=self.backend_name,
                message=(
                    f"{len(failed_cells)} of {p * p} cells failed; "
                    f"last at ({i}, {j}): {last_failure.message}"
                ),
                backend_code=last_failure.backend_code,
                warnings=tuple(warnings_list),
            )

        return Result(
            status=Status.SUCCESS,
            value=out,
            info=info,
            timing=timer.result(),
            backend_name=self.backend_name,
            warnings=tuple(warnings_list),
        )

    def _rejected(self, exc: ValidationError, info: dict[str, Any]) -> Result:
        return Result.failure(
            Status.from_exception(exc), str(exc),
            info=info, backend_name=self.backend_name,
        )

    def _scalar_result(
        self,
        code: int,
        value: float | None,
        info: dict[str, Any],
        timer: Timer,
        non_finite: str | None = None,
    ) -> Result[float]:
        if code != DEVICE_OK:
            return Result.failure(
                Status.BACKEND_FAILURE,
                f"{info['operation']}: accelerator {self.backend_name} "
                f"failed with device code {code}",
                info=info, backend_name=self.backend_name, backend_code=code,
            )
        if not np.isfinite(value):
            reason = non_finite or f"the result exceeds the {info['dtype']} range"
            return Result.failure(
                Status.INVALID_INPUT,
                f"{info['operation']}: accelerator returned {value!r}; {reason}",
                info=info, backend_name=self.backend_name,
            )
        return Result(
            status=Status.SUCCESS,
            value=value,
            info=info,
            timing=timer.result(),
            backend_name=self.backend_name,
        )
