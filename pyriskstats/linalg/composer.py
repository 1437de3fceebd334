"""
Dense matrix composition on an accelerator.

MatrixComposer validates shapes and precision on the host, then hands the
GEMM to the accelerator it was given. It borrows the accelerator: whoever
created the accelerator (normally a StatsEngine) releases it.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyriskstats.accelerator.base import Accelerator, DEVICE_OK
from pyriskstats.core.compute.timing import Timer
from pyriskstats.core.exceptions import (
    DimensionError,
    HandleReleasedError,
    ValidationError,
)
from pyriskstats.core.result import Result, Status
from pyriskstats.core.validation import (
    check_array,
    check_finite,
    check_finite_scalar,
    check_same_dtype,
)


def as_matrix(array: ArrayLike, name: str, finite: bool = True) -> NDArray[np.floating[Any]]:
    """
    Validate a GEMM operand.

    1D input is read as a row vector (1 x N). Anything above 2D, and
    empty operands, are rejected. With finite=False, NaN and Inf are let
    through; used for operands the product never reads.
    """
    arr = check_array(array, name)
    if arr.ndim == 1:
        arr = arr.reshape(1, -1)
    if arr.ndim != 2:
        raise DimensionError(
            f"{name}: expected 1D or 2D array, got {arr.ndim}D with shape {arr.shape}"
        )
    if arr.size == 0:
        raise ValidationError(f"{name}: empty matrix with shape {arr.shape}")
    if finite:
        check_finite(arr, name)
    return arr


def op_shape(array: NDArray, transpose: bool) -> tuple[int, int]:
    """Shape of array after the optional transpose."""
    rows, cols = array.shape
    return (cols, rows) if transpose else (rows, cols)


class MatrixComposer:
    """
    General matrix multiply with transpose flags and scaling.

    Usage:
        with StatsEngine(device='cpu') as engine:
            result = engine.composer.multiply(False, True, 1.0, A, B)
            if result.ok:
                C = result.value
    """

    def __init__(self, accelerator: Accelerator):
        self._accelerator = accelerator

    @property
    def backend_name(self) -> str:
        return self._accelerator.name

    def multiply(
        self,
        transpose_left: bool,
        transpose_right: bool,
        alpha: float,
        a: ArrayLike,
        b: ArrayLike,
        beta: float = 0.0,
        c: ArrayLike | None = None,
    ) -> Result[NDArray[np.floating[Any]]]:
        """
        Compute alpha * op(a) @ op(b) + beta * c.

        Args:
            transpose_left: Use a.T instead of a
            transpose_right: Use b.T instead of b
            alpha: Scale applied to the product
            a: Left operand (2D, or 1D read as a 1 x N row)
            b: Right operand (2D, or 1D read as a 1 x N row)
            beta: Scale applied to the accumulator
            c: Previous accumulation, same shape as the result. Treated as
                zeros when omitted.

        Returns:
            Result whose value is a new matrix in the operands' precision.
            DIMENSION_MISMATCH if the inner dimensions of op(a) and op(b)
            differ or c has the wrong shape; INVALID_INPUT for mixed
            precision or non-finite data in an operand that is read (a and
            b when alpha != 0, c when beta != 0); BACKEND_FAILURE if the
            accelerator fails.
        """
        if self._accelerator.released:
            raise HandleReleasedError(
                f"multiply() called on released accelerator {self.backend_name}",
                backend_name=self.backend_name,
            )

        info: dict[str, Any] = {
            'operation': 'multiply',
            'transpose_left': bool(transpose_left),
            'transpose_right': bool(transpose_right),
        }

        try:
            alpha_f = check_finite_scalar(alpha, 'alpha')
            beta_f = check_finite_scalar(beta, 'beta')
            # a and b are not read when alpha is 0, nor c when beta is 0
            a_arr = as_matrix(a, 'a', finite=alpha_f != 0)
            b_arr = as_matrix(b, 'b', finite=alpha_f != 0)
            operands = [a_arr, b_arr]
            names = ['a', 'b']
            c_arr = None
            if c is not None:
                c_arr = as_matrix(c, 'c', finite=beta_f != 0)
                operands.append(c_arr)
                names.append('c')

            left = op_shape(a_arr, transpose_left)
            right = op_shape(b_arr, transpose_right)
            if left[1] != right[0]:
                raise DimensionError(
                    f"op(a) is {left[0]}x{left[1]} but op(b) is {right[0]}x{right[1]}: "
                    f"inner dimensions {left[1]} != {right[0]}"
                )
            out_shape = (left[0], right[1])
            if c_arr is not None and c_arr.shape != out_shape:
                raise DimensionError(
                    f"c: expected shape {out_shape} to match op(a) @ op(b), got {c_arr.shape}"
                )
            check_same_dtype(*operands, names=tuple(names))
        except ValidationError as e:
            return Result.failure(
                Status.from_exception(e), str(e),
                info=info, backend_name=self.backend_name,
            )

        info.update(shape=out_shape, dtype=str(a_arr.dtype))

        timer = Timer(sync=self._accelerator.synchronize)
        timer.start()
        with timer.section('gemm'):
            code, value = self._accelerator.multiply(
                bool(transpose_left), bool(transpose_right), alpha_f,
                a_arr, b_arr, beta_f, c_arr,
            )
        timer.stop()

        if code != DEVICE_OK:
            return Result.failure(
                Status.BACKEND_FAILURE,
                f"multiply: accelerator {self.backend_name} failed with device code {code}",
                info=info, backend_name=self.backend_name, backend_code=code,
            )

        return Result(
            status=Status.SUCCESS,
            value=value,
            info=info,
            timing=timer.result(),
            backend_name=self.backend_name,
        )
