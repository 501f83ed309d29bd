"""
Public 2D pooling operations.
"""

from __future__ import annotations

from typing import Optional

from ...domain._errors import InvalidShapeError, ShapeMismatchError
from ..ops import pool2d_cpu
from ..ops.pool2d_cpu import Pair
from ..tensor._tensor import Tensor, ensure_tensor
from ..tensor._tensor_context import run_function
from ._pooling_function import AvgPool2dFn, MaxPool2dFn


def _pool_args(
    op: str,
    x: Tensor,
    kernel_size: int | Pair,
    stride: Optional[int | Pair],
    padding: int | Pair,
) -> tuple[Pair, Pair, Pair]:
    ensure_tensor(x, op)
    if x.ndim != 4:
        raise ShapeMismatchError(
            f"expected NCHW input of rank 4, got shape {x.shape}", op=op
        )
    k = pool2d_cpu._pair(kernel_size)
    s = pool2d_cpu._pair(kernel_size if stride is None else stride)
    p = pool2d_cpu._pair(padding)
    if min(k) <= 0:
        raise InvalidShapeError(f"kernel_size must be positive, got {k}", op=op)
    if min(s) <= 0:
        raise InvalidShapeError(f"stride must be positive, got {s}", op=op)
    if min(p) < 0:
        raise InvalidShapeError(f"padding must be non-negative, got {p}", op=op)
    oh, ow = pool2d_cpu.pool_out_hw(x.shape[2], x.shape[3], k, s, p)
    if oh < 1 or ow < 1:
        raise InvalidShapeError(
            f"output size ({oh}, {ow}) is not positive for input {x.shape}", op=op
        )
    return k, s, p


def max_pool2d(
    x: Tensor,
    kernel_size: int | Pair,
    stride: Optional[int | Pair] = None,
    padding: int | Pair = 0,
) -> Tensor:
    """
    2D max pooling over NCHW input.

    Parameters
    ----------
    x : Tensor
        Input `(N, C, H, W)`.
    kernel_size : int | tuple[int, int]
        Window size.
    stride : int | tuple[int, int], optional
        Window step. Defaults to `kernel_size`.
    padding : int | tuple[int, int], optional
        Implicit padding that never wins. Defaults to 0.

    Returns
    -------
    Tensor
        Output `(N, C, H_out, W_out)`.

    Raises
    ------
    InvalidShapeError
        On non-positive kernel/stride, negative padding, an empty output, or
        a window that lies entirely in the padding.
    """
    k, s, p = _pool_args("max_pool2d", x, kernel_size, stride, padding)
    return run_function(MaxPool2dFn, [x], kernel_size=k, stride=s, padding=p)


def avg_pool2d(
    x: Tensor,
    kernel_size: int | Pair,
    stride: Optional[int | Pair] = None,
    padding: int | Pair = 0,
) -> Tensor:
    """
    2D average pooling over NCHW input; see `max_pool2d` for the arguments.

    Each output is the mean of the in-bounds elements of its window.
    """
    k, s, p = _pool_args("avg_pool2d", x, kernel_size, stride, padding)
    return run_function(AvgPool2dFn, [x], kernel_size=k, stride=s, padding=p)
