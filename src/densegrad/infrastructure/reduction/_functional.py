"""
Public reduction operations.
"""

from __future__ import annotations

from ..ops.shape_cpu import normalize_axis
from ..tensor._tensor import Tensor, ensure_tensor
from ..tensor._tensor_context import run_function
from ._reduction_function import MaxAxisFn, MeanFn, MinAxisFn, SumAxisFn, SumFn


def sum(x: Tensor) -> Tensor:
    """Sum of all elements, as a tensor of shape `[1]`."""
    ensure_tensor(x, "sum")
    return run_function(SumFn, [x])


def mean(x: Tensor) -> Tensor:
    """Mean of all elements, as a tensor of shape `[1]`."""
    ensure_tensor(x, "mean")
    return run_function(MeanFn, [x])


def sum_axis(x: Tensor, axis: int) -> Tensor:
    """
    Sum along `axis`, removing it. A rank-1 input yields shape `[1]`.

    Raises
    ------
    IndexOutOfRangeError
        If `axis` is outside `[-rank, rank)`.
    """
    ensure_tensor(x, "sum_axis")
    axis = normalize_axis(axis, x.ndim, op="sum_axis")
    return run_function(SumAxisFn, [x], axis=axis)


def max(x: Tensor, axis: int) -> Tensor:
    """
    Maximum along `axis`, removing it.

    Ties resolve to the first occurrence, which alone receives the gradient.

    Raises
    ------
    IndexOutOfRangeError
        If `axis` is outside `[-rank, rank)`.
    """
    ensure_tensor(x, "max")
    axis = normalize_axis(axis, x.ndim, op="max")
    return run_function(MaxAxisFn, [x], axis=axis)


def min(x: Tensor, axis: int) -> Tensor:
    """Minimum along `axis`; see `max`."""
    ensure_tensor(x, "min")
    axis = normalize_axis(axis, x.ndim, op="min")
    return run_function(MinAxisFn, [x], axis=axis)
