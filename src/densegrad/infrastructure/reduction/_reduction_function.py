"""
Autograd `Function` adapters for reductions.

Full reductions (`sum`, `mean`) produce a `[1]` tensor; axis reductions remove
the reduced axis. `max`/`min` save the first-seen winner index per output
element so backward routes the gradient to exactly one input position.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from ...domain._function import Function
from ..ops import reduce_cpu
from ..tensor._tensor import Tensor
from ..tensor._tensor_context import Context


class SumFn(Function):
    op_name = "sum"

    @staticmethod
    def forward(ctx: Context, x: Tensor) -> Tensor:
        ctx.saved_meta["in_shape"] = x.shape
        return Tensor._wrap(reduce_cpu.sum_all(x._data))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        g = float(grad_out._data.reshape(-1)[0])
        return (Tensor._wrap(np.full(ctx.saved_meta["in_shape"], g)),)


class MeanFn(Function):
    op_name = "mean"

    @staticmethod
    def forward(ctx: Context, x: Tensor) -> Tensor:
        ctx.saved_meta["in_shape"] = x.shape
        n = x.numel()
        ctx.saved_meta["count"] = n
        return Tensor._wrap(reduce_cpu.sum_all(x._data) / n)

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        g = float(grad_out._data.reshape(-1)[0]) / ctx.saved_meta["count"]
        return (Tensor._wrap(np.full(ctx.saved_meta["in_shape"], g)),)


class SumAxisFn(Function):
    """
    Sum along one axis.

    Saved context
    -------------
    - `saved_meta["in_shape"]`, `saved_meta["axis"]`
    """

    op_name = "sum_axis"

    @staticmethod
    def forward(ctx: Context, x: Tensor, *, axis: int) -> Tensor:
        ctx.saved_meta["in_shape"] = x.shape
        ctx.saved_meta["axis"] = axis
        return Tensor._wrap(reduce_cpu.sum_axis(x._data, axis))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        g = reduce_cpu.expand_axis(
            grad_out._data, ctx.saved_meta["in_shape"], ctx.saved_meta["axis"]
        )
        return (Tensor._wrap(np.array(g, copy=True)),)


class _ArgExtremeFn(Function):
    """
    Shared forward/backward of `max` and `min` along an axis.

    Saved context
    -------------
    - `saved_meta["in_shape"]`, `saved_meta["axis"]`
    - `saved_meta["indices"]`: winner index per output element
    """

    largest: bool = True

    @classmethod
    def _run(cls, ctx: Context, x: Tensor, axis: int) -> Tensor:
        vals, idx = reduce_cpu.arg_extreme_axis(x._data, axis, largest=cls.largest)
        ctx.saved_meta["in_shape"] = x.shape
        ctx.saved_meta["axis"] = axis
        ctx.saved_meta["indices"] = idx
        return Tensor._wrap(vals)

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        g = reduce_cpu.scatter_axis(
            grad_out._data,
            ctx.saved_meta["indices"],
            ctx.saved_meta["in_shape"],
            ctx.saved_meta["axis"],
        )
        return (Tensor._wrap(g),)


class MaxAxisFn(_ArgExtremeFn):
    op_name = "max"
    largest = True

    @staticmethod
    def forward(ctx: Context, x: Tensor, *, axis: int) -> Tensor:
        return MaxAxisFn._run(ctx, x, axis)


class MinAxisFn(_ArgExtremeFn):
    op_name = "min"
    largest = False

    @staticmethod
    def forward(ctx: Context, x: Tensor, *, axis: int) -> Tensor:
        return MinAxisFn._run(ctx, x, axis)
