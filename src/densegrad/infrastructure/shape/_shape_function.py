"""
Autograd `Function` adapters for view and broadcast operations.

Every forward here returns a tensor that aliases its input buffer (except
`ReduceToShapeFn`, which sums). Each backward is the exact inverse transform
of its forward: a reshape back, a transpose back, a row scatter into zeros,
or the broadcast/reduce adjoint pair.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from ...domain._function import Function
from ..ops import shape_cpu
from ..tensor._tensor import Tensor
from ..tensor._tensor_context import Context


def _view_of(arr: np.ndarray, source: Tensor) -> Tensor:
    """Wrap `arr` as a view of `source` when it shares memory."""
    base = source if np.shares_memory(arr, source._data) else None
    return Tensor._wrap(arr, base=base)


class ReshapeFn(Function):
    """
    Reshape to an already-resolved target shape.

    Saved context
    -------------
    - `saved_meta["in_shape"]`: input shape, restored by backward.
    """

    op_name = "reshape"

    @staticmethod
    def forward(ctx: Context, x: Tensor, *, shape: Sequence[int]) -> Tensor:
        arr, _ = shape_cpu.reshape_view(x._data, shape)
        ctx.saved_meta["in_shape"] = x.shape
        return _view_of(arr, x)

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        in_shape = ctx.saved_meta["in_shape"]
        return (Tensor._wrap(grad_out._data.reshape(in_shape)),)


class SqueezeFn(ReshapeFn):
    """Reshape that drops size-1 dimensions."""

    op_name = "squeeze"


class UnsqueezeFn(ReshapeFn):
    """Reshape that inserts one size-1 dimension."""

    op_name = "unsqueeze"


class TransposeFn(Function):
    """Rank-2 transpose as a strided view; backward transposes back."""

    op_name = "transpose"

    @staticmethod
    def forward(ctx: Context, x: Tensor) -> Tensor:
        return Tensor._wrap(x._data.T, base=x)

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        return (Tensor._wrap(np.ascontiguousarray(grad_out._data.T)),)


class SliceRowsFn(Function):
    """
    Row-range view of a rank-2 tensor.

    Saved context
    -------------
    - `saved_meta["in_shape"]`: input shape.
    - `saved_meta["start"]`, `saved_meta["rows"]`: the selected row range.
    """

    op_name = "slice_rows"

    @staticmethod
    def forward(ctx: Context, x: Tensor, *, start: int, rows: int) -> Tensor:
        ctx.saved_meta["in_shape"] = x.shape
        ctx.saved_meta["start"] = start
        ctx.saved_meta["rows"] = rows
        return Tensor._wrap(x._data[start : start + rows], base=x)

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        start = ctx.saved_meta["start"]
        rows = ctx.saved_meta["rows"]
        g = np.zeros(ctx.saved_meta["in_shape"], dtype=np.float64)
        g[start : start + rows] = grad_out._data
        return (Tensor._wrap(g),)


class BroadcastToFn(Function):
    """
    Zero-stride broadcast view.

    The output is read-only: writes through a broadcast view would alias many
    logical elements onto one stored value.
    """

    op_name = "broadcast_to"

    @staticmethod
    def forward(ctx: Context, x: Tensor, *, shape: Sequence[int]) -> Tensor:
        ctx.saved_meta["in_shape"] = x.shape
        return Tensor._wrap(shape_cpu.broadcast_view(x._data, shape), base=x)

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        g = shape_cpu.reduce_to_shape(grad_out._data, ctx.saved_meta["in_shape"])
        return (Tensor._wrap(g),)


class ReduceToShapeFn(Function):
    """
    Sum over broadcast axes down to a target shape.

    Differentiable so that gradients of gradients compose; its backward is the
    broadcast of the incoming gradient back to the input shape.
    """

    op_name = "reduce_to_shape"

    @staticmethod
    def forward(ctx: Context, x: Tensor, *, shape: Sequence[int]) -> Tensor:
        ctx.saved_meta["in_shape"] = x.shape
        return Tensor._wrap(shape_cpu.reduce_to_shape(x._data, shape))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        in_shape = ctx.saved_meta["in_shape"]
        g = np.broadcast_to(grad_out._data, in_shape).copy()
        return (Tensor._wrap(g),)
