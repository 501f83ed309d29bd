"""
Autograd `Function` adapters for 2D pooling.

Each pooling operator is a `Function` subclass whose forward calls
`ops.pool2d_cpu` and saves the minimal information needed for backward into
`ctx.saved_meta`.

Implemented operators
---------------------
- `MaxPool2dFn`
    Uses the winner indices recorded by the forward pass to scatter gradients
    back to the maximal elements of each window.
- `AvgPool2dFn`
    Distributes output gradients uniformly over the in-bounds part of each
    window.

Design notes
------------
- Assumes **NCHW** layout: (N, C, H, W).
- Hyperparameters arrive normalized to pairs by the functional wrappers.
"""

from __future__ import annotations

from typing import Optional, Sequence

from ...domain._function import Function
from ..ops import pool2d_cpu
from ..ops.pool2d_cpu import Pair
from ..tensor._tensor import Tensor
from ..tensor._tensor_context import Context


class MaxPool2dFn(Function):
    """
    2D max pooling.

    Saved context
    -------------
    - `saved_meta`:
        - "x_shape": input shape (N, C, H, W)
        - "argmax_idx": flat `h * W + w` winner index per output element
    """

    op_name = "max_pool2d"

    @staticmethod
    def forward(
        ctx: Context, x: Tensor, *, kernel_size: Pair, stride: Pair, padding: Pair
    ) -> Tensor:
        y, argmax_idx = pool2d_cpu.maxpool2d_forward(
            x._data, kernel_size, stride, padding
        )
        ctx.saved_meta["x_shape"] = x.shape
        ctx.saved_meta["argmax_idx"] = argmax_idx
        return Tensor._wrap(y)

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        """
        Route each output gradient to the input element that won its window.
        Elements that win several overlapping windows receive the sum.
        """
        dx = pool2d_cpu.maxpool2d_backward(
            grad_out._data, ctx.saved_meta["argmax_idx"], ctx.saved_meta["x_shape"]
        )
        return (Tensor._wrap(dx),)


class AvgPool2dFn(Function):
    """
    2D average pooling over the in-bounds part of each window.

    Saved context
    -------------
    - `saved_meta`:
        - "x_shape": input shape (N, C, H, W)
        - "kernel_size", "stride", "padding": normalized pairs
        - "counts": in-bounds element count per output position
    """

    op_name = "avg_pool2d"

    @staticmethod
    def forward(
        ctx: Context, x: Tensor, *, kernel_size: Pair, stride: Pair, padding: Pair
    ) -> Tensor:
        y, counts = pool2d_cpu.avgpool2d_forward(x._data, kernel_size, stride, padding)
        ctx.saved_meta["x_shape"] = x.shape
        ctx.saved_meta["kernel_size"] = kernel_size
        ctx.saved_meta["stride"] = stride
        ctx.saved_meta["padding"] = padding
        ctx.saved_meta["counts"] = counts
        return Tensor._wrap(y)

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        m = ctx.saved_meta
        dx = pool2d_cpu.avgpool2d_backward(
            grad_out._data,
            m["counts"],
            m["x_shape"],
            m["kernel_size"],
            m["stride"],
            m["padding"],
        )
        return (Tensor._wrap(dx),)
