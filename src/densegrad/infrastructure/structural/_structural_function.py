"""
Autograd `Function` adapters for structural operations.

Joins and splits are exact mirrors of each other: the gradient of a
concatenation is the incoming gradient narrowed back into per-input pieces,
and the gradient of a narrow is the incoming gradient placed into zeros.
Integer index tensors are hyperparameters, not graph inputs, so they never
receive gradients.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from ...domain._function import Function
from ..ops import structural_cpu
from ..tensor._tensor import Tensor
from ..tensor._tensor_context import Context


class ConcatFn(Function):
    """
    Concatenation of any number of tensors along one axis.

    Saved context
    -------------
    - `saved_meta["axis"]`
    - `saved_meta["sizes"]`: per-input extent along the axis
    """

    op_name = "concat"

    @staticmethod
    def forward(ctx: Context, *tensors: Tensor, axis: int) -> Tensor:
        ctx.saved_meta["axis"] = axis
        ctx.saved_meta["sizes"] = [t.shape[axis] for t in tensors]
        return Tensor._wrap(structural_cpu.concat([t._data for t in tensors], axis))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        axis = ctx.saved_meta["axis"]
        grads = []
        offset = 0
        for t, size in zip(ctx.inputs, ctx.saved_meta["sizes"]):
            if t.requires_grad:
                piece = structural_cpu.narrow(grad_out._data, axis, offset, size)
                grads.append(Tensor._wrap(piece))
            else:
                grads.append(None)
            offset += size
        return grads


class NarrowFn(Function):
    """Copy of the range `[start, start + size)` along `axis`."""

    op_name = "narrow"

    @staticmethod
    def forward(ctx: Context, x: Tensor, *, axis: int, start: int, size: int) -> Tensor:
        ctx.saved_meta.update(in_shape=x.shape, axis=axis, start=start)
        return Tensor._wrap(structural_cpu.narrow(x._data, axis, start, size))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        m = ctx.saved_meta
        g = structural_cpu.narrow_backward(
            grad_out._data, m["in_shape"], m["axis"], m["start"]
        )
        return (Tensor._wrap(g),)


class GatherFn(Function):
    """
    Index lookup along one axis.

    Saved context
    -------------
    - `saved_tensors`: [index (int64, same shape as the output)]
    - `saved_meta["in_shape"]`, `saved_meta["axis"]`
    """

    op_name = "gather"

    @staticmethod
    def forward(ctx: Context, x: Tensor, *, axis: int, index: np.ndarray) -> Tensor:
        ctx.save_for_backward(index)
        ctx.saved_meta.update(in_shape=x.shape, axis=axis)
        return Tensor._wrap(structural_cpu.gather(x._data, axis, index))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        (index,) = ctx.saved_tensors
        g = structural_cpu.gather_backward(
            grad_out._data, index, ctx.saved_meta["in_shape"], ctx.saved_meta["axis"]
        )
        return (Tensor._wrap(g),)


class EmbeddingFn(Function):
    """Row lookup into a `(num_embeddings, *feature)` weight table."""

    op_name = "embedding"

    @staticmethod
    def forward(ctx: Context, weight: Tensor, *, index: np.ndarray) -> Tensor:
        ctx.save_for_backward(index)
        ctx.saved_meta["weight_shape"] = weight.shape
        return Tensor._wrap(structural_cpu.embedding(weight._data, index))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        (index,) = ctx.saved_tensors
        g = structural_cpu.embedding_backward(
            grad_out._data, index, ctx.saved_meta["weight_shape"]
        )
        return (Tensor._wrap(g),)


class DropoutFn(Function):
    """
    Multiply by a precomputed inverted-dropout mask.

    A `None` mask makes the node a pass-through copy (evaluation mode or
    `p == 0`).
    """

    op_name = "dropout"

    @staticmethod
    def forward(ctx: Context, x: Tensor, *, mask: Optional[np.ndarray]) -> Tensor:
        if mask is None:
            ctx.saved_meta["identity"] = True
            return Tensor._wrap(x.to_numpy())
        ctx.save_for_backward(mask)
        ctx.saved_meta["identity"] = False
        return Tensor._wrap(x._data * mask)

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        if ctx.saved_meta["identity"]:
            return (grad_out,)
        (mask,) = ctx.saved_tensors
        return (Tensor._wrap(grad_out._data * mask),)
