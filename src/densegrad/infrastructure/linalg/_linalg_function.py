"""
Autograd `Function` adapters for matrix multiplication and bias addition.
"""

from __future__ import annotations

from typing import Optional, Sequence

from ...domain._function import Function
from ..ops import matmul_cpu
from ..tensor._tensor import Tensor
from ..tensor._tensor_context import Context


class MatMulFn(Function):
    """
    Rank-2 matrix product.

    Saved context
    -------------
    - `saved_tensors`: [a_values, b_values]
    """

    op_name = "matmul"

    @staticmethod
    def forward(ctx: Context, a: Tensor, b: Tensor) -> Tensor:
        ctx.save_for_backward(a._data, b._data)
        return Tensor._wrap(matmul_cpu.matmul(a._data, b._data))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        a, b = ctx.saved_tensors
        ga, gb = matmul_cpu.matmul_backward(
            grad_out._data,
            a,
            b,
            need_a=ctx.inputs[0].requires_grad,
            need_b=ctx.inputs[1].requires_grad,
        )
        return (
            None if ga is None else Tensor._wrap(ga),
            None if gb is None else Tensor._wrap(gb),
        )


class AddBias2dFn(Function):
    """
    `x + bias` for `x: (rows, cols)` and `bias: (cols,)`.

    The bias gradient is the column sum of the output gradient.
    """

    op_name = "add_bias_2d"

    @staticmethod
    def forward(ctx: Context, x: Tensor, bias: Tensor) -> Tensor:
        return Tensor._wrap(matmul_cpu.add_bias_rows(x._data, bias._data))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        gb = None
        if ctx.inputs[1].requires_grad:
            gb = Tensor._wrap(grad_out._data.sum(axis=0))
        return (grad_out, gb)
