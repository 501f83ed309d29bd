from __future__ import annotations

from typing import Optional, Sequence

from ...domain._function import Function
from ..ops import softmax_cpu
from ..tensor._tensor import Tensor
from ..tensor._tensor_context import Context


class LogSoftmaxFn(Function):
    """
    Row-wise log-softmax of a rank-2 tensor.

    Saved context
    -------------
    - `saved_tensors`: [output], from which backward recovers the softmax.
    """

    op_name = "log_softmax"

    @staticmethod
    def forward(ctx: Context, x: Tensor) -> Tensor:
        y = softmax_cpu.log_softmax_rows(x._data)
        ctx.save_for_backward(y)
        return Tensor._wrap(y)

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        (y,) = ctx.saved_tensors
        return (Tensor._wrap(softmax_cpu.log_softmax_rows_backward(grad_out._data, y)),)
