"""
Autograd `Function` adapters for 1D, 2D and 3D transposed convolution.

Weight layout is `(C_in, C_out, *kernel)`. The forward pass scatters every
input position into a strided output window; see `ops.conv_cpu` for how the
three passes reuse the convolution kernels with swapped roles.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

from ....domain._function import Function
from ...ops import conv_cpu
from ...tensor._tensor import Tensor
from ...tensor._tensor_context import Context


class _ConvTransposeNdFn(Function):
    """
    Shared forward/backward for N-dimensional transposed convolution.

    Saved context
    -------------
    - `saved_tensors`: [x_values, weight_values]
    - `saved_meta`: "stride", "padding"
    """

    @staticmethod
    def forward(
        ctx: Context,
        x: Tensor,
        weight: Tensor,
        bias: Optional[Tensor],
        *,
        stride: Tuple[int, ...],
        padding: Tuple[int, ...],
    ) -> Tensor:
        y = conv_cpu.conv_transpose_forward(
            x._data,
            weight._data,
            None if bias is None else bias._data,
            stride,
            padding,
        )
        ctx.save_for_backward(x._data, weight._data)
        ctx.saved_meta["stride"] = stride
        ctx.saved_meta["padding"] = padding
        return Tensor._wrap(y)

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        x, w = ctx.saved_tensors
        stride = ctx.saved_meta["stride"]
        padding = ctx.saved_meta["padding"]
        x_t, w_t, b_t = ctx.inputs
        g = grad_out._data

        grad_x = grad_w = grad_b = None
        if x_t.requires_grad:
            grad_x = Tensor._wrap(
                conv_cpu.conv_transpose_input_grad(g, w, stride, padding)
            )
        if w_t.requires_grad:
            grad_w = Tensor._wrap(
                conv_cpu.conv_transpose_weight_grad(g, x, w.shape[2:], stride, padding)
            )
        if b_t is not None and b_t.requires_grad:
            grad_b = Tensor._wrap(conv_cpu.bias_grad(g))
        return (grad_x, grad_w, grad_b)


class ConvTranspose1dFn(_ConvTransposeNdFn):
    op_name = "conv_transpose1d"


class ConvTranspose2dFn(_ConvTransposeNdFn):
    op_name = "conv_transpose2d"


class ConvTranspose3dFn(_ConvTransposeNdFn):
    op_name = "conv_transpose3d"
