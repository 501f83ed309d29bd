"""
Autograd `Function` adapters for 1D, 2D and 3D convolution.

This module connects the N-dimensional kernels in `ops.conv_cpu` to the
autograd runtime. The three operation kinds share one implementation,
`_ConvNdFn`, and differ only in their spatial rank and registered name.

Design notes
------------
- Layout is channels-first: input `(N, C_in, *spatial)`, weight
  `(C_out, C_in, *kernel)`, optional bias `(C_out,)`.
- Hyperparameters arrive already validated and normalized to tuples by the
  functional wrappers in `convolution._functional`.
- Backward computes each of the input, weight and bias gradients only if the
  corresponding operand requires gradients.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

from ...domain._function import Function
from ..ops import conv_cpu
from ..tensor._tensor import Tensor
from ..tensor._tensor_context import Context


class _ConvNdFn(Function):
    """
    Shared forward/backward for N-dimensional convolution.

    Saved context
    -------------
    - `saved_tensors`: [x_values, weight_values]
    - `saved_meta`:
        - "stride": per-dimension stride
        - "padding": per-dimension padding
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
        """
        Perform the forward pass of the convolution.

        Parameters
        ----------
        ctx : Context
            Autograd context used to save values for the backward pass.
        x : Tensor
            Input tensor `(N, C_in, *spatial)`.
        weight : Tensor
            Kernel tensor `(C_out, C_in, *kernel)`.
        bias : Optional[Tensor]
            Optional per-output-channel bias.
        stride, padding : tuple[int, ...]
            Normalized hyperparameters, one entry per spatial dimension.

        Returns
        -------
        Tensor
            Output `(N, C_out, *out)`.
        """
        y = conv_cpu.conv_forward(
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
        """
        Compute gradients for the convolution.

        Returns
        -------
        Sequence[Optional[Tensor]]
            `(grad_x, grad_weight, grad_bias)`; entries are None for operands
            that are absent or do not require gradients.
        """
        x, w = ctx.saved_tensors
        stride = ctx.saved_meta["stride"]
        padding = ctx.saved_meta["padding"]
        x_t, w_t, b_t = ctx.inputs
        g = grad_out._data

        grad_x = grad_w = grad_b = None
        if x_t.requires_grad:
            grad_x = Tensor._wrap(
                conv_cpu.conv_input_grad(g, w, x.shape[2:], stride, padding)
            )
        if w_t.requires_grad:
            grad_w = Tensor._wrap(
                conv_cpu.conv_weight_grad(g, x, w.shape[2:], stride, padding)
            )
        if b_t is not None and b_t.requires_grad:
            grad_b = Tensor._wrap(conv_cpu.bias_grad(g))
        return (grad_x, grad_w, grad_b)


class Conv1dFn(_ConvNdFn):
    op_name = "conv1d"


class Conv2dFn(_ConvNdFn):
    op_name = "conv2d"


class Conv3dFn(_ConvNdFn):
    op_name = "conv3d"
