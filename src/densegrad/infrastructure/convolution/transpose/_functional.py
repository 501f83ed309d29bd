"""
Public transposed-convolution operations.
"""

from __future__ import annotations

from typing import Optional

from ...ops.conv_cpu import IntOrTuple
from ...tensor._tensor import Tensor
from ...tensor._tensor_context import run_function
from .._validation import check_conv_operands
from ._conv_transpose_function import (
    ConvTranspose1dFn,
    ConvTranspose2dFn,
    ConvTranspose3dFn,
)


def conv_transpose1d(
    x: Tensor,
    weight: Tensor,
    bias: Optional[Tensor] = None,
    stride: IntOrTuple = 1,
    padding: IntOrTuple = 0,
) -> Tensor:
    """
    1D transposed convolution; weight `(C_in, C_out, K)`.

    Output length is `(L - 1) * s - 2p + K`.
    """
    s, p = check_conv_operands(
        "conv_transpose1d", x, weight, bias, stride, padding, nd=1, transposed=True
    )
    return run_function(ConvTranspose1dFn, [x, weight, bias], stride=s, padding=p)


def conv_transpose2d(
    x: Tensor,
    weight: Tensor,
    bias: Optional[Tensor] = None,
    stride: IntOrTuple = 1,
    padding: IntOrTuple = 0,
) -> Tensor:
    """
    2D transposed convolution.

    Parameters
    ----------
    x : Tensor
        Input `(N, C_in, H, W)`.
    weight : Tensor
        Kernel `(C_in, C_out, K_h, K_w)`.
    bias : Tensor, optional
        Bias `(C_out,)`.

    Returns
    -------
    Tensor
        Output `(N, C_out, (H - 1) * s_h - 2 p_h + K_h, (W - 1) * s_w - 2 p_w + K_w)`.
    """
    s, p = check_conv_operands(
        "conv_transpose2d", x, weight, bias, stride, padding, nd=2, transposed=True
    )
    return run_function(ConvTranspose2dFn, [x, weight, bias], stride=s, padding=p)


def conv_transpose3d(
    x: Tensor,
    weight: Tensor,
    bias: Optional[Tensor] = None,
    stride: IntOrTuple = 1,
    padding: IntOrTuple = 0,
) -> Tensor:
    """3D transposed convolution; weight `(C_in, C_out, K_d, K_h, K_w)`."""
    s, p = check_conv_operands(
        "conv_transpose3d", x, weight, bias, stride, padding, nd=3, transposed=True
    )
    return run_function(ConvTranspose3dFn, [x, weight, bias], stride=s, padding=p)
