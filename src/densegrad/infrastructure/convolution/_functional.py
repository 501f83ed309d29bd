"""
Public convolution operations.
"""

from __future__ import annotations

from typing import Optional

from ..ops.conv_cpu import IntOrTuple
from ..tensor._tensor import Tensor
from ..tensor._tensor_context import run_function
from ._conv_function import Conv1dFn, Conv2dFn, Conv3dFn
from ._validation import check_conv_operands


def conv1d(
    x: Tensor,
    weight: Tensor,
    bias: Optional[Tensor] = None,
    stride: IntOrTuple = 1,
    padding: IntOrTuple = 0,
) -> Tensor:
    """
    1D convolution over `(N, C_in, L)` with weight `(C_out, C_in, K)`.

    Output length is `(L + 2p - K) // s + 1`.
    """
    s, p = check_conv_operands(
        "conv1d", x, weight, bias, stride, padding, nd=1, transposed=False
    )
    return run_function(Conv1dFn, [x, weight, bias], stride=s, padding=p)


def conv2d(
    x: Tensor,
    weight: Tensor,
    bias: Optional[Tensor] = None,
    stride: IntOrTuple = 1,
    padding: IntOrTuple = 0,
) -> Tensor:
    """
    2D convolution over NCHW input.

    Parameters
    ----------
    x : Tensor
        Input `(N, C_in, H, W)`.
    weight : Tensor
        Kernel `(C_out, C_in, K_h, K_w)`.
    bias : Tensor, optional
        Bias `(C_out,)`.
    stride : int | tuple[int, int], optional
        Defaults to 1.
    padding : int | tuple[int, int], optional
        Implicit zero padding on both sides. Defaults to 0.

    Returns
    -------
    Tensor
        Output `(N, C_out, H_out, W_out)`.

    Raises
    ------
    ShapeMismatchError
        On rank or channel mismatch.
    InvalidShapeError
        On invalid stride/padding or an empty output.
    """
    s, p = check_conv_operands(
        "conv2d", x, weight, bias, stride, padding, nd=2, transposed=False
    )
    return run_function(Conv2dFn, [x, weight, bias], stride=s, padding=p)


def conv3d(
    x: Tensor,
    weight: Tensor,
    bias: Optional[Tensor] = None,
    stride: IntOrTuple = 1,
    padding: IntOrTuple = 0,
) -> Tensor:
    """3D convolution over `(N, C_in, D, H, W)`."""
    s, p = check_conv_operands(
        "conv3d", x, weight, bias, stride, padding, nd=3, transposed=False
    )
    return run_function(Conv3dFn, [x, weight, bias], stride=s, padding=p)
