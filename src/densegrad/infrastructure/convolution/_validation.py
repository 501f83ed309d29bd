"""
Operand validation shared by convolution and transposed convolution.
"""

from __future__ import annotations

from typing import Optional, Tuple

from ...domain._errors import InvalidShapeError, ShapeMismatchError
from ..ops import conv_cpu
from ..tensor._tensor import Tensor, ensure_tensor


def check_conv_operands(
    op: str,
    x: Tensor,
    weight: Tensor,
    bias: Optional[Tensor],
    stride: conv_cpu.IntOrTuple,
    padding: conv_cpu.IntOrTuple,
    *,
    nd: int,
    transposed: bool,
) -> tuple[Tuple[int, ...], Tuple[int, ...]]:
    """
    Validate convolution operands and normalize hyperparameters.

    Parameters
    ----------
    op : str
        Operation name used in error messages.
    nd : int
        Number of spatial dimensions (1, 2 or 3).
    transposed : bool
        True for transposed convolution, whose weight is
        `(C_in, C_out, *kernel)` instead of `(C_out, C_in, *kernel)`.

    Returns
    -------
    (stride, padding)
        Normalized per-dimension tuples.

    Raises
    ------
    ShapeMismatchError
        On a rank mismatch, an input/weight channel mismatch, or a bias that
        is not `(C_out,)`.
    InvalidShapeError
        On a non-positive stride, a negative padding, or an output spatial
        size below 1.
    """
    ensure_tensor(x, op, "x")
    ensure_tensor(weight, op, "weight")
    if bias is not None:
        ensure_tensor(bias, op, "bias")

    if x.ndim != nd + 2:
        raise ShapeMismatchError(
            f"expected input of rank {nd + 2}, got shape {x.shape}", op=op
        )
    if weight.ndim != nd + 2:
        raise ShapeMismatchError(
            f"expected weight of rank {nd + 2}, got shape {weight.shape}", op=op
        )

    if transposed:
        c_in_w, c_out = weight.shape[0], weight.shape[1]
    else:
        c_out, c_in_w = weight.shape[0], weight.shape[1]
    if x.shape[1] != c_in_w:
        raise ShapeMismatchError(
            f"input has {x.shape[1]} channels but weight expects {c_in_w}", op=op
        )
    if bias is not None and bias.shape != (c_out,):
        raise ShapeMismatchError(
            f"bias must have shape ({c_out},), got {bias.shape}", op=op
        )

    stride_t, padding_t = conv_cpu.normalize_hyperparams(stride, padding, nd, op=op)
    spatial = x.shape[2:]
    kernel = weight.shape[2:]
    if transposed:
        out = conv_cpu.conv_transpose_out_size(spatial, kernel, stride_t, padding_t)
    else:
        out = conv_cpu.conv_out_size(spatial, kernel, stride_t, padding_t)
    if any(o < 1 for o in out):
        raise InvalidShapeError(
            f"output spatial size {out} is not positive (input {spatial}, "
            f"kernel {kernel}, stride {stride_t}, padding {padding_t})",
            op=op,
        )
    return stride_t, padding_t
