"""
Public linear-algebra operations.
"""

from __future__ import annotations

from ...domain._errors import ShapeMismatchError
from ..tensor._tensor import Tensor, ensure_tensor
from ..tensor._tensor_context import run_function
from ._linalg_function import AddBias2dFn, MatMulFn


def matmul(a: Tensor, b: Tensor) -> Tensor:
    """
    Matrix product of two rank-2 tensors.

    Parameters
    ----------
    a : Tensor
        Left operand, shape `(m, k)`.
    b : Tensor
        Right operand, shape `(k, n)`.

    Returns
    -------
    Tensor
        Product of shape `(m, n)`.

    Raises
    ------
    ShapeMismatchError
        If either operand is not rank 2 or the inner dimensions differ.
    """
    ensure_tensor(a, "matmul", "a")
    ensure_tensor(b, "matmul", "b")
    if a.ndim != 2 or b.ndim != 2:
        raise ShapeMismatchError(
            f"matmul expects rank-2 operands, got {a.shape} and {b.shape}",
            op="matmul",
        )
    if a.shape[1] != b.shape[0]:
        raise ShapeMismatchError(
            f"inner dimensions differ: {a.shape} @ {b.shape}", op="matmul"
        )
    return run_function(MatMulFn, [a, b])


def add_bias_2d(x: Tensor, bias: Tensor) -> Tensor:
    """
    Add a per-column bias to a rank-2 tensor.

    Raises
    ------
    ShapeMismatchError
        If `x` is not rank 2 or `bias` is not `(x.shape[1],)`.
    """
    ensure_tensor(x, "add_bias_2d", "x")
    ensure_tensor(bias, "add_bias_2d", "bias")
    if x.ndim != 2 or bias.shape != (x.shape[1],):
        raise ShapeMismatchError(
            f"expected (rows, cols) and (cols,), got {x.shape} and {bias.shape}",
            op="add_bias_2d",
        )
    return run_function(AddBias2dFn, [x, bias])
