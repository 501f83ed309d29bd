"""
Public elementwise operations.

Binary operations require operands of identical shape; use `broadcast_to`
explicitly to combine tensors of different shapes.
"""

from __future__ import annotations

import math

from ...domain._errors import ShapeMismatchError
from ...domain._tensor import Number
from ..tensor._tensor import Tensor, ensure_tensor
from ..tensor._tensor_context import run_function
from ._elementwise_function import (
    AddFn,
    AddScalarFn,
    DivFn,
    SubFn,
    EluFn,
    ExpFn,
    GeluFn,
    LeakyReluFn,
    LogFn,
    MulFn,
    MulScalarFn,
    NegFn,
    PowFn,
    ReluFn,
    SigmoidFn,
    SoftplusFn,
    TanhFn,
)


def _binary_operands(op: str, a: Tensor, b: Tensor) -> None:
    ensure_tensor(a, op, "a")
    ensure_tensor(b, op, "b")
    if a.shape != b.shape:
        raise ShapeMismatchError(f"shape mismatch: {a.shape} vs {b.shape}", op=op)


def _scalar(op: str, v: Number) -> float:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise TypeError(f"{op}: expected a real scalar, got {type(v).__name__}")
    return float(v)


def add(a: Tensor, b: Tensor) -> Tensor:
    """Elementwise `a + b` for tensors of identical shape."""
    _binary_operands("add", a, b)
    return run_function(AddFn, [a, b])


def sub(a: Tensor, b: Tensor) -> Tensor:
    """Elementwise `a - b` for tensors of identical shape."""
    _binary_operands("sub", a, b)
    return run_function(SubFn, [a, b])


def mul(a: Tensor, b: Tensor) -> Tensor:
    """Elementwise `a * b` for tensors of identical shape."""
    _binary_operands("mul", a, b)
    return run_function(MulFn, [a, b])


def div(a: Tensor, b: Tensor) -> Tensor:
    """Elementwise `a / b` for tensors of identical shape."""
    _binary_operands("div", a, b)
    return run_function(DivFn, [a, b])


def add_scalar(x: Tensor, value: Number) -> Tensor:
    ensure_tensor(x, "add_scalar")
    return run_function(AddScalarFn, [x], value=_scalar("add_scalar", value))


def mul_scalar(x: Tensor, value: Number) -> Tensor:
    ensure_tensor(x, "mul_scalar")
    return run_function(MulScalarFn, [x], value=_scalar("mul_scalar", value))


def neg(x: Tensor) -> Tensor:
    ensure_tensor(x, "neg")
    return run_function(NegFn, [x])


def pow(x: Tensor, p: Number) -> Tensor:
    """Elementwise `x ** p` for a scalar exponent `p`."""
    ensure_tensor(x, "pow")
    return run_function(PowFn, [x], p=_scalar("pow", p))


def exp(x: Tensor) -> Tensor:
    ensure_tensor(x, "exp")
    return run_function(ExpFn, [x])


def log(x: Tensor) -> Tensor:
    """
    Elementwise natural logarithm.

    Non-positive inputs produce `-inf`/`nan` and emit a `RuntimeWarning`.
    """
    ensure_tensor(x, "log")
    return run_function(LogFn, [x])


def relu(x: Tensor) -> Tensor:
    ensure_tensor(x, "relu")
    return run_function(ReluFn, [x])


def sigmoid(x: Tensor) -> Tensor:
    ensure_tensor(x, "sigmoid")
    return run_function(SigmoidFn, [x])


def tanh(x: Tensor) -> Tensor:
    ensure_tensor(x, "tanh")
    return run_function(TanhFn, [x])


def leaky_relu(x: Tensor, alpha: float = 0.01) -> Tensor:
    """`x` for positive inputs, `alpha * x` otherwise."""
    ensure_tensor(x, "leaky_relu")
    return run_function(LeakyReluFn, [x], alpha=_scalar("leaky_relu", alpha))


def elu(x: Tensor, alpha: float = 1.0) -> Tensor:
    """`x` for positive inputs, `alpha * (exp(x) - 1)` otherwise."""
    ensure_tensor(x, "elu")
    return run_function(EluFn, [x], alpha=_scalar("elu", alpha))


def softplus(x: Tensor, beta: float = 1.0) -> Tensor:
    """
    Smooth approximation of ReLU: `log(1 + exp(beta * x)) / beta`.

    A non-positive `beta` falls back to 1.
    """
    ensure_tensor(x, "softplus")
    beta = _scalar("softplus", beta)
    if beta <= 0 or math.isnan(beta):
        beta = 1.0
    return run_function(SoftplusFn, [x], beta=beta)


def gelu(x: Tensor) -> Tensor:
    """Exact GELU: `0.5 * x * (1 + erf(x / sqrt(2)))`."""
    ensure_tensor(x, "gelu")
    return run_function(GeluFn, [x])
