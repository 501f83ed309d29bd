"""
Autograd `Function` adapters for elementwise arithmetic and activations.

Every forward delegates the numeric work to `ops.elementwise_cpu` and saves
either its inputs or its output, whichever the derivative is cheaper to
evaluate from. Backward passes only compute gradients for inputs that require
them.
"""

from __future__ import annotations

from typing import Optional, Sequence

from ...domain._function import Function
from ..ops import elementwise_cpu as K
from ..tensor._tensor import Tensor
from ..tensor._tensor_context import Context


def _needs(ctx: Context, i: int) -> bool:
    t = ctx.inputs[i]
    return t is not None and t.requires_grad


def _out(arr) -> Tensor:
    return Tensor._wrap(arr)


# ---------------------------------------------------------------------------
# Binary arithmetic
# ---------------------------------------------------------------------------


class AddFn(Function):
    """Elementwise `a + b`; both gradients pass through unchanged."""

    op_name = "add"

    @staticmethod
    def forward(ctx: Context, a: Tensor, b: Tensor) -> Tensor:
        return _out(K.add(a._data, b._data))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        return (grad_out, grad_out)


class SubFn(Function):
    """Elementwise `a - b`; the subtrahend receives the negated gradient."""

    op_name = "sub"

    @staticmethod
    def forward(ctx: Context, a: Tensor, b: Tensor) -> Tensor:
        return _out(K.sub(a._data, b._data))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        gb = _out(K.scale(grad_out._data, -1.0)) if _needs(ctx, 1) else None
        return (grad_out, gb)


class MulFn(Function):
    """
    Elementwise `a * b`.

    Saved context
    -------------
    - `saved_tensors`: [a_values, b_values]
    """

    op_name = "mul"

    @staticmethod
    def forward(ctx: Context, a: Tensor, b: Tensor) -> Tensor:
        ctx.save_for_backward(a._data, b._data)
        return _out(K.mul(a._data, b._data))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        a, b = ctx.saved_tensors
        g = grad_out._data
        ga = _out(K.mul(g, b)) if _needs(ctx, 0) else None
        gb = _out(K.mul(g, a)) if _needs(ctx, 1) else None
        return (ga, gb)


class DivFn(Function):
    """
    Elementwise `a / b`, with the quotient rule `(1/b, -a/b**2)`.
    """

    op_name = "div"

    @staticmethod
    def forward(ctx: Context, a: Tensor, b: Tensor) -> Tensor:
        ctx.save_for_backward(a._data, b._data)
        return _out(K.div(a._data, b._data))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        a, b = ctx.saved_tensors
        g = grad_out._data
        ga = _out(K.div(g, b)) if _needs(ctx, 0) else None
        gb = None
        if _needs(ctx, 1):
            gb = _out(K.quotient_rhs_grad(g, a, b))
        return (ga, gb)


# ---------------------------------------------------------------------------
# Scalar arithmetic
# ---------------------------------------------------------------------------


class AddScalarFn(Function):
    op_name = "add_scalar"

    @staticmethod
    def forward(ctx: Context, x: Tensor, *, value: float) -> Tensor:
        return _out(K.shift(x._data, value))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        return (grad_out,)


class MulScalarFn(Function):
    op_name = "mul_scalar"

    @staticmethod
    def forward(ctx: Context, x: Tensor, *, value: float) -> Tensor:
        ctx.saved_meta["value"] = value
        return _out(K.scale(x._data, value))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        return (_out(K.scale(grad_out._data, ctx.saved_meta["value"])),)


class NegFn(Function):
    op_name = "neg"

    @staticmethod
    def forward(ctx: Context, x: Tensor) -> Tensor:
        return _out(K.scale(x._data, -1.0))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        return (_out(K.scale(grad_out._data, -1.0)),)


# ---------------------------------------------------------------------------
# Unary math
# ---------------------------------------------------------------------------


class PowFn(Function):
    """
    Elementwise `x ** p` for a scalar exponent `p`.

    Saved context
    -------------
    - `saved_tensors`: [x_values]
    - `saved_meta["p"]`: exponent
    """

    op_name = "pow"

    @staticmethod
    def forward(ctx: Context, x: Tensor, *, p: float) -> Tensor:
        ctx.save_for_backward(x._data)
        ctx.saved_meta["p"] = p
        return _out(K.power(x._data, p))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        (x,) = ctx.saved_tensors
        local = K.power_grad(x, ctx.saved_meta["p"])
        return (_out(K.mul(grad_out._data, local)),)


class ExpFn(Function):
    """Elementwise `exp(x)`; the derivative is the saved output."""

    op_name = "exp"

    @staticmethod
    def forward(ctx: Context, x: Tensor) -> Tensor:
        y = K.exp(x._data)
        ctx.save_for_backward(y)
        return _out(y)

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        (y,) = ctx.saved_tensors
        return (_out(K.mul(grad_out._data, y)),)


class LogFn(Function):
    """Elementwise natural log; the derivative is `1/x`."""

    op_name = "log"

    @staticmethod
    def forward(ctx: Context, x: Tensor) -> Tensor:
        ctx.save_for_backward(x._data)
        return _out(K.log(x._data))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        (x,) = ctx.saved_tensors
        return (_out(K.div(grad_out._data, x)),)


# ---------------------------------------------------------------------------
# Activations
# ---------------------------------------------------------------------------


class ReluFn(Function):
    """
    Rectified linear unit.

    Saved context
    -------------
    - `saved_tensors`: [mask] where mask is 1.0 for `x > 0`, else 0.0
    """

    op_name = "relu"

    @staticmethod
    def forward(ctx: Context, x: Tensor) -> Tensor:
        ctx.save_for_backward(K.relu_mask(x._data))
        return _out(K.relu(x._data))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        (mask,) = ctx.saved_tensors
        return (_out(K.mul(grad_out._data, mask)),)


class SigmoidFn(Function):
    """Logistic sigmoid; backward uses `y * (1 - y)` from the saved output."""

    op_name = "sigmoid"

    @staticmethod
    def forward(ctx: Context, x: Tensor) -> Tensor:
        y = K.sigmoid(x._data)
        ctx.save_for_backward(y)
        return _out(y)

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        (y,) = ctx.saved_tensors
        return (_out(K.mul(grad_out._data, K.sigmoid_grad_from_output(y))),)


class TanhFn(Function):
    """Hyperbolic tangent; backward uses `1 - y**2` from the saved output."""

    op_name = "tanh"

    @staticmethod
    def forward(ctx: Context, x: Tensor) -> Tensor:
        y = K.tanh(x._data)
        ctx.save_for_backward(y)
        return _out(y)

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        (y,) = ctx.saved_tensors
        return (_out(K.mul(grad_out._data, K.tanh_grad_from_output(y))),)


class LeakyReluFn(Function):
    op_name = "leaky_relu"

    @staticmethod
    def forward(ctx: Context, x: Tensor, *, alpha: float) -> Tensor:
        ctx.save_for_backward(x._data)
        ctx.saved_meta["alpha"] = alpha
        return _out(K.leaky_relu(x._data, alpha))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        (x,) = ctx.saved_tensors
        local = K.leaky_relu_grad(x, ctx.saved_meta["alpha"])
        return (_out(K.mul(grad_out._data, local)),)


class EluFn(Function):
    """
    Exponential linear unit.

    For `x <= 0` the derivative `alpha * exp(x)` equals `y + alpha`, so both
    the input and the output are saved.
    """

    op_name = "elu"

    @staticmethod
    def forward(ctx: Context, x: Tensor, *, alpha: float) -> Tensor:
        y = K.elu(x._data, alpha)
        ctx.save_for_backward(x._data, y)
        ctx.saved_meta["alpha"] = alpha
        return _out(y)

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        x, y = ctx.saved_tensors
        local = K.elu_grad(x, y, ctx.saved_meta["alpha"])
        return (_out(K.mul(grad_out._data, local)),)


class SoftplusFn(Function):
    """`log(1 + exp(beta * x)) / beta`; the derivative is `sigmoid(beta * x)`."""

    op_name = "softplus"

    @staticmethod
    def forward(ctx: Context, x: Tensor, *, beta: float) -> Tensor:
        ctx.save_for_backward(x._data)
        ctx.saved_meta["beta"] = beta
        return _out(K.softplus(x._data, beta))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        (x,) = ctx.saved_tensors
        local = K.softplus_grad(x, ctx.saved_meta["beta"])
        return (_out(K.mul(grad_out._data, local)),)


class GeluFn(Function):
    """Gaussian error linear unit, exact `x * Phi(x)` form."""

    op_name = "gelu"

    @staticmethod
    def forward(ctx: Context, x: Tensor) -> Tensor:
        ctx.save_for_backward(x._data)
        return _out(K.gelu(x._data))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        (x,) = ctx.saved_tensors
        return (_out(K.mul(grad_out._data, K.gelu_grad(x))),)
