"""
CPU kernels for elementwise operations (NumPy backend).

Every kernel here works on the flattened, C-contiguous view of its operands and
hands contiguous flat ranges to `parallel_for`, so each worker writes a
disjoint slab of the output buffer. The per-slab callbacks are ordinary NumPy
expressions with `out=` targets.

The activation formulas are collected here as well so that the forward and
backward `Function` classes share one definition of each derivative.
"""

from __future__ import annotations

import math
import warnings
from typing import Callable

import numpy as np
from scipy.special import erf

from ..parallel import parallel_for

# Below this many elements per worker the thread start-up cost dominates.
ELEMENTWISE_GRAIN = 1 << 15

UnaryKernel = Callable[[np.ndarray, np.ndarray], None]
BinaryKernel = Callable[[np.ndarray, np.ndarray, np.ndarray], None]

_SQRT_2 = math.sqrt(2.0)
_INV_SQRT_2PI = 1.0 / math.sqrt(2.0 * math.pi)


def _flat(a: np.ndarray) -> np.ndarray:
    return np.ascontiguousarray(a, dtype=np.float64).reshape(-1)


def map_unary(kernel: UnaryKernel, x: np.ndarray) -> np.ndarray:
    """
    Apply `kernel(x_slab, out_slab)` over flat ranges of `x`.

    Parameters
    ----------
    kernel : Callable[[np.ndarray, np.ndarray], None]
        Writes the result for one input slab into the matching output slab.
    x : np.ndarray
        Input array of any shape.

    Returns
    -------
    np.ndarray
        A new C-contiguous float64 array with the shape of `x`.
    """
    xf = _flat(x)
    out = np.empty_like(xf)

    def work(start: int, end: int) -> None:
        kernel(xf[start:end], out[start:end])

    parallel_for(xf.size, work, grain=ELEMENTWISE_GRAIN)
    return out.reshape(x.shape)


def map_binary(kernel: BinaryKernel, a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Apply `kernel(a_slab, b_slab, out_slab)` over flat ranges of equal-shape
    operands.
    """
    af = _flat(a)
    bf = _flat(b)
    out = np.empty_like(af)

    def work(start: int, end: int) -> None:
        kernel(af[start:end], bf[start:end], out[start:end])

    parallel_for(af.size, work, grain=ELEMENTWISE_GRAIN)
    return out.reshape(a.shape)


def add(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return map_binary(lambda x, y, o: np.add(x, y, out=o), a, b)


def sub(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return map_binary(lambda x, y, o: np.subtract(x, y, out=o), a, b)


def mul(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return map_binary(lambda x, y, o: np.multiply(x, y, out=o), a, b)


def div(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return map_binary(lambda x, y, o: np.divide(x, y, out=o), a, b)


def quotient_rhs_grad(g: np.ndarray, a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Gradient of `a / b` with respect to `b`: `-g * a / b**2`."""
    return map_binary(
        lambda ga, bs, o: np.divide(-ga, bs * bs, out=o), mul(g, a), b
    )


def scale(x: np.ndarray, factor: float) -> np.ndarray:
    return map_unary(lambda s, o: np.multiply(s, factor, out=o), x)


def shift(x: np.ndarray, value: float) -> np.ndarray:
    return map_unary(lambda s, o: np.add(s, value, out=o), x)


def inplace_update(dst: np.ndarray, kernel: UnaryKernel) -> None:
    """
    Run `kernel(dst_slab, dst_slab)` over flat ranges of a writable buffer.

    Non-contiguous destinations (e.g. transposed views) are updated in a
    single call on the calling thread.
    """
    if not dst.flags.c_contiguous:
        kernel(dst, dst)
        return
    flat = dst.reshape(-1)

    def work(start: int, end: int) -> None:
        kernel(flat[start:end], flat[start:end])

    parallel_for(flat.size, work, grain=ELEMENTWISE_GRAIN)


def accumulate_(dst: np.ndarray, src: np.ndarray, alpha: float = 1.0) -> None:
    """In-place `dst += alpha * src` over flat ranges."""
    if not dst.flags.c_contiguous:
        dst += alpha * np.asarray(src).reshape(dst.shape)
        return
    sf = _flat(src)
    flat = dst.reshape(-1)

    if alpha == 1.0:

        def work(start: int, end: int) -> None:
            flat[start:end] += sf[start:end]

    else:

        def work(start: int, end: int) -> None:
            flat[start:end] += alpha * sf[start:end]

    parallel_for(flat.size, work, grain=ELEMENTWISE_GRAIN)


# ---------------------------------------------------------------------------
# Unary math
# ---------------------------------------------------------------------------


def power(x: np.ndarray, p: float) -> np.ndarray:
    return map_unary(lambda s, o: np.power(s, p, out=o), x)


def power_grad(x: np.ndarray, p: float) -> np.ndarray:
    """d/dx x**p = p * x**(p-1)"""
    return map_unary(lambda s, o: np.multiply(p, np.power(s, p - 1.0), out=o), x)


def exp(x: np.ndarray) -> np.ndarray:
    return map_unary(lambda s, o: np.exp(s, out=o), x)


def log(x: np.ndarray) -> np.ndarray:
    if np.any(x <= 0.0):
        warnings.warn(
            "log received non-positive values; results contain -inf or nan",
            RuntimeWarning,
            stacklevel=3,
        )
    with np.errstate(divide="ignore", invalid="ignore"):
        return map_unary(lambda s, o: np.log(s, out=o), x)


# ---------------------------------------------------------------------------
# Activations
# ---------------------------------------------------------------------------


def relu(x: np.ndarray) -> np.ndarray:
    return map_unary(lambda s, o: np.maximum(s, 0.0, out=o), x)


def relu_mask(x: np.ndarray) -> np.ndarray:
    return map_unary(lambda s, o: np.greater(s, 0.0, out=o, casting="unsafe"), x)


def sigmoid(x: np.ndarray) -> np.ndarray:
    def kernel(s: np.ndarray, o: np.ndarray) -> None:
        # split by sign so exp never overflows
        pos = s >= 0
        o[pos] = 1.0 / (1.0 + np.exp(-s[pos]))
        e = np.exp(s[~pos])
        o[~pos] = e / (1.0 + e)

    return map_unary(kernel, x)


def sigmoid_grad_from_output(y: np.ndarray) -> np.ndarray:
    return map_unary(lambda s, o: np.multiply(s, 1.0 - s, out=o), y)


def tanh(x: np.ndarray) -> np.ndarray:
    return map_unary(lambda s, o: np.tanh(s, out=o), x)


def tanh_grad_from_output(y: np.ndarray) -> np.ndarray:
    return map_unary(lambda s, o: np.subtract(1.0, s * s, out=o), y)


def leaky_relu(x: np.ndarray, alpha: float) -> np.ndarray:
    return map_unary(lambda s, o: np.copyto(o, np.where(s > 0.0, s, alpha * s)), x)


def leaky_relu_grad(x: np.ndarray, alpha: float) -> np.ndarray:
    return map_unary(lambda s, o: np.copyto(o, np.where(s > 0.0, 1.0, alpha)), x)


def elu(x: np.ndarray, alpha: float) -> np.ndarray:
    def kernel(s: np.ndarray, o: np.ndarray) -> None:
        np.copyto(o, np.where(s > 0.0, s, alpha * np.expm1(np.minimum(s, 0.0))))

    return map_unary(kernel, x)


def elu_grad(x: np.ndarray, y: np.ndarray, alpha: float) -> np.ndarray:
    """Derivative of ELU: 1 for x > 0, `y + alpha` otherwise."""
    return map_binary(
        lambda s, out_, o: np.copyto(o, np.where(s > 0.0, 1.0, out_ + alpha)), x, y
    )


def softplus(x: np.ndarray, beta: float) -> np.ndarray:
    def kernel(s: np.ndarray, o: np.ndarray) -> None:
        # log1p(exp(z)) = max(z, 0) + log1p(exp(-|z|))
        z = beta * s
        np.copyto(o, (np.maximum(z, 0.0) + np.log1p(np.exp(-np.abs(z)))) / beta)

    return map_unary(kernel, x)


def softplus_grad(x: np.ndarray, beta: float) -> np.ndarray:
    return sigmoid(beta * x)


def gelu(x: np.ndarray) -> np.ndarray:
    return map_unary(
        lambda s, o: np.copyto(o, 0.5 * s * (1.0 + erf(s / _SQRT_2))), x
    )


def gelu_grad(x: np.ndarray) -> np.ndarray:
    def kernel(s: np.ndarray, o: np.ndarray) -> None:
        cdf = 0.5 * (1.0 + erf(s / _SQRT_2))
        pdf = _INV_SQRT_2PI * np.exp(-0.5 * s * s)
        np.copyto(o, cdf + s * pdf)

    return map_unary(kernel, x)
