"""
CPU kernels for rank-2 matrix multiplication (NumPy backend).

The output is partitioned by rows of the left operand; each worker computes
one contiguous block of rows with a BLAS-backed `np.matmul`.
"""

from __future__ import annotations

import numpy as np

from ..parallel import parallel_for

# Multiply-adds per worker below which splitting is not worth it.
_MATMUL_GRAIN_FLOPS = 1 << 16


def matmul(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Compute `a @ b` for `a: (m, k)` and `b: (k, n)`.
    """
    m, k = a.shape
    n = b.shape[1]
    out = np.empty((m, n), dtype=np.float64)

    def work(start: int, end: int) -> None:
        np.matmul(a[start:end], b, out=out[start:end])

    parallel_for(m, work, grain=max(1, _MATMUL_GRAIN_FLOPS // max(1, k * n)))
    return out


def matmul_backward(
    grad: np.ndarray,
    a: np.ndarray,
    b: np.ndarray,
    *,
    need_a: bool,
    need_b: bool,
) -> tuple[np.ndarray | None, np.ndarray | None]:
    """
    Gradients of `a @ b`: `dA = dOut @ b.T` and `dB = a.T @ dOut`.
    """
    ga = matmul(grad, np.ascontiguousarray(b.T)) if need_a else None
    gb = matmul(np.ascontiguousarray(a.T), grad) if need_b else None
    return ga, gb


def add_bias_rows(x: np.ndarray, bias: np.ndarray) -> np.ndarray:
    """Add a `(cols,)` bias to every row of an `(rows, cols)` matrix."""
    rows, cols = x.shape
    out = np.empty((rows, cols), dtype=np.float64)

    def work(start: int, end: int) -> None:
        np.add(x[start:end], bias, out=out[start:end])

    parallel_for(rows, work, grain=max(1, _MATMUL_GRAIN_FLOPS // max(1, cols)))
    return out
