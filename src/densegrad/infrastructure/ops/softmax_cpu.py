"""
CPU kernels for row-wise log-softmax.

Rows are partitioned across workers. Each row is shifted by its maximum before
exponentiating, so the forward pass never overflows.
"""

from __future__ import annotations

import numpy as np

from ..parallel import parallel_for

_SOFTMAX_GRAIN_ELEMS = 1 << 14


def _grain(cols: int) -> int:
    return max(1, _SOFTMAX_GRAIN_ELEMS // max(1, cols))


def log_softmax_rows(x2: np.ndarray) -> np.ndarray:
    """
    `x - (max + log(sum(exp(x - max))))` for every row of `x2: (rows, cols)`.
    """
    rows, cols = x2.shape
    out = np.empty((rows, cols), dtype=np.float64)

    def work(start: int, end: int) -> None:
        xs = x2[start:end]
        m = xs.max(axis=1, keepdims=True)
        lse = m + np.log(np.exp(xs - m).sum(axis=1, keepdims=True))
        out[start:end] = xs - lse

    parallel_for(rows, work, grain=_grain(cols))
    return out


def log_softmax_rows_backward(g2: np.ndarray, y2: np.ndarray) -> np.ndarray:
    """
    Vector-Jacobian product of log-softmax: `dy - softmax * sum(dy)` per row,
    with `softmax = exp(y)` recovered from the saved output.
    """
    rows, cols = g2.shape
    gx = np.empty((rows, cols), dtype=np.float64)

    def work(start: int, end: int) -> None:
        gs = g2[start:end]
        gx[start:end] = gs - np.exp(y2[start:end]) * gs.sum(axis=1, keepdims=True)

    parallel_for(rows, work, grain=_grain(cols))
    return gx
