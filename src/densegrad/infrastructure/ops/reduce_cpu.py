"""
CPU kernels for reductions (NumPy backend).

Axis reductions view the input as `(outer, n, inner)` where `n` is the reduced
axis, and partition the `outer` range across workers so each writes a
disjoint block of the output.
"""

from __future__ import annotations

import numpy as np

from ..parallel import parallel_for

# Rows of `n * inner` elements; keep slabs large enough to amortise threads.
_REDUCE_GRAIN_ELEMS = 1 << 15


def _split(shape: tuple[int, ...], axis: int) -> tuple[int, int, int]:
    outer = int(np.prod(shape[:axis], dtype=np.int64))
    inner = int(np.prod(shape[axis + 1 :], dtype=np.int64))
    return outer, shape[axis], inner


def reduced_shape(shape: tuple[int, ...], axis: int) -> tuple[int, ...]:
    """Shape with `axis` removed; a rank-1 input reduces to `(1,)`."""
    out = shape[:axis] + shape[axis + 1 :]
    return out if out else (1,)


def _grain(n: int, inner: int) -> int:
    return max(1, _REDUCE_GRAIN_ELEMS // max(1, n * inner))


def sum_all(x: np.ndarray) -> np.ndarray:
    return np.array([np.sum(x, dtype=np.float64)], dtype=np.float64)


def sum_axis(x: np.ndarray, axis: int) -> np.ndarray:
    outer, n, inner = _split(x.shape, axis)
    x3 = np.ascontiguousarray(x).reshape(outer, n, inner)
    out = np.empty((outer, inner), dtype=np.float64)

    def work(start: int, end: int) -> None:
        np.sum(x3[start:end], axis=1, out=out[start:end])

    parallel_for(outer, work, grain=_grain(n, inner))
    return out.reshape(reduced_shape(x.shape, axis))


def arg_extreme_axis(
    x: np.ndarray, axis: int, *, largest: bool
) -> tuple[np.ndarray, np.ndarray]:
    """
    Max or min along `axis`, keeping the first-seen winner on ties.

    Returns
    -------
    (values, indices)
        `values` has the reduced shape; `indices` has shape `(outer, inner)`
        and holds the winning position along the reduced axis.
    """
    outer, n, inner = _split(x.shape, axis)
    x3 = np.ascontiguousarray(x).reshape(outer, n, inner)
    idx = np.empty((outer, inner), dtype=np.int64)
    vals = np.empty((outer, inner), dtype=np.float64)
    pick = np.argmax if largest else np.argmin

    def work(start: int, end: int) -> None:
        block = x3[start:end]
        i = pick(block, axis=1)
        idx[start:end] = i
        vals[start:end] = np.take_along_axis(block, i[:, None, :], axis=1)[:, 0, :]

    parallel_for(outer, work, grain=_grain(n, inner))
    return vals.reshape(reduced_shape(x.shape, axis)), idx


def scatter_axis(
    grad: np.ndarray, idx: np.ndarray, in_shape: tuple[int, ...], axis: int
) -> np.ndarray:
    """Route each reduced gradient to its winner position; zeros elsewhere."""
    outer, n, inner = _split(in_shape, axis)
    g3 = np.zeros((outer, n, inner), dtype=np.float64)
    g2 = np.ascontiguousarray(grad).reshape(outer, inner)
    np.put_along_axis(g3, idx[:, None, :], g2[:, None, :], axis=1)
    return g3.reshape(in_shape)


def expand_axis(grad: np.ndarray, in_shape: tuple[int, ...], axis: int) -> np.ndarray:
    """Broadcast a reduced gradient back across the reduced axis."""
    outer, n, inner = _split(in_shape, axis)
    g2 = np.ascontiguousarray(grad).reshape(outer, 1, inner)
    return np.broadcast_to(g2, (outer, n, inner)).reshape(in_shape)
