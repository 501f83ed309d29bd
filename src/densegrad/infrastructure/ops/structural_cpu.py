"""
CPU kernels for joining, splitting and integer-indexed lookups.

Concatenation and slicing view every operand as `(outer, axis_len, inner)` and
copy whole `axis_len * inner` slabs per outer index, partitioned over `outer`.
Lookups (gather, embedding) read with fancy indexing; their adjoints scatter
with `np.add.at` so that repeated indices accumulate.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from ...domain._errors import IndexOutOfRangeError
from ..parallel import parallel_for

_COPY_GRAIN_ELEMS = 1 << 15


def _split3(shape: Sequence[int], axis: int) -> tuple[int, int, int]:
    outer = int(np.prod(shape[:axis], dtype=np.int64))
    inner = int(np.prod(shape[axis + 1 :], dtype=np.int64))
    return outer, int(shape[axis]), inner


def _grain(slab: int) -> int:
    return max(1, _COPY_GRAIN_ELEMS // max(1, slab))


def concat(arrays: Sequence[np.ndarray], axis: int) -> np.ndarray:
    """Join `arrays` along `axis`; shapes are assumed validated."""
    out_shape = list(arrays[0].shape)
    out_shape[axis] = sum(a.shape[axis] for a in arrays)
    out = np.empty(tuple(out_shape), dtype=np.float64)
    outer, total, inner = _split3(out_shape, axis)
    out3 = out.reshape(outer, total, inner)

    offset = 0
    for a in arrays:
        size = a.shape[axis]
        a3 = a.reshape(outer, size, inner)

        def work(start: int, end: int, a3=a3, lo=offset, hi=offset + size) -> None:
            out3[start:end, lo:hi] = a3[start:end]

        parallel_for(outer, work, grain=_grain(size * inner))
        offset += size
    return out


def narrow(x: np.ndarray, axis: int, start: int, size: int) -> np.ndarray:
    """Copy of `x` restricted to `[start, start + size)` along `axis`."""
    outer, length, inner = _split3(x.shape, axis)
    out_shape = x.shape[:axis] + (size,) + x.shape[axis + 1 :]
    out = np.empty(out_shape, dtype=np.float64)
    x3 = x.reshape(outer, length, inner)
    out3 = out.reshape(outer, size, inner)

    def work(lo: int, hi: int) -> None:
        out3[lo:hi] = x3[lo:hi, start : start + size]

    parallel_for(outer, work, grain=_grain(size * inner))
    return out


def narrow_backward(
    grad: np.ndarray, in_shape: Sequence[int], axis: int, start: int
) -> np.ndarray:
    """Place `grad` at `[start, start + size)` along `axis` of a zero buffer."""
    outer, length, inner = _split3(in_shape, axis)
    size = grad.shape[axis]
    gx = np.zeros(tuple(in_shape), dtype=np.float64)
    gx3 = gx.reshape(outer, length, inner)
    g3 = grad.reshape(outer, size, inner)

    def work(lo: int, hi: int) -> None:
        gx3[lo:hi, start : start + size] = g3[lo:hi]

    parallel_for(outer, work, grain=_grain(size * inner))
    return gx


def as_indices(values: np.ndarray, upper: int, *, op: str) -> np.ndarray:
    """
    Truncate float index values toward zero and check `0 <= i < upper`.

    Raises
    ------
    IndexOutOfRangeError
        If any value is non-finite or out of range after truncation.
    """
    if not np.all(np.isfinite(values)):
        raise IndexOutOfRangeError("non-finite index", op=op)
    idx = np.trunc(values).astype(np.int64)
    if idx.size and (idx.min() < 0 or idx.max() >= upper):
        bad = idx[(idx < 0) | (idx >= upper)][0]
        raise IndexOutOfRangeError(
            f"index {int(bad)} out of range for size {upper}", op=op
        )
    return idx


def gather(x: np.ndarray, axis: int, idx: np.ndarray) -> np.ndarray:
    """`out[..., j, ...] = x[..., idx[..., j, ...], ...]` along `axis`."""
    return np.ascontiguousarray(np.take_along_axis(x, idx, axis=axis), dtype=np.float64)


def gather_backward(
    grad: np.ndarray, idx: np.ndarray, in_shape: Sequence[int], axis: int
) -> np.ndarray:
    """Scatter-add `grad` into a zero buffer of `in_shape` along `axis`."""
    gx = np.zeros(tuple(in_shape), dtype=np.float64)
    where = list(np.indices(idx.shape, sparse=True))
    where[axis] = idx
    np.add.at(gx, tuple(where), grad)
    return gx


def embedding(weight: np.ndarray, idx: np.ndarray) -> np.ndarray:
    """Row lookup: output shape `idx.shape + weight.shape[1:]`."""
    rows = weight.reshape(weight.shape[0], -1)
    flat = idx.reshape(-1)
    out = np.empty((flat.size, rows.shape[1]), dtype=np.float64)

    def work(start: int, end: int) -> None:
        out[start:end] = rows[flat[start:end]]

    parallel_for(flat.size, work, grain=_grain(rows.shape[1]))
    return out.reshape(idx.shape + weight.shape[1:])


def embedding_backward(
    grad: np.ndarray, idx: np.ndarray, weight_shape: Sequence[int]
) -> np.ndarray:
    """Scatter-add gradient rows back into a zero weight buffer."""
    gw = np.zeros((weight_shape[0], int(np.prod(weight_shape[1:]))), dtype=np.float64)
    np.add.at(gw, idx.reshape(-1), grad.reshape(idx.size, -1))
    return gw.reshape(tuple(weight_shape))


def dropout_mask(shape: Sequence[int], p: float, rng: np.random.Generator) -> np.ndarray:
    """Inverted-dropout mask: 0 with probability `p`, else `1 / (1 - p)`."""
    keep = rng.random(tuple(shape)) >= p
    return keep.astype(np.float64) * (1.0 / (1.0 - p))
