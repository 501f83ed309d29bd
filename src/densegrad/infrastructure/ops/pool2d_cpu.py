"""
CPU kernels for 2D max and average pooling (NumPy backend).

Tensors are NCHW. Both poolings loop over window offsets rather than output
positions: for each `(kh, kw)` the in-bounds part of every window is one
strided box (see `conv_cpu.offset_boxes`), so padding is never materialized.
Work is partitioned by `(batch, channel)` plane.

Semantics
---------
- Max pooling keeps the first-seen maximum in row-major window order and
  records its flat index `h * W + w` in the unpadded input plane.
- Average pooling divides by the number of in-bounds elements of each window
  (padding is not counted).
- A window without a single in-bounds element is an error for both.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from ...domain._errors import InvalidShapeError
from ..parallel import parallel_for
from .conv_cpu import conv_out_size, offset_boxes

Pair = Tuple[int, int]


def _pair(v: int | Pair) -> Pair:
    """
    Normalize an integer or pair into a 2-tuple.
    """
    if isinstance(v, (int, np.integer)):
        return (int(v), int(v))
    a, b = v
    return (int(a), int(b))


def pool_out_hw(H: int, W: int, k: Pair, s: Pair, p: Pair) -> Pair:
    """Output height and width: `(in + 2p - k) // s + 1` per dimension."""
    oh, ow = conv_out_size((H, W), k, s, p)
    return oh, ow


def _planes(x: np.ndarray) -> np.ndarray:
    N, C, H, W = x.shape
    return np.ascontiguousarray(x).reshape(N * C, H, W)


def maxpool2d_forward(
    x: np.ndarray, k: Pair, s: Pair, p: Pair
) -> tuple[np.ndarray, np.ndarray]:
    """
    Max pooling forward.

    Returns
    -------
    (y, argmax)
        `y` is `(N, C, H_out, W_out)`; `argmax` holds, for every output, the
        flat index of the winning element within its unpadded `H * W` plane.

    Raises
    ------
    InvalidShapeError
        If some window lies entirely in the padding.
    """
    N, C, H, W = x.shape
    oh, ow = pool_out_hw(H, W, k, s, p)
    xp = _planes(x)
    P = xp.shape[0]
    best = np.full((P, oh, ow), -np.inf, dtype=np.float64)
    arg = np.full((P, oh, ow), -1, dtype=np.int64)

    boxes = []
    for (kh, kw), in_sl, out_sl in offset_boxes((H, W), (oh, ow), k, s, p):
        rows = np.arange(H)[in_sl[0]]
        cols = np.arange(W)[in_sl[1]]
        flat = rows[:, None] * W + cols[None, :]
        boxes.append((in_sl, out_sl, flat))

    def work(start: int, end: int) -> None:
        xs = xp[start:end]
        bs = best[start:end]
        as_ = arg[start:end]
        for in_sl, out_sl, flat in boxes:
            vals = xs[(slice(None),) + in_sl]
            cur = bs[(slice(None),) + out_sl]
            cur_arg = as_[(slice(None),) + out_sl]
            # strict > keeps the earlier offset on ties; -1 marks "no winner yet"
            take = (vals > cur) | (cur_arg < 0)
            np.copyto(cur, vals, where=take)
            np.copyto(cur_arg, np.broadcast_to(flat, cur_arg.shape), where=take)

    parallel_for(P, work)

    if np.any(arg < 0):
        raise InvalidShapeError(
            "a pooling window lies entirely in the padding", op="max_pool2d"
        )
    return best.reshape(N, C, oh, ow), arg.reshape(N, C, oh, ow)


def maxpool2d_backward(
    grad: np.ndarray, argmax: np.ndarray, x_shape: Tuple[int, int, int, int]
) -> np.ndarray:
    """Scatter-add each output gradient to its recorded winner."""
    N, C, H, W = x_shape
    P = N * C
    g2 = np.ascontiguousarray(grad).reshape(P, -1)
    a2 = argmax.reshape(P, -1)
    dx = np.zeros((P, H * W), dtype=np.float64)

    def work(start: int, end: int) -> None:
        rows = np.arange(end - start)[:, None]
        np.add.at(dx[start:end], (rows, a2[start:end]), g2[start:end])

    parallel_for(P, work)
    return dx.reshape(x_shape)


def _window_counts(H: int, W: int, k: Pair, s: Pair, p: Pair) -> np.ndarray:
    oh, ow = pool_out_hw(H, W, k, s, p)
    counts = np.zeros((oh, ow), dtype=np.float64)
    for _, _, out_sl in offset_boxes((H, W), (oh, ow), k, s, p):
        counts[out_sl] += 1.0
    return counts


def avgpool2d_forward(
    x: np.ndarray, k: Pair, s: Pair, p: Pair
) -> tuple[np.ndarray, np.ndarray]:
    """
    Average pooling forward.

    Returns
    -------
    (y, counts)
        `y` is `(N, C, H_out, W_out)`; `counts` is `(H_out, W_out)` with the
        number of in-bounds elements per window, reused by backward.

    Raises
    ------
    InvalidShapeError
        If some window lies entirely in the padding.
    """
    N, C, H, W = x.shape
    oh, ow = pool_out_hw(H, W, k, s, p)
    counts = _window_counts(H, W, k, s, p)
    if np.any(counts == 0):
        raise InvalidShapeError(
            "a pooling window lies entirely in the padding", op="avg_pool2d"
        )
    xp = _planes(x)
    P = xp.shape[0]
    acc = np.zeros((P, oh, ow), dtype=np.float64)
    boxes = [(in_sl, out_sl) for _, in_sl, out_sl in offset_boxes((H, W), (oh, ow), k, s, p)]

    def work(start: int, end: int) -> None:
        xs = xp[start:end]
        ys = acc[start:end]
        for in_sl, out_sl in boxes:
            ys[(slice(None),) + out_sl] += xs[(slice(None),) + in_sl]
        ys /= counts

    parallel_for(P, work)
    return acc.reshape(N, C, oh, ow), counts


def avgpool2d_backward(
    grad: np.ndarray,
    counts: np.ndarray,
    x_shape: Tuple[int, int, int, int],
    k: Pair,
    s: Pair,
    p: Pair,
) -> np.ndarray:
    """Distribute each output gradient evenly over its in-bounds window."""
    N, C, H, W = x_shape
    oh, ow = counts.shape
    P = N * C
    g = np.ascontiguousarray(grad).reshape(P, oh, ow) / counts
    dx = np.zeros((P, H, W), dtype=np.float64)
    boxes = [(in_sl, out_sl) for _, in_sl, out_sl in offset_boxes((H, W), (oh, ow), k, s, p)]

    def work(start: int, end: int) -> None:
        gs = g[start:end]
        dxs = dx[start:end]
        for in_sl, out_sl in boxes:
            dxs[(slice(None),) + in_sl] += gs[(slice(None),) + out_sl]

    parallel_for(P, work)
    return dx.reshape(x_shape)
