"""
CPU kernels for layer and batch normalization (NumPy backend).

Layer normalization views the input as `(outer, norm_size)` and normalizes
each row; rows are partitioned across workers. Batch normalization views the
input as `(N, C, M)` (`M = H * W` for rank-4 input, 1 for rank-2) and computes
per-channel statistics; channels are partitioned across workers.

Both use the biased variance. With `dy_w = dy * weight` (or `dy` when there is
no weight), the input gradient is

    dx = inv_std * (dy_w - mean(dy_w) - x_hat * mean(dy_w * x_hat))

where the means run over the same elements as the statistics.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..parallel import parallel_for

_NORM_GRAIN_ELEMS = 1 << 14


def _grain(row_elems: int) -> int:
    return max(1, _NORM_GRAIN_ELEMS // max(1, row_elems))


# ---------------------------------------------------------------------------
# Layer normalization
# ---------------------------------------------------------------------------


def layer_norm_forward(
    x2: np.ndarray,
    weight: Optional[np.ndarray],
    bias: Optional[np.ndarray],
    eps: float,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Normalize each row of `x2: (outer, norm_size)`.

    Returns
    -------
    (y, x_hat, inv_std)
        `y` and `x_hat` are `(outer, norm_size)`; `inv_std` is `(outer,)`.
    """
    outer, size = x2.shape
    y = np.empty_like(x2, dtype=np.float64)
    x_hat = np.empty_like(x2, dtype=np.float64)
    inv_std = np.empty(outer, dtype=np.float64)

    def work(start: int, end: int) -> None:
        xs = x2[start:end]
        mean = xs.mean(axis=1, keepdims=True)
        centered = xs - mean
        var = (centered * centered).mean(axis=1, keepdims=True)
        istd = 1.0 / np.sqrt(var + eps)
        xh = centered * istd
        x_hat[start:end] = xh
        inv_std[start:end] = istd[:, 0]
        out = xh
        if weight is not None:
            out = out * weight
        if bias is not None:
            out = out + bias
        y[start:end] = out

    parallel_for(outer, work, grain=_grain(size))
    return y, x_hat, inv_std


def layer_norm_backward(
    g2: np.ndarray,
    x_hat: np.ndarray,
    inv_std: np.ndarray,
    weight: Optional[np.ndarray],
    *,
    need_x: bool,
    need_w: bool,
    need_b: bool,
) -> tuple[Optional[np.ndarray], Optional[np.ndarray], Optional[np.ndarray]]:
    """Gradients of layer normalization for `(outer, norm_size)` views."""
    gx = gw = gb = None
    if need_x:
        outer, size = g2.shape
        gx = np.empty_like(g2, dtype=np.float64)

        def work(start: int, end: int) -> None:
            gs = g2[start:end]
            xh = x_hat[start:end]
            scaled = gs * weight if weight is not None else gs
            m1 = scaled.mean(axis=1, keepdims=True)
            m2 = (scaled * xh).mean(axis=1, keepdims=True)
            gx[start:end] = inv_std[start:end, None] * (scaled - m1 - xh * m2)

        parallel_for(outer, work, grain=_grain(size))
    if need_w:
        gw = (g2 * x_hat).sum(axis=0)
    if need_b:
        gb = g2.sum(axis=0)
    return gx, gw, gb


# ---------------------------------------------------------------------------
# Batch normalization
# ---------------------------------------------------------------------------


def batch_norm_stats(x3: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Per-channel mean and biased variance of `x3: (N, C, M)`."""
    N, C, M = x3.shape
    mean = np.empty(C, dtype=np.float64)
    var = np.empty(C, dtype=np.float64)

    def work(start: int, end: int) -> None:
        xs = x3[:, start:end, :]
        m = xs.mean(axis=(0, 2))
        d = xs - m[None, :, None]
        mean[start:end] = m
        var[start:end] = (d * d).mean(axis=(0, 2))

    parallel_for(C, work, grain=_grain(N * M))
    return mean, var


def batch_norm_apply(
    x3: np.ndarray,
    mean: np.ndarray,
    inv_std: np.ndarray,
    weight: Optional[np.ndarray],
    bias: Optional[np.ndarray],
) -> np.ndarray:
    """`(x - mean) * inv_std * weight + bias`, channel-wise."""
    N, C, M = x3.shape
    y = np.empty((N, C, M), dtype=np.float64)

    def work(start: int, end: int) -> None:
        sl = slice(start, end)
        out = (x3[:, sl, :] - mean[None, sl, None]) * inv_std[None, sl, None]
        if weight is not None:
            out = out * weight[None, sl, None]
        if bias is not None:
            out = out + bias[None, sl, None]
        y[:, sl, :] = out

    parallel_for(C, work, grain=_grain(N * M))
    return y


def batch_norm_backward(
    g3: np.ndarray,
    x3: np.ndarray,
    mean: np.ndarray,
    inv_std: np.ndarray,
    weight: Optional[np.ndarray],
    *,
    training: bool,
    need_x: bool,
    need_w: bool,
    need_b: bool,
) -> tuple[Optional[np.ndarray], Optional[np.ndarray], Optional[np.ndarray]]:
    """
    Gradients of batch normalization for `(N, C, M)` views.

    In training mode the batch statistics depend on the input, giving the
    centered formula from the module docstring. In evaluation mode the
    statistics are constants and `dx = dy_w * inv_std`.
    """
    N, C, M = g3.shape
    gx = np.empty((N, C, M), dtype=np.float64) if need_x else None
    gw = np.empty(C, dtype=np.float64) if need_w else None
    gb = np.empty(C, dtype=np.float64) if need_b else None

    def work(start: int, end: int) -> None:
        sl = slice(start, end)
        gs = g3[:, sl, :]
        istd = inv_std[None, sl, None]
        xh = (x3[:, sl, :] - mean[None, sl, None]) * istd
        if gw is not None:
            gw[sl] = (gs * xh).sum(axis=(0, 2))
        if gb is not None:
            gb[sl] = gs.sum(axis=(0, 2))
        if gx is None:
            return
        scaled = gs * weight[None, sl, None] if weight is not None else gs
        if training:
            m1 = scaled.mean(axis=(0, 2), keepdims=True)
            m2 = (scaled * xh).mean(axis=(0, 2), keepdims=True)
            gx[:, sl, :] = istd * (scaled - m1 - xh * m2)
        else:
            gx[:, sl, :] = istd * scaled

    parallel_for(C, work, grain=_grain(N * M))
    return gx, gw, gb
