"""
CPU kernels for N-dimensional convolution and transposed convolution.

This module provides vectorized NumPy implementations of 1D, 2D and 3D
convolution forward and backward passes for tensors in channels-first layout:

- input  `(N, C_in, *spatial)`
- weight `(C_out, C_in, *kernel)` (convolution)
- weight `(C_in, C_out, *kernel)` (transposed convolution)

Algorithm
---------
Instead of materializing a padded input or an im2col matrix, each kernel loops
over kernel offsets. For a fixed offset the input positions touched by all
valid output positions form a strided box, so the contribution of that offset
is one `tensordot` between the offset's weight slice `(C_out, C_in)` and the
box. Output positions whose receptive field falls into the padding simply get
no contribution from that offset, which is exactly zero padding.

Parallelism
-----------
- forward and input gradient: partitioned by batch index
- weight gradient: partitioned by output channel
Each partition writes a disjoint region of its output buffer.

Transposed convolution
----------------------
A transposed convolution is the adjoint of a convolution with the same
weight tensor read as `(C_conv_out, C_conv_in, *k) = (C_in, C_out, *k)`:

- its forward is the convolution input gradient,
- its input gradient is the convolution forward,
- its weight gradient is the convolution weight gradient with the roles of
  input and output gradient swapped.
"""

from __future__ import annotations

import itertools
from typing import Iterator, Optional, Sequence, Tuple

import numpy as np

from ...domain._errors import InvalidShapeError
from ..parallel import parallel_for

IntOrTuple = int | Sequence[int]


def _ntuple(v: IntOrTuple, n: int, name: str) -> Tuple[int, ...]:
    """
    Normalize an integer or an n-sequence into an n-tuple of ints.

    Parameters
    ----------
    v : int or Sequence[int]
        A scalar applied to every spatial dimension, or one value per
        dimension.
    n : int
        Number of spatial dimensions.
    name : str
        Hyperparameter name for error messages.
    """
    if isinstance(v, (int, np.integer)) and not isinstance(v, bool):
        return (int(v),) * n
    vals = tuple(int(x) for x in v)
    if len(vals) != n:
        raise InvalidShapeError(f"{name} must have {n} entries, got {len(vals)}")
    return vals


def normalize_hyperparams(
    stride: IntOrTuple, padding: IntOrTuple, n: int, *, op: str
) -> tuple[Tuple[int, ...], Tuple[int, ...]]:
    """
    Normalize and validate stride (positive) and padding (non-negative).

    Raises
    ------
    InvalidShapeError
        If a stride is not positive or a padding is negative.
    """
    s = _ntuple(stride, n, "stride")
    p = _ntuple(padding, n, "padding")
    if any(v <= 0 for v in s):
        raise InvalidShapeError(f"stride must be positive, got {s}", op=op)
    if any(v < 0 for v in p):
        raise InvalidShapeError(f"padding must be non-negative, got {p}", op=op)
    return s, p


def conv_out_size(
    size: Sequence[int], kernel: Sequence[int], stride: Sequence[int], pad: Sequence[int]
) -> Tuple[int, ...]:
    """`(in + 2p - k) // s + 1` per spatial dimension."""
    return tuple((i + 2 * p - k) // s + 1 for i, k, s, p in zip(size, kernel, stride, pad))


def conv_transpose_out_size(
    size: Sequence[int], kernel: Sequence[int], stride: Sequence[int], pad: Sequence[int]
) -> Tuple[int, ...]:
    """`(in - 1) * s - 2p + k` per spatial dimension."""
    return tuple((i - 1) * s - 2 * p + k for i, k, s, p in zip(size, kernel, stride, pad))


def offset_boxes(
    in_size: Sequence[int],
    out_size: Sequence[int],
    kernel: Sequence[int],
    stride: Sequence[int],
    pad: Sequence[int],
) -> Iterator[tuple[Tuple[int, ...], Tuple[slice, ...], Tuple[slice, ...]]]:
    """
    Yield `(offset, in_slices, out_slices)` for every kernel offset with at
    least one valid output position.

    For offset `k` along a dimension, output `o` reads input
    `i = o * s - p + k`; only `0 <= i < in_size` contributes.
    """
    per_dim: list[list[tuple[int, slice, slice]]] = []
    for I, O, K, s, p in zip(in_size, out_size, kernel, stride, pad):
        options = []
        for k in range(K):
            lo = max(0, -((k - p) // s))  # ceil((p - k) / s)
            hi = min(O - 1, (I - 1 + p - k) // s)
            if lo > hi:
                continue
            i0 = lo * s - p + k
            count = hi - lo + 1
            options.append(
                (k, slice(i0, i0 + (count - 1) * s + 1, s), slice(lo, hi + 1))
            )
        per_dim.append(options)

    for combo in itertools.product(*per_dim):
        offset = tuple(c[0] for c in combo)
        yield offset, tuple(c[1] for c in combo), tuple(c[2] for c in combo)


def _weight_at(w: np.ndarray, offset: Tuple[int, ...]) -> np.ndarray:
    return w[(slice(None), slice(None)) + offset]


def conv_forward(
    x: np.ndarray,
    w: np.ndarray,
    b: Optional[np.ndarray],
    stride: Tuple[int, ...],
    pad: Tuple[int, ...],
) -> np.ndarray:
    """
    Convolution forward.

    Parameters
    ----------
    x : np.ndarray
        Input `(N, C_in, *S)`.
    w : np.ndarray
        Weight `(C_out, C_in, *K)`.
    b : np.ndarray, optional
        Bias `(C_out,)`.

    Returns
    -------
    np.ndarray
        Output `(N, C_out, *O)` with `O = (S + 2p - K) // s + 1`.
    """
    N = x.shape[0]
    C_out = w.shape[0]
    spatial = x.shape[2:]
    kernel = w.shape[2:]
    out_size = conv_out_size(spatial, kernel, stride, pad)
    out = np.zeros((N, C_out) + out_size, dtype=np.float64)
    boxes = list(offset_boxes(spatial, out_size, kernel, stride, pad))

    def work(start: int, end: int) -> None:
        xs = x[start:end]
        ys = out[start:end]
        for offset, in_sl, out_sl in boxes:
            box = xs[(slice(None), slice(None)) + in_sl]
            # (C_out, C_in) . (n, C_in, *box) -> (C_out, n, *box)
            contrib = np.tensordot(_weight_at(w, offset), box, axes=([1], [1]))
            ys[(slice(None), slice(None)) + out_sl] += np.moveaxis(contrib, 0, 1)
        if b is not None:
            ys += b.reshape((1, C_out) + (1,) * len(out_size))

    parallel_for(N, work)
    return out


def conv_input_grad(
    grad: np.ndarray,
    w: np.ndarray,
    in_size: Sequence[int],
    stride: Tuple[int, ...],
    pad: Tuple[int, ...],
) -> np.ndarray:
    """
    Gradient of the convolution with respect to its input.

    Parameters
    ----------
    grad : np.ndarray
        Output gradient `(N, C_out, *O)`.
    w : np.ndarray
        Weight `(C_out, C_in, *K)`.
    in_size : Sequence[int]
        Spatial size `S` of the convolution input.

    Returns
    -------
    np.ndarray
        Input gradient `(N, C_in, *S)`.
    """
    N = grad.shape[0]
    C_in = w.shape[1]
    out_size = grad.shape[2:]
    kernel = w.shape[2:]
    dx = np.zeros((N, C_in) + tuple(in_size), dtype=np.float64)
    boxes = list(offset_boxes(in_size, out_size, kernel, stride, pad))

    def work(start: int, end: int) -> None:
        gs = grad[start:end]
        dxs = dx[start:end]
        for offset, in_sl, out_sl in boxes:
            g_box = gs[(slice(None), slice(None)) + out_sl]
            # (C_out, C_in) . (n, C_out, *box) -> (C_in, n, *box)
            contrib = np.tensordot(_weight_at(w, offset), g_box, axes=([0], [1]))
            dxs[(slice(None), slice(None)) + in_sl] += np.moveaxis(contrib, 0, 1)

    parallel_for(N, work)
    return dx


def conv_weight_grad(
    grad: np.ndarray,
    x: np.ndarray,
    kernel: Sequence[int],
    stride: Tuple[int, ...],
    pad: Tuple[int, ...],
) -> np.ndarray:
    """
    Gradient of the convolution with respect to its weight.

    Parameters
    ----------
    grad : np.ndarray
        Output gradient `(N, C_out, *O)`.
    x : np.ndarray
        Convolution input `(N, C_in, *S)`.
    kernel : Sequence[int]
        Kernel spatial size `K`.

    Returns
    -------
    np.ndarray
        Weight gradient `(C_out, C_in, *K)`.
    """
    C_out = grad.shape[1]
    C_in = x.shape[1]
    out_size = grad.shape[2:]
    spatial = x.shape[2:]
    nsp = len(spatial)
    dw = np.zeros((C_out, C_in) + tuple(kernel), dtype=np.float64)
    boxes = list(offset_boxes(spatial, out_size, kernel, stride, pad))
    # contract batch and every spatial axis
    axes = [0] + list(range(2, 2 + nsp))

    def work(start: int, end: int) -> None:
        gs = grad[:, start:end]
        for offset, in_sl, out_sl in boxes:
            g_box = gs[(slice(None), slice(None)) + out_sl]
            x_box = x[(slice(None), slice(None)) + in_sl]
            dw[(slice(start, end), slice(None)) + offset] = np.tensordot(
                g_box, x_box, axes=(axes, axes)
            )

    parallel_for(C_out, work)
    return dw


def bias_grad(grad: np.ndarray) -> np.ndarray:
    """Sum of the output gradient over batch and spatial axes: `(C_out,)`."""
    axes = (0,) + tuple(range(2, grad.ndim))
    return grad.sum(axis=axes)


def conv_transpose_forward(
    x: np.ndarray,
    w: np.ndarray,
    b: Optional[np.ndarray],
    stride: Tuple[int, ...],
    pad: Tuple[int, ...],
) -> np.ndarray:
    """
    Transposed convolution forward.

    Parameters
    ----------
    x : np.ndarray
        Input `(N, C_in, *S)`.
    w : np.ndarray
        Weight `(C_in, C_out, *K)`.
    b : np.ndarray, optional
        Bias `(C_out,)`.

    Returns
    -------
    np.ndarray
        Output `(N, C_out, *O)` with `O = (S - 1) * s - 2p + K`.
    """
    out_size = conv_transpose_out_size(x.shape[2:], w.shape[2:], stride, pad)
    y = conv_input_grad(x, w, out_size, stride, pad)
    if b is not None:
        y += b.reshape((1, -1) + (1,) * len(out_size))
    return y


def conv_transpose_input_grad(
    grad: np.ndarray, w: np.ndarray, stride: Tuple[int, ...], pad: Tuple[int, ...]
) -> np.ndarray:
    """Input gradient of a transposed convolution: `(N, C_in, *S)`."""
    return conv_forward(grad, w, None, stride, pad)


def conv_transpose_weight_grad(
    grad: np.ndarray,
    x: np.ndarray,
    kernel: Sequence[int],
    stride: Tuple[int, ...],
    pad: Tuple[int, ...],
) -> np.ndarray:
    """Weight gradient of a transposed convolution: `(C_in, C_out, *K)`."""
    return conv_weight_grad(x, grad, kernel, stride, pad)
