"""
Shape arithmetic for views, broadcasting and the broadcast adjoint.

These helpers validate shapes and build NumPy views; they never copy unless
the source layout makes a view impossible.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from ...domain._errors import (
    IndexOutOfRangeError,
    InvalidShapeError,
    ShapeMismatchError,
)


def resolve_reshape(shape: Sequence[int], numel: int) -> tuple[int, ...]:
    """
    Resolve a reshape target that may contain one `-1` entry.

    Raises
    ------
    InvalidShapeError
        If more than one dimension is inferred or a dimension is zero or below
        -1.
    ShapeMismatchError
        If the element count cannot be preserved.
    """
    dims = [int(d) for d in shape]
    if not dims:
        raise InvalidShapeError("shape is required", op="reshape")
    inferred = [i for i, d in enumerate(dims) if d == -1]
    if len(inferred) > 1:
        raise InvalidShapeError("multiple inferred dimensions", op="reshape")
    if any(d == 0 or d < -1 for d in dims):
        raise InvalidShapeError(f"invalid shape {tuple(dims)}", op="reshape")
    known = 1
    for d in dims:
        if d != -1:
            known *= d
    if inferred:
        if numel % known != 0:
            raise ShapeMismatchError(
                f"cannot infer dimension: {numel} elements into {tuple(dims)}",
                op="reshape",
            )
        dims[inferred[0]] = numel // known
        known = numel
    if known != numel:
        raise ShapeMismatchError(
            f"element count mismatch: {numel} elements into {tuple(dims)}",
            op="reshape",
        )
    return tuple(dims)


def reshape_view(arr: np.ndarray, shape: Sequence[int]) -> tuple[np.ndarray, bool]:
    """
    Reshape `arr`, preferring a view.

    Returns
    -------
    (np.ndarray, bool)
        The reshaped array and whether it aliases `arr`. Sources whose layout
        cannot be expressed with strides (e.g. a transposed matrix flattened)
        are copied.
    """
    out = arr.reshape(tuple(shape))
    return out, np.shares_memory(out, arr)


def normalize_axis(axis: int, rank: int, *, op: str, extra: int = 0) -> int:
    """
    Map `axis` in `[-(rank + extra), rank + extra)` to a non-negative index.

    `extra=1` gives the insertion range used by unsqueeze and stack.
    """
    if isinstance(axis, bool) or not isinstance(axis, (int, np.integer)):
        raise TypeError(f"{op}: axis must be an int, got {axis!r}")
    span = rank + extra
    if axis < -span or axis >= span:
        raise IndexOutOfRangeError(
            f"axis {axis} out of range for rank {rank}", op=op
        )
    return int(axis) + span if axis < 0 else int(axis)


def check_broadcast(
    src: Sequence[int], target: Sequence[int], *, op: str = "broadcast_to"
) -> None:
    """
    Validate right-aligned broadcasting of `src` to `target`.

    Raises
    ------
    ShapeMismatchError
        If `target` has lower rank or a source dimension is neither 1 nor the
        matching target dimension.
    """
    src = tuple(src)
    target = tuple(target)
    if len(target) < len(src):
        raise ShapeMismatchError(
            f"cannot broadcast {src} to lower-rank {target}", op=op
        )
    for s, t in zip(reversed(src), reversed(target)):
        if s != t and s != 1:
            raise ShapeMismatchError(
                f"cannot broadcast {src} to {target}", op=op
            )


def broadcast_view(arr: np.ndarray, target: Sequence[int]) -> np.ndarray:
    """Return a read-only zero-stride view of `arr` with shape `target`."""
    return np.broadcast_to(arr, tuple(target))


def reduce_to_shape(grad: np.ndarray, shape: Optional[Sequence[int]]) -> np.ndarray:
    """
    Sum `grad` down to `shape`, the adjoint of broadcasting.

    Every leading axis that `shape` lacks is summed away, and every axis where
    `shape` has size 1 but `grad` does not is summed with keepdims. An empty
    (or None) target is treated as `[1]`.

    Raises
    ------
    ShapeMismatchError
        If `grad` cannot have been broadcast from `shape`.
    """
    target = tuple(int(d) for d in shape) if shape else (1,)
    src = tuple(grad.shape)
    if src == target:
        return np.array(grad, dtype=np.float64, copy=True)
    if len(target) > len(src):
        raise ShapeMismatchError(
            f"cannot reduce {src} to higher-rank {target}", op="reduce_to_shape"
        )
    lead = len(src) - len(target)
    out = grad.sum(axis=tuple(range(lead))) if lead else grad
    axes = []
    for i, (s, t) in enumerate(zip(out.shape, target)):
        if s == t:
            continue
        if t != 1:
            raise ShapeMismatchError(
                f"cannot reduce {src} to {target}", op="reduce_to_shape"
            )
        axes.append(i)
    if axes:
        out = out.sum(axis=tuple(axes), keepdims=True)
    return np.ascontiguousarray(out, dtype=np.float64).reshape(target)
