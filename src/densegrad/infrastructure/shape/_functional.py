"""
Public view and broadcast operations.
"""

from __future__ import annotations

from typing import Sequence

from ...domain._errors import IndexOutOfRangeError, ShapeMismatchError
from ..ops import shape_cpu
from ..tensor._tensor import Tensor, ensure_tensor, normalize_shape
from ..tensor._tensor_context import run_function
from ._shape_function import (
    BroadcastToFn,
    ReduceToShapeFn,
    ReshapeFn,
    SliceRowsFn,
    SqueezeFn,
    TransposeFn,
    UnsqueezeFn,
)


def reshape(x: Tensor, shape: Sequence[int]) -> Tensor:
    """
    Return `x` with a new shape and the same elements in row-major order.

    Parameters
    ----------
    x : Tensor
        Source tensor.
    shape : Sequence[int]
        Target shape. One entry may be -1 and is inferred.

    Returns
    -------
    Tensor
        A view sharing `x`'s buffer when the layout allows it (always for
        contiguous sources), otherwise a copy.

    Raises
    ------
    InvalidShapeError
        If more than one dimension is -1 or a dimension is invalid.
    ShapeMismatchError
        If the element count differs.
    """
    ensure_tensor(x, "reshape")
    if isinstance(shape, int):
        shape = (shape,)
    target = shape_cpu.resolve_reshape(shape, x.numel())
    return run_function(ReshapeFn, [x], shape=target)


def flatten(x: Tensor) -> Tensor:
    """
    Flatten to `[numel]` for rank < 2, else to `[batch, prod(rest)]`.
    """
    ensure_tensor(x, "flatten")
    if x.ndim < 2:
        return reshape(x, (x.numel(),))
    return reshape(x, (x.shape[0], x.numel() // x.shape[0]))


def transpose(x: Tensor) -> Tensor:
    """
    Swap the two axes of a rank-2 tensor (view).

    Raises
    ------
    ShapeMismatchError
        If `x` is not rank 2.
    """
    ensure_tensor(x, "transpose")
    if x.ndim != 2:
        raise ShapeMismatchError(
            f"transpose expects a rank-2 tensor, got shape {x.shape}", op="transpose"
        )
    return run_function(TransposeFn, [x])


def squeeze(x: Tensor, *axes: int) -> Tensor:
    """
    Remove size-1 dimensions.

    With no `axes`, every size-1 dimension is removed; otherwise only the
    named ones. A fully squeezed result becomes shape `[1]`.

    Raises
    ------
    IndexOutOfRangeError
        If an axis is out of range.
    ShapeMismatchError
        If a named axis has size greater than 1.

    Notes
    -----
    When nothing is removed the result is an independent copy that keeps
    `requires_grad` but carries no history.
    """
    ensure_tensor(x, "squeeze")
    shape = x.shape
    if axes:
        drop = set()
        for a in axes:
            i = shape_cpu.normalize_axis(a, len(shape), op="squeeze")
            if shape[i] != 1:
                raise ShapeMismatchError(
                    f"cannot squeeze axis {a} of size {shape[i]}", op="squeeze"
                )
            drop.add(i)
    else:
        drop = {i for i, d in enumerate(shape) if d == 1}

    if not drop:
        return Tensor._wrap(x.to_numpy(), requires_grad=x.requires_grad)

    target = tuple(d for i, d in enumerate(shape) if i not in drop) or (1,)
    return run_function(SqueezeFn, [x], shape=target)


def unsqueeze(x: Tensor, axis: int) -> Tensor:
    """
    Insert a size-1 dimension at `axis`, where `axis` is in
    `[-rank-1, rank]`.
    """
    ensure_tensor(x, "unsqueeze")
    i = shape_cpu.normalize_axis(axis, x.ndim, op="unsqueeze", extra=1)
    target = x.shape[:i] + (1,) + x.shape[i:]
    return run_function(UnsqueezeFn, [x], shape=target)


def slice_rows(x: Tensor, start: int, rows: int) -> Tensor:
    """
    Return rows `[start, start + rows)` of a rank-2 tensor as a view.

    Raises
    ------
    ShapeMismatchError
        If `x` is not rank 2.
    IndexOutOfRangeError
        If the row range is empty or exceeds the tensor.
    """
    ensure_tensor(x, "slice_rows")
    if x.ndim != 2:
        raise ShapeMismatchError(
            f"slice_rows expects a rank-2 tensor, got shape {x.shape}",
            op="slice_rows",
        )
    start = int(start)
    rows = int(rows)
    if start < 0 or rows <= 0 or start + rows > x.shape[0]:
        raise IndexOutOfRangeError(
            f"rows [{start}, {start + rows}) out of range for {x.shape[0]} rows",
            op="slice_rows",
        )
    return run_function(SliceRowsFn, [x], start=start, rows=rows)


def broadcast_to(x: Tensor, shape: Sequence[int]) -> Tensor:
    """
    Broadcast `x` to `shape` as a read-only zero-stride view.

    Dimensions are right-aligned; each source dimension must equal the
    target's or be 1.

    Raises
    ------
    ShapeMismatchError
        If the shapes are not broadcast-compatible.
    """
    ensure_tensor(x, "broadcast_to")
    target = normalize_shape(shape, op="broadcast_to")
    shape_cpu.check_broadcast(x.shape, target)
    return run_function(BroadcastToFn, [x], shape=target)


def reduce_to_shape(x: Tensor, shape: Sequence[int]) -> Tensor:
    """
    Sum `x` over broadcast axes so the result has exactly `shape`.

    An empty `shape` is treated as `[1]`.

    Raises
    ------
    ShapeMismatchError
        If `x` cannot have been broadcast from `shape`.
    """
    ensure_tensor(x, "reduce_to_shape")
    target = tuple(shape) if shape else (1,)
    if x.shape != target:
        shape_cpu.check_broadcast(target, x.shape, op="reduce_to_shape")
    return run_function(ReduceToShapeFn, [x], shape=target)
