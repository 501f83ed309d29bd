"""
Public structural operations: joins, splits and integer-indexed lookups.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

from ...domain._errors import (
    InvalidShapeError,
    ShapeMismatchError,
    UnsupportedConfigurationError,
)
from ..ops import structural_cpu
from ..ops.shape_cpu import normalize_axis
from ..shape import unsqueeze
from ..tensor._tensor import Tensor, ensure_tensor
from ..tensor._tensor_context import run_function
from ._structural_function import (
    ConcatFn,
    DropoutFn,
    EmbeddingFn,
    GatherFn,
    NarrowFn,
)


def concat(tensors: Sequence[Tensor], axis: int = 0) -> Tensor:
    """
    Join tensors along `axis`.

    Raises
    ------
    InvalidShapeError
        If `tensors` is empty.
    ShapeMismatchError
        If ranks differ or a non-axis dimension differs.
    IndexOutOfRangeError
        If `axis` is outside `[-rank, rank)`.
    """
    tensors = list(tensors)
    if not tensors:
        raise InvalidShapeError("requires at least one tensor", op="concat")
    for i, t in enumerate(tensors):
        ensure_tensor(t, "concat", f"tensors[{i}]")
    base = tensors[0].shape
    axis = normalize_axis(axis, len(base), op="concat")
    for t in tensors[1:]:
        if t.ndim != len(base):
            raise ShapeMismatchError(
                f"rank mismatch: {base} vs {t.shape}", op="concat"
            )
        for d in range(len(base)):
            if d != axis and t.shape[d] != base[d]:
                raise ShapeMismatchError(
                    f"shape mismatch off axis {axis}: {base} vs {t.shape}",
                    op="concat",
                )
    return run_function(ConcatFn, tensors, axis=axis)


def split(x: Tensor, sizes: Sequence[int], axis: int = 0) -> List[Tensor]:
    """
    Split `x` along `axis` into consecutive pieces of the given sizes.

    Each piece is an independent copy with its own gradient edge back to `x`.

    Raises
    ------
    InvalidShapeError
        If `sizes` is empty or contains a non-positive size.
    ShapeMismatchError
        If the sizes do not sum to the axis length.
    """
    ensure_tensor(x, "split")
    axis = normalize_axis(axis, x.ndim, op="split")
    sizes = [int(s) for s in sizes]
    if not sizes:
        raise InvalidShapeError("requires at least one size", op="split")
    if any(s <= 0 for s in sizes):
        raise InvalidShapeError(f"split sizes must be positive, got {sizes}", op="split")
    if sum(sizes) != x.shape[axis]:
        raise ShapeMismatchError(
            f"sizes {sizes} do not sum to axis length {x.shape[axis]}", op="split"
        )
    pieces = []
    start = 0
    for size in sizes:
        pieces.append(run_function(NarrowFn, [x], axis=axis, start=start, size=size))
        start += size
    return pieces


def chunk(x: Tensor, parts: int, axis: int = 0) -> List[Tensor]:
    """
    Split `x` into `parts` near-equal pieces; the first `length % parts`
    pieces get one extra element.

    Raises
    ------
    InvalidShapeError
        If `parts` is not positive or exceeds the axis length.
    """
    ensure_tensor(x, "chunk")
    parts = int(parts)
    if parts <= 0:
        raise InvalidShapeError(f"parts must be positive, got {parts}", op="chunk")
    axis = normalize_axis(axis, x.ndim, op="chunk")
    length = x.shape[axis]
    base, remainder = divmod(length, parts)
    sizes = [base + 1 if i < remainder else base for i in range(parts)]
    return split(x, sizes, axis)


def stack(tensors: Sequence[Tensor], axis: int = 0) -> Tensor:
    """
    Join equally shaped tensors along a new axis in `[-rank-1, rank]`.

    Raises
    ------
    InvalidShapeError
        If `tensors` is empty.
    ShapeMismatchError
        If the shapes differ.
    """
    tensors = list(tensors)
    if not tensors:
        raise InvalidShapeError("requires at least one tensor", op="stack")
    for i, t in enumerate(tensors):
        ensure_tensor(t, "stack", f"tensors[{i}]")
    base = tensors[0].shape
    for t in tensors[1:]:
        if t.shape != base:
            raise ShapeMismatchError(f"shape mismatch: {base} vs {t.shape}", op="stack")
    axis = normalize_axis(axis, len(base), op="stack", extra=1)
    return concat([unsqueeze(t, axis) for t in tensors], axis)


def gather(x: Tensor, axis: int, index: Tensor) -> Tensor:
    """
    Select values along `axis`: `out[..., j, ...] = x[..., index[..., j, ...], ...]`.

    Parameters
    ----------
    x : Tensor
        Source tensor.
    axis : int
        Lookup axis.
    index : Tensor
        Same rank as `x`, matching every non-axis dimension. Values are
        truncated toward zero.

    Raises
    ------
    ShapeMismatchError
        If `index` has a different rank or a mismatching non-axis dimension.
    IndexOutOfRangeError
        If `axis` or an index value is out of range.
    """
    ensure_tensor(x, "gather")
    ensure_tensor(index, "gather", "index")
    axis = normalize_axis(axis, x.ndim, op="gather")
    if index.ndim != x.ndim:
        raise ShapeMismatchError(
            f"index rank {index.ndim} does not match input rank {x.ndim}", op="gather"
        )
    for d in range(x.ndim):
        if d != axis and index.shape[d] != x.shape[d]:
            raise ShapeMismatchError(
                f"index shape {index.shape} does not match input {x.shape} off axis {axis}",
                op="gather",
            )
    idx = structural_cpu.as_indices(index.to_numpy(), x.shape[axis], op="gather")
    return run_function(GatherFn, [x], axis=axis, index=idx)


def embedding(weight: Tensor, index: Tensor) -> Tensor:
    """
    Look up rows of `weight` (rank >= 2) for every value of `index`.

    The output shape is `index.shape + weight.shape[1:]`.

    Raises
    ------
    ShapeMismatchError
        If `weight` has rank below 2.
    IndexOutOfRangeError
        If an index is outside `[0, weight.shape[0])`.
    """
    ensure_tensor(weight, "embedding", "weight")
    ensure_tensor(index, "embedding", "index")
    if weight.ndim < 2:
        raise ShapeMismatchError(
            f"weight must have rank >= 2, got shape {weight.shape}", op="embedding"
        )
    idx = structural_cpu.as_indices(index.to_numpy(), weight.shape[0], op="embedding")
    return run_function(EmbeddingFn, [weight], index=idx)


def dropout(
    x: Tensor,
    p: float = 0.5,
    training: bool = True,
    rng: Optional[np.random.Generator] = None,
) -> Tensor:
    """
    Inverted dropout: zero each element with probability `p` and scale the
    survivors by `1 / (1 - p)`.

    When `training` is False or `p == 0` the output is a copy of `x` that
    still passes gradients through.

    Raises
    ------
    UnsupportedConfigurationError
        If `p` is outside `[0, 1)`.
    TypeError
        If a mask is needed and `rng` is not a `numpy.random.Generator`.
    """
    ensure_tensor(x, "dropout")
    p = float(p)
    if not 0.0 <= p < 1.0:
        raise UnsupportedConfigurationError(
            f"probability must be in [0, 1), got {p}", op="dropout"
        )
    mask = None
    if training and p > 0.0:
        if not isinstance(rng, np.random.Generator):
            raise TypeError(
                f"dropout: rng must be a numpy.random.Generator, got {type(rng).__name__}"
            )
        mask = structural_cpu.dropout_mask(x.shape, p, rng)
    return run_function(DropoutFn, [x], mask=mask)
