"""
Tensor factories.

All factories return owning, C-contiguous float64 tensors with no autograd
history. Random initialisation takes an explicit `numpy.random.Generator`;
there is no process-wide random state.
"""

from __future__ import annotations

from typing import Any, Optional

import numpy as np

from ...domain._errors import ShapeMismatchError
from ._tensor import DTYPE, ShapeLike, Tensor, normalize_shape


def zeros(shape: ShapeLike, *, requires_grad: bool = False) -> Tensor:
    """Return a tensor of zeros."""
    return Tensor(shape, requires_grad=requires_grad)


def ones(shape: ShapeLike, *, requires_grad: bool = False) -> Tensor:
    """Return a tensor of ones."""
    return full(shape, 1.0, requires_grad=requires_grad)


def full(shape: ShapeLike, value: float, *, requires_grad: bool = False) -> Tensor:
    """Return a tensor filled with `value`."""
    shape = normalize_shape(shape, op="full")
    return Tensor._wrap(
        np.full(shape, float(value), dtype=DTYPE), requires_grad=requires_grad
    )


def zeros_like(t: Tensor, *, requires_grad: bool = False) -> Tensor:
    return zeros(t.shape, requires_grad=requires_grad)


def ones_like(t: Tensor, *, requires_grad: bool = False) -> Tensor:
    return ones(t.shape, requires_grad=requires_grad)


def random_normal(
    shape: ShapeLike,
    rng: np.random.Generator,
    *,
    mean: float = 0.0,
    std: float = 1.0,
    requires_grad: bool = False,
) -> Tensor:
    """
    Sample a tensor from a normal distribution.

    Parameters
    ----------
    shape : int | Sequence[int]
        Output shape.
    rng : numpy.random.Generator
        Source of randomness. Passing the same seeded generator reproduces the
        same values.
    mean, std : float, optional
        Distribution parameters. Defaults to the standard normal.
    """
    if not isinstance(rng, np.random.Generator):
        raise TypeError(
            f"rng must be a numpy.random.Generator, got {type(rng).__name__}"
        )
    shape = normalize_shape(shape, op="random_normal")
    arr = rng.normal(loc=mean, scale=std, size=shape).astype(DTYPE, copy=False)
    return Tensor._wrap(arr, requires_grad=requires_grad)


def from_data(
    data: Any, shape: Optional[ShapeLike] = None, *, requires_grad: bool = False
) -> Tensor:
    """
    Build a tensor from array-like data.

    Parameters
    ----------
    data : array_like
        Values. Nested sequences and ndarrays keep their shape when `shape`
        is omitted; a Python scalar becomes a `[1]` tensor.
    shape : int | Sequence[int], optional
        Explicit shape. When given, `data` is read as a flat sequence whose
        length must equal the shape's element count (see `Tensor.new`).
    """
    if shape is not None:
        return Tensor.new(data, shape, requires_grad=requires_grad)
    return Tensor._from_numpy(np.asarray(data, dtype=DTYPE), requires_grad=requires_grad)


def copy_into(dst: Tensor, src: Tensor) -> None:
    """
    Copy the values of `src` into `dst` in place.

    Raises
    ------
    ShapeMismatchError
        If the shapes differ.
    """
    if not isinstance(dst, Tensor) or not isinstance(src, Tensor):
        raise TypeError("copy_into expects two Tensors")
    if dst.shape != src.shape:
        raise ShapeMismatchError(f"{dst.shape} vs {src.shape}", op="copy_into")
    dst.copy_from_numpy(src._data)
