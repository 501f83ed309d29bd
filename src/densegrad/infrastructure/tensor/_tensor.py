"""
Concrete Tensor implementation (NumPy backend).

This module provides the concrete `Tensor` that satisfies the domain-level
`ITensor` protocol. Every tensor stores its values in a float64 NumPy array.
A tensor either owns that array or holds a NumPy view of another tensor's
array; views (reshape, transpose, broadcast, row slices) therefore alias the
source buffer, and writes through one are visible through the other.

Automatic differentiation is expressed by attaching an optional `Context` to
tensors produced by differentiable operations. The autograd engine in
`infrastructure.autograd` traverses those contexts backward.

Design notes
------------
- Binary elementwise ops require exact shape matches. Broadcasting is
  explicit, through `broadcast_to` and its adjoint `reduce_to_shape`.
- The operator overloads and convenience methods on `Tensor` are thin
  delegates to the functional operations; no gradient rule lives here.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence, Union

import numpy as np

from ...domain._errors import (
    InvalidShapeError,
    InvariantViolationError,
    ShapeMismatchError,
    UnsupportedConfigurationError,
)
from ...domain._tensor import ITensor, Number
from ..ops import elementwise_cpu
from ._tensor_context import Context

DTYPE = np.float64

ShapeLike = Union[int, Sequence[int]]


def normalize_shape(shape: ShapeLike, *, op: str = "tensor") -> tuple[int, ...]:
    """
    Validate a user-supplied shape and return it as a tuple of ints.

    Raises
    ------
    TypeError
        If a dimension is not an integer.
    InvalidShapeError
        If the shape is empty or has a non-positive dimension.
    """
    if isinstance(shape, (int, np.integer)):
        shape = (int(shape),)
    dims: list[int] = []
    for d in shape:
        if isinstance(d, bool) or not isinstance(d, (int, np.integer)):
            raise TypeError(f"shape entries must be integers, got {d!r}")
        dims.append(int(d))
    if not dims:
        raise InvalidShapeError("shape is required", op=op)
    if any(d <= 0 for d in dims):
        raise InvalidShapeError(f"invalid shape {tuple(dims)}", op=op)
    return tuple(dims)


class Tensor(ITensor):
    """
    Concrete dense tensor (NumPy float64 backend).

    Parameters
    ----------
    shape : int | Sequence[int]
        Tensor shape. Every dimension must be positive.
    requires_grad : bool, optional
        Whether this tensor should accumulate gradients during backprop.
        Defaults to False.

    Notes
    -----
    - `_data` is a float64 ndarray; `_base` is the tensor whose buffer
      `_data` aliases, or None for an owning tensor.
    - Gradients (if any) are stored as another owning `Tensor` in `_grad`.
    - Public accessors (`data`, `to_numpy`, `grad`) return copies.
    """

    __array_priority__ = 1000

    def __init__(self, shape: ShapeLike, *, requires_grad: bool = False) -> None:
        shape = normalize_shape(shape)
        self._init_fields(np.zeros(shape, dtype=DTYPE), None, requires_grad)

    def _init_fields(
        self, data: np.ndarray, base: Optional["Tensor"], requires_grad: bool
    ) -> None:
        self._data: np.ndarray = data
        self._base: Optional[Tensor] = base
        self._requires_grad: bool = bool(requires_grad)
        self._grad: Optional[Tensor] = None
        self._ctx: Optional[Context] = None

    # ------------------------------------------------------------------
    # Construction boundary
    # ------------------------------------------------------------------

    @classmethod
    def new(
        cls, data: Any, shape: ShapeLike, *, requires_grad: bool = False
    ) -> "Tensor":
        """
        Build a tensor from flat values and an explicit shape.

        Parameters
        ----------
        data : array_like
            Flat sequence of values (any nesting is flattened).
        shape : int | Sequence[int]
            Target shape; its element count must equal `len(data)`.

        Raises
        ------
        InvalidShapeError
            If `shape` is empty or has a non-positive dimension.
        ShapeMismatchError
            If the number of values differs from the shape's element count.
        """
        shape = normalize_shape(shape, op="new")
        flat = np.array(data, dtype=DTYPE).reshape(-1)
        expected = int(np.prod(shape))
        if flat.size != expected:
            raise ShapeMismatchError(
                f"data has {flat.size} values but shape {shape} needs {expected}",
                op="new",
            )
        return cls._wrap(flat.reshape(shape), requires_grad=requires_grad)

    @staticmethod
    def _from_numpy(arr: Any, *, requires_grad: bool = False) -> "Tensor":
        """
        Construct an owning Tensor by copying a NumPy array.

        The array's shape determines the tensor shape; subsequent changes to
        `arr` do not affect the tensor.
        """
        arr = np.array(arr, dtype=DTYPE, copy=True)
        if arr.ndim == 0:
            arr = arr.reshape(1)
        normalize_shape(arr.shape, op="from_numpy")
        return Tensor._wrap(arr, requires_grad=requires_grad)

    @staticmethod
    def _wrap(
        arr: np.ndarray,
        *,
        base: Optional["Tensor"] = None,
        requires_grad: bool = False,
    ) -> "Tensor":
        """
        Adopt `arr` as the buffer of a new tensor without copying.

        Internal: used by kernels that already produced a fresh array, and by
        view operations (with `base` set to the aliased tensor).
        """
        if arr.dtype != DTYPE:
            arr = arr.astype(DTYPE)
        if arr.ndim == 0:
            arr = arr.reshape(1)
        t = Tensor.__new__(Tensor)
        t._init_fields(arr, base, requires_grad)
        return t

    def __repr__(self) -> str:
        flag = ", requires_grad=True" if self._requires_grad else ""
        view = ", view" if self.is_view else ""
        return f"Tensor(shape={self.shape}{flag}{view})"

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    @property
    def shape(self) -> tuple[int, ...]:
        """
        Return the tensor shape.

        Returns
        -------
        tuple[int, ...]
            The tensor's shape.
        """
        return tuple(self._data.shape)

    @property
    def strides(self) -> tuple[int, ...]:
        """
        Return per-dimension strides measured in elements.

        Broadcast dimensions report a stride of 0 and transposed views report
        the permuted strides of their source.
        """
        itemsize = self._data.itemsize
        return tuple(s // itemsize for s in self._data.strides)

    @property
    def ndim(self) -> int:
        return self._data.ndim

    @property
    def is_view(self) -> bool:
        """True if this tensor aliases another tensor's buffer."""
        return self._base is not None

    def numel(self) -> int:
        """
        Return the total number of elements in the tensor.

        Returns
        -------
        int
            Product of all dimensions in the tensor shape.
        """
        return int(self._data.size)

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    @property
    def data(self) -> np.ndarray:
        """
        Return a flat, row-major copy of the tensor values.

        Mutating the returned array never affects the tensor.
        """
        return self._data.flatten()

    def to_numpy(self) -> np.ndarray:
        """
        Return a shaped copy of the tensor values.

        Returns
        -------
        np.ndarray
            A C-contiguous float64 array independent of the tensor buffer.
        """
        return np.array(self._data, dtype=DTYPE, copy=True)

    def item(self) -> float:
        """
        Return the value of a single-element tensor as a Python float.

        Raises
        ------
        ShapeMismatchError
            If the tensor does not contain exactly one element.
        """
        if self._data.size != 1:
            raise ShapeMismatchError(
                f"item() requires a 1-element tensor, got shape={self.shape}",
                op="item",
            )
        return float(self._data.reshape(-1)[0])

    def _check_writable(self, op: str) -> None:
        if not self._data.flags.writeable:
            raise UnsupportedConfigurationError(
                "cannot write through a read-only broadcast view", op=op
            )

    def copy_from_numpy(self, arr: Any) -> None:
        """
        Copy values from a NumPy array into this tensor in place.

        Parameters
        ----------
        arr : array_like
            Source values. Must have exactly this tensor's shape.

        Raises
        ------
        ShapeMismatchError
            If the shapes differ.
        UnsupportedConfigurationError
            If this tensor is a read-only broadcast view.

        Notes
        -----
        Writes land in the shared buffer, so they are visible through every
        view of the same storage.
        """
        src = np.asarray(arr, dtype=DTYPE)
        if tuple(src.shape) != self.shape:
            raise ShapeMismatchError(
                f"expected shape {self.shape}, got {tuple(src.shape)}",
                op="copy_from_numpy",
            )
        self._check_writable("copy_from_numpy")
        self._data[...] = src

    def set_data(self, values: Iterable[float]) -> None:
        """
        Overwrite the tensor values from a flat sequence.

        Raises
        ------
        ShapeMismatchError
            If the number of values differs from `numel()`.
        """
        flat = np.asarray(values, dtype=DTYPE).reshape(-1)
        if flat.size != self.numel():
            raise ShapeMismatchError(
                f"set_data expects {self.numel()} values, got {flat.size}",
                op="set_data",
            )
        self._check_writable("set_data")
        self._data[...] = flat.reshape(self.shape)

    def fill(self, value: float) -> None:
        """Fill the tensor with a scalar value in place."""
        self._check_writable("fill")
        self._data.fill(float(value))

    def clone(self) -> "Tensor":
        """
        Return an owning copy of the values, with no gradient or history.
        """
        return Tensor._wrap(self.to_numpy())

    def detach(self) -> "Tensor":
        """
        Return a value-identical copy that does not require gradients and has
        no autograd history.
        """
        return Tensor._wrap(self.to_numpy())

    # ------------------------------------------------------------------
    # Autograd state
    # ------------------------------------------------------------------

    @property
    def requires_grad(self) -> bool:
        """
        Indicate whether this tensor should accumulate gradients.

        Returns
        -------
        bool
            True if gradients should be tracked/accumulated, False otherwise.
        """
        return self._requires_grad

    @requires_grad.setter
    def requires_grad(self, value: bool) -> None:
        self._requires_grad = bool(value)

    @property
    def grad(self) -> Optional["Tensor"]:
        """
        Return a copy of the accumulated gradient, or None.

        Use `scale_grad_` and `clip_grad_value_` to modify the stored
        gradient in place.
        """
        if self._grad is None:
            return None
        return self._grad.clone()

    def zero_grad(self) -> None:
        """
        Clear the stored gradient.

        Notes
        -----
        Training loops typically call `zero_grad()` before backprop to avoid
        unintentional accumulation across iterations.
        """
        self._grad = None

    def _set_ctx(self, ctx: Optional[Context]) -> None:
        """
        Attach the backward context and mark the tensor as requiring grad.

        Internal hook for differentiable operations.
        """
        self._ctx = ctx
        if ctx is not None:
            self._requires_grad = True

    def _get_ctx(self) -> Optional[Context]:
        """
        Return the backward context attached to this tensor, if any.

        Returns
        -------
        Optional[Context]
            The attached context, or None if this tensor is a leaf or has no
            autograd history.
        """
        return self._ctx

    def _accumulate_grad_(self, g: np.ndarray) -> None:
        """
        In-place accumulate gradient values `g` into the stored gradient.
        """
        if self._grad is None:
            self._grad = Tensor._wrap(np.array(g, dtype=DTYPE, copy=True))
            return
        if self._grad.shape != tuple(g.shape):
            raise InvariantViolationError(
                f"grad shape mismatch: {self._grad.shape} vs {tuple(g.shape)}",
                op="accumulate_grad",
            )
        elementwise_cpu.accumulate_(self._grad._data, g)

    def backward(self, grad_out: Optional["Tensor"] = None) -> None:
        """
        Backpropagate gradients from this tensor through the autograd graph.

        Parameters
        ----------
        grad_out : Optional[Tensor], optional
            Seed gradient with this tensor's shape. Defaults to ones.

        Raises
        ------
        InvariantViolationError
            If this tensor does not require gradients.
        ShapeMismatchError
            If `grad_out` does not match this tensor's shape.
        """
        from ..autograd._engine import backward

        backward(self, grad_out)

    # ------------------------------------------------------------------
    # In-place buffer updates (optimizer support)
    # ------------------------------------------------------------------

    def _same_shape(self, other: "Tensor", op: str) -> None:
        if not isinstance(other, Tensor):
            raise TypeError(f"{op}: expected Tensor, got {type(other).__name__}")
        if other.shape != self.shape:
            raise ShapeMismatchError(f"{self.shape} vs {other.shape}", op=op)

    def scale_(self, v: float) -> None:
        """Multiply every value by `v` in place."""
        self._check_writable("scale_")
        v = float(v)
        elementwise_cpu.inplace_update(self._data, lambda s, o: np.multiply(s, v, out=o))

    def add_scaled_(self, other: "Tensor", alpha: float) -> None:
        """In place `self += alpha * other`; shapes must match."""
        self._same_shape(other, "add_scaled_")
        self._check_writable("add_scaled_")
        elementwise_cpu.accumulate_(self._data, other._data, float(alpha))

    def mul_(self, other: "Tensor") -> None:
        """In place `self *= other`; shapes must match."""
        self._same_shape(other, "mul_")
        self._check_writable("mul_")
        self._data *= other._data

    def grad_pow_sum(self, norm: float) -> float:
        """
        Return `sum(|g| ** norm)` over the stored gradient (0 if none).

        Used by norm-based gradient clipping.
        """
        if self._grad is None:
            return 0.0
        return float(np.sum(np.abs(self._grad._data) ** float(norm)))

    def scale_grad_(self, factor: float) -> None:
        """Scale the stored gradient in place; no-op without a gradient."""
        if self._grad is not None:
            self._grad.scale_(factor)

    def clip_grad_value_(self, limit: float) -> None:
        """
        Clamp the stored gradient to `[-limit, limit]` in place.

        A non-positive `limit` or a missing gradient makes this a no-op.
        """
        if self._grad is None or limit <= 0:
            return
        lim = float(limit)
        elementwise_cpu.inplace_update(
            self._grad._data, lambda s, o: np.clip(s, -lim, lim, out=o)
        )

    # ------------------------------------------------------------------
    # Operator overloads
    # ------------------------------------------------------------------

    def __add__(self, other: Union["Tensor", Number]) -> "Tensor":
        from .. import elementwise as E

        if isinstance(other, Tensor):
            return E.add(self, other)
        if isinstance(other, (int, float)):
            return E.add_scalar(self, other)
        return NotImplemented

    def __radd__(self, other: Number) -> "Tensor":
        from .. import elementwise as E

        if isinstance(other, (int, float)):
            return E.add_scalar(self, other)
        return NotImplemented

    def __sub__(self, other: Union["Tensor", Number]) -> "Tensor":
        from .. import elementwise as E

        if isinstance(other, Tensor):
            return E.sub(self, other)
        if isinstance(other, (int, float)):
            return E.add_scalar(self, -other)
        return NotImplemented

    def __rsub__(self, other: Number) -> "Tensor":
        from .. import elementwise as E

        if isinstance(other, (int, float)):
            return E.add_scalar(E.neg(self), other)
        return NotImplemented

    def __mul__(self, other: Union["Tensor", Number]) -> "Tensor":
        from .. import elementwise as E

        if isinstance(other, Tensor):
            return E.mul(self, other)
        if isinstance(other, (int, float)):
            return E.mul_scalar(self, other)
        return NotImplemented

    def __rmul__(self, other: Number) -> "Tensor":
        from .. import elementwise as E

        if isinstance(other, (int, float)):
            return E.mul_scalar(self, other)
        return NotImplemented

    def __truediv__(self, other: Union["Tensor", Number]) -> "Tensor":
        from .. import elementwise as E

        if isinstance(other, Tensor):
            return E.div(self, other)
        if isinstance(other, (int, float)):
            return E.mul_scalar(self, 1.0 / other)
        return NotImplemented

    def __rtruediv__(self, other: Number) -> "Tensor":
        from .. import elementwise as E

        if isinstance(other, (int, float)):
            return E.mul_scalar(E.pow(self, -1.0), other)
        return NotImplemented

    def __pow__(self, p: Number) -> "Tensor":
        from .. import elementwise as E

        if isinstance(p, (int, float)):
            return E.pow(self, p)
        return NotImplemented

    def __neg__(self) -> "Tensor":
        from .. import elementwise as E

        return E.neg(self)

    def __matmul__(self, other: "Tensor") -> "Tensor":
        from ..linalg import matmul

        if isinstance(other, Tensor):
            return matmul(self, other)
        return NotImplemented

    # ------------------------------------------------------------------
    # Convenience delegates
    # ------------------------------------------------------------------

    def matmul(self, other: "Tensor") -> "Tensor":
        from ..linalg import matmul

        return matmul(self, other)

    def reshape(self, *shape: Union[int, Sequence[int]]) -> "Tensor":
        """
        Reshape to `shape` (varargs or a single sequence); see `reshape`.
        """
        from ..shape import reshape

        if len(shape) == 1 and not isinstance(shape[0], (int, np.integer)):
            shape = tuple(shape[0])
        return reshape(self, shape)

    def flatten(self) -> "Tensor":
        from ..shape import flatten

        return flatten(self)

    def transpose(self) -> "Tensor":
        from ..shape import transpose

        return transpose(self)

    @property
    def T(self) -> "Tensor":
        return self.transpose()

    def broadcast_to(self, shape: Sequence[int]) -> "Tensor":
        from ..shape import broadcast_to

        return broadcast_to(self, shape)

    def squeeze(self, *axes: int) -> "Tensor":
        from ..shape import squeeze

        return squeeze(self, *axes)

    def unsqueeze(self, axis: int) -> "Tensor":
        from ..shape import unsqueeze

        return unsqueeze(self, axis)

    def sum(self, axis: Optional[int] = None) -> "Tensor":
        from ..reduction import sum as sum_all, sum_axis

        return sum_all(self) if axis is None else sum_axis(self, axis)

    def mean(self) -> "Tensor":
        from ..reduction import mean

        return mean(self)

    def exp(self) -> "Tensor":
        from .. import elementwise as E

        return E.exp(self)

    def log(self) -> "Tensor":
        from .. import elementwise as E

        return E.log(self)

    def relu(self) -> "Tensor":
        from .. import elementwise as E

        return E.relu(self)

    def sigmoid(self) -> "Tensor":
        from .. import elementwise as E

        return E.sigmoid(self)

    def tanh(self) -> "Tensor":
        from .. import elementwise as E

        return E.tanh(self)


def ensure_tensor(x: Any, op: str, name: str = "input") -> Tensor:
    """
    Return `x` unchanged if it is a Tensor, else raise TypeError.
    """
    if not isinstance(x, Tensor):
        raise TypeError(f"{op}: {name} must be a Tensor, got {type(x).__name__}")
    return x
