"""
Tensor interface definitions.

This module defines the domain-level interface for tensor-like objects using
structural typing. The interface captures the surface that external
collaborators (layers, optimizers, serializers) are allowed to rely on:
shape and data access, gradient access and clearing, and the differentiation
entry point. Autograd node internals are intentionally absent.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Union, runtime_checkable

Number = Union[int, float]


@runtime_checkable
class ITensor(Protocol):
    """
    Tensor interface.

    An `ITensor` represents a shaped, strided buffer of float64 values that
    optionally participates in automatic differentiation.

    Notes
    -----
    - `data` and `grad` hand out copies; mutating them never
      affects the tensor.
    - In-place buffer updates go through explicit methods (`copy_from_numpy`,
      `set_data`, or the optimizer helpers on the concrete tensor).
    """

    @property
    def shape(self) -> tuple[int, ...]:
        """
        Return the shape of the tensor.

        Returns
        -------
        tuple[int, ...]
            The tensor's shape; every dimension is positive.
        """
        ...

    @property
    def strides(self) -> tuple[int, ...]:
        """
        Return per-dimension strides measured in elements.

        Broadcast views report a stride of 0 for expanded dimensions.
        """
        ...

    @property
    def data(self) -> Any:
        """Return a flat copy of the tensor values."""
        ...

    @property
    def requires_grad(self) -> bool:
        """
        Indicate whether this tensor should accumulate gradients.

        Returns
        -------
        bool
            True if gradients should be tracked/accumulated, False otherwise.
        """
        ...

    @requires_grad.setter
    def requires_grad(self, value: bool) -> None: ...

    @property
    def grad(self) -> Optional["ITensor"]:
        """
        Return a copy of the accumulated gradient, or None if unset.
        """
        ...

    def zero_grad(self) -> None:
        """
        Clear the stored gradient.

        Notes
        -----
        Training loops typically call `zero_grad()` before backpropagation to
        avoid unintentional accumulation across iterations.
        """
        ...

    def numel(self) -> int:
        """Return the total number of elements in the tensor."""
        ...

    def to_numpy(self) -> Any:
        """Return a shaped `np.ndarray` copy of the tensor."""
        ...

    def copy_from_numpy(self, arr: Any) -> None:
        """
        Copy data from an array-like object into this tensor (in place).

        Raises
        ------
        ShapeMismatchError
            If the array shape does not match this tensor's shape.
        """
        ...

    def detach(self) -> "ITensor":
        """Return a value-identical tensor with no autograd history."""
        ...

    def backward(self, grad_out: Optional["ITensor"] = None) -> None:
        """Backpropagate from this tensor through the autograd graph."""
        ...
