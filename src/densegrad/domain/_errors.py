"""
Error taxonomy for densegrad.

This module defines the exceptions raised by tensor construction, the
operation library and the autograd engine. Every user-facing failure is
reported synchronously, at the call that detected it, as one of the
`DenseGradError` subclasses below. The engine never retries and never
silently coerces shapes.

Each concrete error also derives from the closest built-in exception
(`ValueError`, `IndexError`, `RuntimeError`) so callers that only know the
standard library can still catch them idiomatically.

`GradientInvariantError` is the exception to the hierarchy: it signals a bug
inside a gradient rule (a backward pass that produced a gradient whose shape
cannot be reconciled with its target). It subclasses `AssertionError` and not
`DenseGradError` so that code catching library errors does not swallow it.
"""

from __future__ import annotations


class DenseGradError(Exception):
    """
    Base class for all user-facing densegrad errors.

    Attributes
    ----------
    op : str | None
        Name of the operation that detected the failure, if known.
    """

    def __init__(self, message: str, *, op: str | None = None) -> None:
        if op is not None:
            message = f"{op}: {message}"
        super().__init__(message)
        self.op = op


class ShapeMismatchError(DenseGradError, ValueError):
    """
    Raised when operand ranks or dimensions are incompatible.

    Examples include elementwise ops on differently shaped tensors, a matmul
    whose inner dimensions disagree, or a reshape whose element count differs
    from the source.
    """


class InvalidShapeError(DenseGradError, ValueError):
    """
    Raised for a non-positive dimension, a non-positive stride or kernel, or a
    computed output size that is not at least 1.
    """


class IndexOutOfRangeError(DenseGradError, IndexError):
    """
    Raised when a gather/embedding index or an axis argument falls outside the
    valid range.
    """


class UnsupportedConfigurationError(DenseGradError, ValueError):
    """
    Raised when an argument is well-formed but outside what a kernel supports
    (e.g., log-softmax over a non-trailing axis, or evaluation-mode batch
    normalization without running statistics).
    """


class InvariantViolationError(DenseGradError, RuntimeError):
    """
    Raised when differentiation is requested on a tensor that does not
    participate in the autograd graph.
    """


class GradientInvariantError(AssertionError):
    """
    Raised by the autograd engine when a backward rule breaks its contract.

    A backward rule must return exactly one gradient (or None) per input and
    each gradient must have its parent's shape. A violation indicates a bug in
    an operation's gradient rule, not bad user input.
    """

    def __init__(self, op: str, message: str) -> None:
        super().__init__(f"gradient rule of {op} is broken: {message}")
        self.op = op
