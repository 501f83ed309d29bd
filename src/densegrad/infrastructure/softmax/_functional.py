"""
Public softmax-family operations and the losses built from them.

`softmax` has no gradient rule of its own: it is `exp(log_softmax(x))`, so its
backward is the composition of the exp and log-softmax rules.
"""

from __future__ import annotations

from typing import Sequence, Union

import numpy as np

from ...domain._errors import ShapeMismatchError, UnsupportedConfigurationError
from ..elementwise import exp, neg, pow, sub
from ..reduction import mean
from ..shape import reshape
from ..structural import gather
from ..tensor._tensor import Tensor, ensure_tensor
from ..tensor._tensor_context import run_function
from ._softmax_function import LogSoftmaxFn

Targets = Union[Tensor, Sequence[int]]


def _check_rows(x: Tensor, axis: int, op: str) -> None:
    if x.ndim != 2:
        raise ShapeMismatchError(f"expected a rank-2 tensor, got shape {x.shape}", op=op)
    if isinstance(axis, bool) or not isinstance(axis, (int, np.integer)):
        raise TypeError(f"{op}: axis must be an int, got {axis!r}")
    if axis not in (-1, 1):
        raise UnsupportedConfigurationError(
            f"only the last axis is supported, got axis={axis}", op=op
        )


def log_softmax(x: Tensor, axis: int = -1) -> Tensor:
    """
    Numerically stable log-softmax over the last axis of a rank-2 tensor.

    Raises
    ------
    ShapeMismatchError
        If `x` is not rank 2.
    UnsupportedConfigurationError
        If `axis` is not the last axis.
    """
    ensure_tensor(x, "log_softmax")
    _check_rows(x, axis, "log_softmax")
    return run_function(LogSoftmaxFn, [x])


def softmax(x: Tensor, axis: int = -1) -> Tensor:
    """`exp(log_softmax(x, axis))`; see `log_softmax`."""
    ensure_tensor(x, "softmax")
    _check_rows(x, axis, "softmax")
    return exp(log_softmax(x, axis))


def _target_column(targets: Targets, rows: int, op: str) -> Tensor:
    if isinstance(targets, Tensor):
        if targets.numel() != rows:
            raise ShapeMismatchError(
                f"expected {rows} targets, got shape {targets.shape}", op=op
            )
        values = targets.to_numpy().reshape(-1)
    else:
        values = np.asarray(targets, dtype=np.float64).reshape(-1)
        if values.size != rows:
            raise ShapeMismatchError(
                f"expected {rows} targets, got {values.size}", op=op
            )
    return Tensor._wrap(np.array(values, dtype=np.float64).reshape(rows, 1))


def nll_loss(log_probs: Tensor, targets: Targets) -> Tensor:
    """
    Mean negative log-likelihood of integer class targets.

    Parameters
    ----------
    log_probs : Tensor
        `(N, C)` log-probabilities.
    targets : Tensor or Sequence[int]
        `N` class indices in `[0, C)`.

    Returns
    -------
    Tensor
        Shape `[1]`.

    Raises
    ------
    ShapeMismatchError
        If `log_probs` is not rank 2 or the target count is not `N`.
    IndexOutOfRangeError
        If a target is outside `[0, C)`.
    """
    ensure_tensor(log_probs, "nll_loss", "log_probs")
    if log_probs.ndim != 2:
        raise ShapeMismatchError(
            f"expected (N, C) log-probabilities, got shape {log_probs.shape}",
            op="nll_loss",
        )
    index = _target_column(targets, log_probs.shape[0], "nll_loss")
    picked = gather(log_probs, 1, index)
    return neg(mean(reshape(picked, (-1,))))


def cross_entropy(logits: Tensor, targets: Targets) -> Tensor:
    """`nll_loss(log_softmax(logits), targets)` for `(N, C)` logits."""
    return nll_loss(log_softmax(logits, -1), targets)


def mse_loss(pred: Tensor, target: Tensor) -> Tensor:
    """
    Mean squared error `mean((pred - target) ** 2)`, shape `[1]`.

    Raises
    ------
    ShapeMismatchError
        If `pred` and `target` have different shapes.
    """
    return mean(pow(sub(pred, target), 2))
