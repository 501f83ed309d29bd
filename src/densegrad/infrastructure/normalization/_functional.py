"""
Public normalization operations.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ...domain._errors import (
    InvalidShapeError,
    ShapeMismatchError,
    UnsupportedConfigurationError,
)
from ..tensor._tensor import Tensor, ensure_tensor
from ..tensor._tensor_context import run_function
from ._normalization_function import BatchNormFn, LayerNormFn

logger = logging.getLogger(__name__)

DEFAULT_EPS = 1e-5


def _sanitize_eps(eps: float) -> float:
    eps = float(eps)
    # NaN fails the comparison as well
    return eps if eps > 0 else DEFAULT_EPS


def layer_norm(
    x: Tensor,
    normalized_shape: Sequence[int],
    weight: Optional[Tensor] = None,
    bias: Optional[Tensor] = None,
    eps: float = 1e-5,
) -> Tensor:
    """
    Normalize over the trailing `len(normalized_shape)` dimensions.

    Parameters
    ----------
    x : Tensor
        Input whose trailing dimensions equal `normalized_shape`.
    normalized_shape : Sequence[int]
        Shape of the normalized block.
    weight, bias : Tensor, optional
        Affine parameters with `prod(normalized_shape)` elements.
    eps : float, optional
        Variance floor. A non-positive value falls back to 1e-5.

    Raises
    ------
    InvalidShapeError
        If `normalized_shape` is empty or has a non-positive entry.
    ShapeMismatchError
        If `normalized_shape` does not match the trailing dimensions of `x`,
        or an affine parameter has the wrong size.
    """
    ensure_tensor(x, "layer_norm", "x")
    if isinstance(normalized_shape, int):
        normalized_shape = (normalized_shape,)
    ns = tuple(int(d) for d in normalized_shape)
    if not ns:
        raise InvalidShapeError("normalized shape required", op="layer_norm")
    if any(d <= 0 for d in ns):
        raise InvalidShapeError(f"invalid normalized shape {ns}", op="layer_norm")
    if len(ns) > x.ndim or x.shape[x.ndim - len(ns) :] != ns:
        raise ShapeMismatchError(
            f"normalized shape {ns} does not match input shape {x.shape}",
            op="layer_norm",
        )
    norm_size = 1
    for d in ns:
        norm_size *= d
    for name, t in (("weight", weight), ("bias", bias)):
        if t is None:
            continue
        ensure_tensor(t, "layer_norm", name)
        if t.numel() != norm_size:
            raise ShapeMismatchError(
                f"{name} has {t.numel()} elements, expected {norm_size}",
                op="layer_norm",
            )
    return run_function(
        LayerNormFn, [x, weight, bias], norm_size=norm_size, eps=_sanitize_eps(eps)
    )


def batch_norm(
    x: Tensor,
    running_mean: Optional[Tensor] = None,
    running_var: Optional[Tensor] = None,
    weight: Optional[Tensor] = None,
    bias: Optional[Tensor] = None,
    momentum: float = 0.1,
    eps: float = 1e-5,
    training: bool = True,
) -> Tensor:
    """
    Per-channel batch normalization of `(N, C)` or `(N, C, H, W)` input.

    Parameters
    ----------
    x : Tensor
        Input of rank 2 or 4; channels are axis 1.
    running_mean, running_var : Tensor, optional
        `(C,)` running statistics. In training mode they are updated in place
        as `(1 - momentum) * running + momentum * batch_stat` (biased batch
        variance). Required in evaluation mode.
    weight, bias : Tensor, optional
        `(C,)` affine parameters.
    momentum : float, optional
        EMA factor. Defaults to 0.1.
    eps : float, optional
        Variance floor. Defaults to 1e-5.
    training : bool, optional
        Use batch statistics (True) or running statistics (False).

    Raises
    ------
    ShapeMismatchError
        If `x` is not rank 2 or 4, or a per-channel tensor is not `(C,)`.
    UnsupportedConfigurationError
        If `training` is False and running statistics are missing.
    """
    ensure_tensor(x, "batch_norm", "x")
    if x.ndim not in (2, 4):
        raise ShapeMismatchError(
            f"batch_norm supports rank 2 or 4 input, got shape {x.shape}",
            op="batch_norm",
        )
    C = x.shape[1]
    for name, t in (
        ("running_mean", running_mean),
        ("running_var", running_var),
        ("weight", weight),
        ("bias", bias),
    ):
        if t is None:
            continue
        ensure_tensor(t, "batch_norm", name)
        if t.shape != (C,):
            raise ShapeMismatchError(
                f"{name} must have shape ({C},), got {t.shape}", op="batch_norm"
            )
    if not training and (running_mean is None or running_var is None):
        raise UnsupportedConfigurationError(
            "evaluation mode requires running statistics", op="batch_norm"
        )
    if training and x.numel() // C == 1:
        logger.debug("batch_norm: one value per channel, variance is zero")
    return run_function(
        BatchNormFn,
        [x, weight, bias],
        running_mean=running_mean,
        running_var=running_var,
        momentum=float(momentum),
        eps=float(eps),
        training=bool(training),
    )
