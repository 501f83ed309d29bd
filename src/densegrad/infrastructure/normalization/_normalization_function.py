"""
Autograd `Function` adapters for layer and batch normalization.

Both operators take the input plus optional affine `weight` and `bias`
tensors as graph inputs. Batch normalization's running statistics are not
graph inputs: they are updated in place during training-mode forward passes
and read during evaluation-mode forward passes.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from ...domain._function import Function
from ..ops import norm_cpu
from ..tensor._tensor import Tensor
from ..tensor._tensor_context import Context


def _flat_or_none(t: Optional[Tensor]) -> Optional[np.ndarray]:
    return None if t is None else t._data.reshape(-1)


def _needs(t: Optional[Tensor]) -> bool:
    return t is not None and t.requires_grad


class LayerNormFn(Function):
    """
    Normalization over the trailing `len(normalized_shape)` dimensions.

    Saved context
    -------------
    - `saved_tensors`: [x_hat (outer, norm_size), inv_std (outer,)]
    - `saved_meta["norm_size"]`
    """

    op_name = "layer_norm"

    @staticmethod
    def forward(
        ctx: Context,
        x: Tensor,
        weight: Optional[Tensor],
        bias: Optional[Tensor],
        *,
        norm_size: int,
        eps: float,
    ) -> Tensor:
        x2 = x._data.reshape(-1, norm_size)
        y, x_hat, inv_std = norm_cpu.layer_norm_forward(
            x2, _flat_or_none(weight), _flat_or_none(bias), eps
        )
        ctx.save_for_backward(x_hat, inv_std)
        ctx.saved_meta["norm_size"] = norm_size
        return Tensor._wrap(y.reshape(x.shape))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        x_hat, inv_std = ctx.saved_tensors
        x, weight, bias = ctx.inputs
        g2 = grad_out._data.reshape(-1, ctx.saved_meta["norm_size"])
        gx, gw, gb = norm_cpu.layer_norm_backward(
            g2,
            x_hat,
            inv_std,
            _flat_or_none(weight),
            need_x=_needs(x),
            need_w=_needs(weight),
            need_b=_needs(bias),
        )
        return (
            None if gx is None else Tensor._wrap(gx.reshape(x.shape)),
            None if gw is None else Tensor._wrap(gw.reshape(weight.shape)),
            None if gb is None else Tensor._wrap(gb.reshape(bias.shape)),
        )


class BatchNormFn(Function):
    """
    Per-channel normalization of `(N, C)` or `(N, C, H, W)` input.

    Saved context
    -------------
    - `saved_tensors`: [x (N, C, M), mean (C,), inv_std (C,)]
    - `saved_meta["training"]`: whether batch statistics were used
    """

    op_name = "batch_norm"

    @staticmethod
    def forward(
        ctx: Context,
        x: Tensor,
        weight: Optional[Tensor],
        bias: Optional[Tensor],
        *,
        running_mean: Optional[Tensor],
        running_var: Optional[Tensor],
        momentum: float,
        eps: float,
        training: bool,
    ) -> Tensor:
        N, C = x.shape[0], x.shape[1]
        x3 = x._data.reshape(N, C, -1)

        if training:
            mean, var = norm_cpu.batch_norm_stats(x3)
            # in-place EMA update; running stats never join the graph
            if running_mean is not None:
                running_mean._data[...] = (1.0 - momentum) * running_mean._data + momentum * mean
            if running_var is not None:
                running_var._data[...] = (1.0 - momentum) * running_var._data + momentum * var
        else:
            mean = np.array(running_mean._data, dtype=np.float64)
            var = np.array(running_var._data, dtype=np.float64)

        inv_std = 1.0 / np.sqrt(var + eps)
        y = norm_cpu.batch_norm_apply(
            x3, mean, inv_std, _flat_or_none(weight), _flat_or_none(bias)
        )
        ctx.save_for_backward(x3, mean, inv_std)
        ctx.saved_meta["training"] = training
        return Tensor._wrap(y.reshape(x.shape))

    @staticmethod
    def backward(ctx: Context, grad_out: Tensor) -> Sequence[Optional[Tensor]]:
        x3, mean, inv_std = ctx.saved_tensors
        x, weight, bias = ctx.inputs
        g3 = grad_out._data.reshape(x3.shape)
        gx, gw, gb = norm_cpu.batch_norm_backward(
            g3,
            x3,
            mean,
            inv_std,
            _flat_or_none(weight),
            training=ctx.saved_meta["training"],
            need_x=_needs(x),
            need_w=_needs(weight),
            need_b=_needs(bias),
        )
        return (
            None if gx is None else Tensor._wrap(gx.reshape(x.shape)),
            None if gw is None else Tensor._wrap(gw),
            None if gb is None else Tensor._wrap(gb),
        )

