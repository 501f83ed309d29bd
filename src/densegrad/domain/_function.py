"""
The `Function` contract for differentiable operations.

An operation kind pairs a forward step, which turns input tensors into one
output tensor, with a backward step, which turns the output gradient into one
gradient per input.

The set of operation kinds is closed: every concrete subclass registers
itself under a unique `op_name` when it is defined, and autograd contexts only
accept registered kinds. A backward rule therefore never captures arbitrary
state; it reads exactly the tensors, indices and shapes its forward step
saved on the per-invocation context.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Optional, Sequence, Union

from ._tensor import ITensor


class Function(ABC):
    """
    One registered kind of autograd node.

    Subclasses set `op_name` and implement `forward` and `backward` as static
    methods. Whatever backward needs is saved on `ctx` during forward; the
    class itself holds no per-call state, so one class serves every graph.
    """

    op_name: ClassVar[str] = ""

    _registry: ClassVar[dict[str, type["Function"]]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        name = cls.__dict__.get("op_name", "")
        if not name:
            # abstract intermediates do not register
            return
        existing = Function._registry.get(name)
        if existing is not None and existing is not cls:
            raise TypeError(
                f"op_name {name!r} already registered by {existing.__qualname__}"
            )
        Function._registry[name] = cls

    @classmethod
    def registered(cls) -> dict[str, type["Function"]]:
        """
        Return a snapshot of every registered operation kind.

        Returns
        -------
        dict[str, type[Function]]
            Mapping from `op_name` to the implementing class.
        """
        return dict(Function._registry)

    @classmethod
    def is_registered(cls, fn: type["Function"]) -> bool:
        """Return True if `fn` is a registered operation kind."""
        return bool(fn.op_name) and Function._registry.get(fn.op_name) is fn

    @staticmethod
    @abstractmethod
    def forward(ctx, *inputs: Union[ITensor, Any]) -> ITensor:
        """
        Compute the output and save what backward will read.

        Parameters
        ----------
        ctx : Context
            Per-call node; `save_for_backward` and `saved_meta` hold the
            values the gradient rule needs.
        *inputs : Tensor
            Tensor operands in call order. Hyperparameters arrive as
            keyword arguments.

        Returns
        -------
        Tensor
            A freshly allocated output, or a view of an input.
        """
        ...

    @staticmethod
    @abstractmethod
    def backward(ctx, grad_out: ITensor) -> Sequence[Optional[ITensor]]:
        """
        Map the output gradient to input gradients.

        Must return one entry per tensor input recorded on the context
        (`ctx.inputs`), in the same order.

        Parameters
        ----------
        ctx : Context
            The node filled in by `forward`.
        grad_out : Tensor
            Gradient of the loss with respect to the output tensor. Must not
            be retained or mutated.

        Returns
        -------
        tuple[Tensor | None, ...]
            One gradient per recorded input, shaped like that input, or None
            where the input needs no gradient.
        """
        ...
