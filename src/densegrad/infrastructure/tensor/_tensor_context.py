from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterator, Optional, Sequence

from ...domain._errors import GradientInvariantError, InvariantViolationError
from ...domain._function import Function

if TYPE_CHECKING:
    from ._tensor import Tensor


@dataclass
class Context:
    """
    Backward context attached to a Tensor produced by an operation.

    A `Context` is the autograd node of an output tensor. It records which
    registered operation kind produced the output, the tensor operands of that
    operation, and whatever the forward pass saved for the gradient rule.

    Attributes
    ----------
    fn : type[Function]
        Registered operation kind; its static `backward` is the gradient rule.
    inputs : tuple[Tensor | None, ...]
        Every tensor operand of the operation, in call order. Absent optional
        operands (e.g., a missing bias) are recorded as None.
    saved_tensors : list
        Arrays or tensors explicitly saved during the forward pass (outputs,
        masks, normalized activations).
    saved_meta : dict[str, Any]
        Non-tensor metadata required for backward (shapes, axes, strides,
        winner indices).

    Notes
    -----
    The graph is append-only: a context is built once by an operation and is
    never re-targeted afterwards.
    """

    fn: type[Function]
    inputs: tuple[Optional["Tensor"], ...]
    saved_tensors: list[Any] = field(default_factory=list)
    saved_meta: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not (isinstance(self.fn, type) and issubclass(self.fn, Function)):
            raise TypeError(f"Context.fn must be a Function subclass, got {self.fn!r}")
        if not Function.is_registered(self.fn):
            raise TypeError(f"{self.fn.__qualname__} is not a registered operation")
        self.inputs = tuple(self.inputs)

    @property
    def parents(self) -> tuple["Tensor", ...]:
        """
        Return the inputs that require gradients, in input order.

        These are the graph edges followed by the topological sort.
        """
        return tuple(t for t in self.inputs if t is not None and t.requires_grad)

    def save_for_backward(self, *tensors: Any) -> None:
        """
        Save values for use during the backward computation.

        Parameters
        ----------
        *tensors : Any
            Arrays or tensors appended to `saved_tensors` in order.
        """
        self.saved_tensors.extend(tensors)

    def apply(self, grad_out: "Tensor") -> Iterator[tuple["Tensor", "Tensor"]]:
        """
        Run the gradient rule and yield `(parent, gradient)` pairs.

        Parameters
        ----------
        grad_out : Tensor
            Gradient with respect to the output of this node.

        Yields
        ------
        tuple[Tensor, Tensor]
            One pair per parent that received a gradient.

        Raises
        ------
        GradientInvariantError
            If the rule returns the wrong number of gradients or a gradient
            whose shape differs from its parent's.
        """
        grads: Sequence[Optional["Tensor"]] = self.fn.backward(self, grad_out)
        if len(grads) != len(self.inputs):
            raise GradientInvariantError(
                self.fn.op_name,
                f"returned {len(grads)} gradients for {len(self.inputs)} inputs",
            )
        for inp, g in zip(self.inputs, grads):
            if inp is None or not inp.requires_grad or g is None:
                continue
            if tuple(g.shape) != tuple(inp.shape):
                raise GradientInvariantError(
                    self.fn.op_name,
                    f"gradient shape {tuple(g.shape)} does not match input "
                    f"shape {tuple(inp.shape)}",
                )
            yield inp, g


def run_function(
    fn: type[Function], inputs: Sequence[Optional["Tensor"]], **kwargs: Any
) -> "Tensor":
    """
    Run `fn.forward` and wire the output into the graph when needed.

    This is the shared body of every public functional wrapper: it builds the
    `Context`, invokes `forward(ctx, *inputs, **kwargs)`, and attaches the
    context to the output only if at least one input requires gradients.

    Parameters
    ----------
    fn : type[Function]
        Registered operation kind.
    inputs : Sequence[Tensor | None]
        Tensor operands, passed positionally to `forward`.
    **kwargs : Any
        Non-tensor hyperparameters, passed as keywords to `forward`.

    Returns
    -------
    Tensor
        The forward output.
    """
    ctx = Context(fn=fn, inputs=tuple(inputs))
    out = fn.forward(ctx, *inputs, **kwargs)
    if ctx.parents:
        attach_once(out, ctx)
    return out


def attach_once(out: "Tensor", ctx: Context) -> None:
    """
    Attach `ctx` to `out`, refusing to re-target an existing node.

    Raises
    ------
    InvariantViolationError
        If `out` already carries an autograd context.
    """
    if out._get_ctx() is not None:
        raise InvariantViolationError(
            "tensor already carries an autograd node", op=ctx.fn.op_name
        )
    out._set_ctx(ctx)
