"""
Reverse-mode autograd engine.

`backward(root)` orders the graph reachable from `root` so every node precedes
its consumers, seeds the root with ones, then walks that order in reverse.
Each visited node first folds the gradient it received into its persistent
`grad`, then asks its context for the gradients of its parents. Parent
contributions from several consumers are summed by a `GradientAccumulator`
that lives only for the duration of the call.
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

import numpy as np

from ...domain._errors import InvariantViolationError, ShapeMismatchError
from ..ops import elementwise_cpu
from ..tensor._tensor import Tensor

logger = logging.getLogger(__name__)


class GradientAccumulator:
    """
    Per-backward map from tensor identity to its summed incoming gradient.

    Tensors are keyed by `id`; the accumulator also holds a reference to each
    keyed tensor so identities stay unique while it is alive.
    """

    def __init__(self) -> None:
        self._grads: dict[int, np.ndarray] = {}
        self._owners: dict[int, Tensor] = {}

    def __len__(self) -> int:
        return len(self._grads)

    def __contains__(self, t: Tensor) -> bool:
        return id(t) in self._grads

    def add(self, t: Tensor, grad: np.ndarray) -> None:
        """
        Add `grad` to the running sum for `t`.

        The first contribution is copied so later in-place sums never write
        into an array owned by a gradient rule.
        """
        key = id(t)
        existing = self._grads.get(key)
        if existing is None:
            self._grads[key] = np.array(grad, dtype=np.float64, copy=True)
            self._owners[key] = t
            return
        elementwise_cpu.accumulate_(existing, grad)

    def get(self, t: Tensor) -> Optional[np.ndarray]:
        return self._grads.get(id(t))


def topological_order(root: Tensor) -> list[Tensor]:
    """
    Return every tensor reachable from `root` in dependency order.

    Iterative depth-first post-order over `ctx.parents`; each node appears
    exactly once even when several consumers share it, and parents precede
    their consumers. `root` is the last element.
    """
    order: list[Tensor] = []
    visited: set[int] = set()
    stack: list[tuple[Tensor, bool]] = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded:
            order.append(node)
            continue
        if id(node) in visited:
            continue
        visited.add(id(node))
        stack.append((node, True))
        ctx = node._get_ctx()
        if ctx is None:
            continue
        for parent in reversed(ctx.parents):
            if id(parent) not in visited:
                stack.append((parent, False))
    return order


def _iter_reverse(order: list[Tensor]) -> Iterator[Tensor]:
    for i in range(len(order) - 1, -1, -1):
        yield order[i]


def backward(root: Tensor, grad_out: Optional[Tensor] = None) -> None:
    """
    Accumulate d(root)/d(t) into `t.grad` for every tensor `t` in the graph.

    Parameters
    ----------
    root : Tensor
        Output to differentiate. Must require gradients.
    grad_out : Optional[Tensor], optional
        Seed gradient; must have `root.shape`. Defaults to ones.

    Raises
    ------
    InvariantViolationError
        If `root` does not require gradients.
    ShapeMismatchError
        If `grad_out` does not have the root's shape.
    GradientInvariantError
        If an operation's gradient rule returns a mis-shaped gradient.

    Notes
    -----
    Gradients accumulate: calling backward twice without `zero_grad()` sums
    both passes into `grad`.
    """
    if not isinstance(root, Tensor):
        raise TypeError(f"backward expects a Tensor, got {type(root).__name__}")
    if not root.requires_grad:
        raise InvariantViolationError(
            "tensor does not require grad", op="backward"
        )

    if grad_out is None:
        seed = np.ones(root.shape, dtype=np.float64)
    else:
        if not isinstance(grad_out, Tensor):
            raise TypeError(
                f"grad_out must be a Tensor, got {type(grad_out).__name__}"
            )
        if grad_out.shape != root.shape:
            raise ShapeMismatchError(
                f"grad_out shape {grad_out.shape} does not match {root.shape}",
                op="backward",
            )
        seed = grad_out.to_numpy()

    order = topological_order(root)
    logger.debug("backward: %d nodes reachable from %r", len(order), root)

    grads = GradientAccumulator()
    grads.add(root, seed)

    for node in _iter_reverse(order):
        g = grads.get(node)
        if g is None:
            continue
        node._accumulate_grad_(g)

        ctx = node._get_ctx()
        if ctx is None:
            continue
        g_view = g.view()
        g_view.flags.writeable = False
        for parent, parent_grad in ctx.apply(Tensor._wrap(g_view)):
            grads.add(parent, parent_grad._data)
