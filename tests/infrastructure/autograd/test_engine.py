import unittest
from unittest import TestCase

import numpy as np

import densegrad as dg
from densegrad.domain import (
    Function,
    GradientInvariantError,
    InvariantViolationError,
    ShapeMismatchError,
)
from densegrad.infrastructure.autograd import GradientAccumulator, topological_order
from densegrad.infrastructure.tensor import Context, Tensor, run_function
from densegrad.infrastructure.tensor._tensor_context import attach_once


class _WrongShapeGradFn(Function):
    op_name = "test_wrong_shape_grad"

    @staticmethod
    def forward(ctx, x):
        return Tensor._wrap(x.to_numpy())

    @staticmethod
    def backward(ctx, grad_out):
        return (Tensor._wrap(np.zeros(grad_out.shape[0] + 1)),)


class _WrongCountGradFn(Function):
    op_name = "test_wrong_count_grad"

    @staticmethod
    def forward(ctx, x):
        return Tensor._wrap(x.to_numpy())

    @staticmethod
    def backward(ctx, grad_out):
        return (grad_out, grad_out)


class TestBackward(TestCase):
    def test_seed_defaults_to_ones(self):
        x = dg.from_data([1.0, 2.0, 3.0], requires_grad=True)
        y = x * 2.0
        y.backward()
        np.testing.assert_allclose(x.grad.data, [2.0, 2.0, 2.0])

    def test_explicit_seed(self):
        x = dg.from_data([1.0, 2.0], requires_grad=True)
        y = x * 3.0
        y.backward(dg.from_data([1.0, -1.0]))
        np.testing.assert_allclose(x.grad.data, [3.0, -3.0])

    def test_seed_shape_must_match(self):
        x = dg.from_data([1.0, 2.0], requires_grad=True)
        with self.assertRaises(ShapeMismatchError):
            (x * 1.0).backward(dg.ones((3,)))

    def test_root_must_require_grad(self):
        with self.assertRaises(InvariantViolationError):
            dg.ones((2,)).backward()

    def test_root_must_be_tensor(self):
        with self.assertRaises(TypeError):
            dg.backward(np.ones(2))

    def test_diamond_accumulates(self):
        # y = x*x + x*x reached through two paths sharing x
        x = dg.from_data([1.5, -2.0], requires_grad=True)
        a = x * x
        b = x * x
        dg.sum(a + b).backward()
        np.testing.assert_allclose(x.grad.data, [6.0, -8.0])

    def test_shared_intermediate_visited_once(self):
        x = dg.from_data([2.0], requires_grad=True)
        h = dg.exp(x)
        y = h * h
        y.backward()
        np.testing.assert_allclose(x.grad.data, [2.0 * np.exp(4.0)])

    def test_repeated_backward_accumulates(self):
        x = dg.from_data([1.0, 1.0], requires_grad=True)
        dg.sum(x * 2.0).backward()
        dg.sum(x * 2.0).backward()
        np.testing.assert_allclose(x.grad.data, [4.0, 4.0])

    def test_constant_inputs_receive_nothing(self):
        x = dg.from_data([1.0, 2.0], requires_grad=True)
        c = dg.from_data([3.0, 4.0])
        dg.sum(x * c).backward()
        self.assertIsNone(c.grad)
        np.testing.assert_allclose(x.grad.data, [3.0, 4.0])

    def test_no_graph_without_requires_grad(self):
        y = dg.ones((2,)) * dg.ones((2,))
        self.assertFalse(y.requires_grad)
        self.assertIsNone(y._get_ctx())

    def test_broken_rule_shape_is_fatal(self):
        x = dg.from_data([1.0, 2.0], requires_grad=True)
        y = run_function(_WrongShapeGradFn, [x])
        with self.assertRaises(GradientInvariantError):
            y.backward()

    def test_broken_rule_count_is_fatal(self):
        x = dg.from_data([1.0, 2.0], requires_grad=True)
        y = run_function(_WrongCountGradFn, [x])
        with self.assertRaises(GradientInvariantError):
            y.backward()


class TestGraphHelpers(TestCase):
    def test_topological_order(self):
        x = dg.from_data([1.0], requires_grad=True)
        a = x * 2.0
        b = dg.exp(a)
        c = a + b
        order = topological_order(c)
        self.assertIs(order[-1], c)
        pos = {id(t): i for i, t in enumerate(order)}
        self.assertEqual(len(order), 4)
        self.assertLess(pos[id(x)], pos[id(a)])
        self.assertLess(pos[id(a)], pos[id(b)])
        self.assertLess(pos[id(b)], pos[id(c)])

    def test_accumulator(self):
        acc = GradientAccumulator()
        t = dg.zeros((2,))
        src = np.array([1.0, 2.0])
        acc.add(t, src)
        acc.add(t, np.array([1.0, 1.0]))
        self.assertIn(t, acc)
        self.assertEqual(len(acc), 1)
        np.testing.assert_allclose(acc.get(t), [2.0, 3.0])
        np.testing.assert_allclose(src, [1.0, 2.0])

    def test_context_rejects_unregistered_function(self):
        with self.assertRaises(TypeError):
            Context(fn=object, inputs=())

    def test_attach_once(self):
        x = dg.from_data([1.0], requires_grad=True)
        y = x * 2.0
        with self.assertRaises(InvariantViolationError):
            attach_once(y, Context(fn=_WrongShapeGradFn, inputs=(x,)))


if __name__ == "__main__":
    unittest.main()
