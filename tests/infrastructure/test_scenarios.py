"""
End-to-end graphs that mix several operations.
"""

import unittest
from unittest import TestCase

import numpy as np

import densegrad as dg


class TestScenarios(TestCase):
    def test_reshape_then_matmul(self):
        x = dg.from_data([1.0, 2.0, 3.0], requires_grad=True)
        w = dg.from_data([[2.0]], requires_grad=True)
        y = dg.matmul(dg.reshape(x, (3, 1)), w)
        np.testing.assert_array_equal(y.to_numpy(), [[2.0], [4.0], [6.0]])

        dg.sum(y).backward()
        np.testing.assert_array_equal(w.grad.to_numpy(), [[6.0]])
        np.testing.assert_array_equal(x.grad.to_numpy(), [2.0, 2.0, 2.0])

    def test_max_pool_routes_gradient_to_winners(self):
        x = dg.from_data([[[[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]]]], requires_grad=True)
        y = dg.max_pool2d(x, 2, stride=1)
        np.testing.assert_array_equal(y.to_numpy(), [[[[5.0, 6.0]]]])

        dg.sum(y).backward()
        np.testing.assert_array_equal(
            x.grad.to_numpy(), [[[[0.0, 0.0, 0.0], [0.0, 1.0, 1.0]]]]
        )

    def test_broadcast_then_reduce(self):
        x = dg.from_data([1.0, -2.0, 0.5])
        wide = dg.broadcast_to(x, (4, 3))
        np.testing.assert_array_equal(
            dg.reduce_to_shape(wide, (3,)).to_numpy(), [4.0, -8.0, 2.0]
        )

    def test_small_network_trains(self):
        rng = np.random.default_rng(0)
        inputs = dg.from_data(rng.normal(size=(8, 3)))
        targets = [int(v) for v in rng.integers(0, 2, size=8)]
        w = dg.from_data(rng.normal(scale=0.1, size=(3, 2)), requires_grad=True)

        def loss_value():
            return dg.cross_entropy(dg.matmul(inputs, w), targets)

        before = float(loss_value().to_numpy()[0])
        for _ in range(20):
            w.zero_grad()
            loss_value().backward()
            w.add_scaled_(w.grad, -0.5)
        after = float(loss_value().to_numpy()[0])
        self.assertLess(after, before)


if __name__ == "__main__":
    unittest.main()
