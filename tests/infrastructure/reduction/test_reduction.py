import unittest
from unittest import TestCase

import numpy as np

import densegrad as dg
from densegrad.domain import IndexOutOfRangeError

from tests._gradcheck import assert_gradients_match


class TestFullReductions(TestCase):
    def test_sum_and_mean(self):
        x = np.arange(12.0).reshape(3, 4)
        t = dg.from_data(x)
        self.assertEqual(dg.sum(t).shape, (1,))
        self.assertEqual(dg.sum(t).item(), x.sum())
        self.assertAlmostEqual(dg.mean(t).item(), x.mean())

    def test_gradients(self):
        x = np.random.default_rng(0).normal(size=(2, 3, 2))
        assert_gradients_match(dg.sum, x)
        assert_gradients_match(dg.mean, x)

    def test_mean_gradient_is_uniform(self):
        x = dg.zeros((2, 5), requires_grad=True)
        dg.mean(x).backward()
        np.testing.assert_allclose(x.grad.to_numpy(), np.full((2, 5), 0.1))


class TestAxisReductions(TestCase):
    def setUp(self):
        self.x = np.random.default_rng(3).normal(size=(3, 4, 5))

    def test_sum_axis(self):
        t = dg.from_data(self.x)
        for axis in (0, 1, 2, -1):
            with self.subTest(axis=axis):
                np.testing.assert_allclose(
                    dg.sum_axis(t, axis).to_numpy(), self.x.sum(axis=axis)
                )
                assert_gradients_match(lambda v, a=axis: dg.sum_axis(v, a), self.x)

    def test_sum_axis_of_vector(self):
        out = dg.sum_axis(dg.from_data([1.0, 2.0, 3.0]), 0)
        self.assertEqual(out.shape, (1,))
        self.assertEqual(out.item(), 6.0)

    def test_max_min(self):
        t = dg.from_data(self.x)
        for axis in (0, 1, 2):
            with self.subTest(axis=axis):
                np.testing.assert_allclose(dg.max(t, axis).to_numpy(), self.x.max(axis=axis))
                np.testing.assert_allclose(dg.min(t, axis).to_numpy(), self.x.min(axis=axis))
                assert_gradients_match(lambda v, a=axis: dg.max(v, a), self.x)
                assert_gradients_match(lambda v, a=axis: dg.min(v, a), self.x)

    def test_max_tie_routes_gradient_to_first(self):
        x = dg.from_data([[1.0, 5.0, 5.0], [2.0, 2.0, 0.0]], requires_grad=True)
        dg.sum(dg.max(x, 1)).backward()
        np.testing.assert_array_equal(x.grad.to_numpy(), [[0, 1, 0], [1, 0, 0]])

    def test_axis_out_of_range(self):
        t = dg.ones((2, 3))
        for op in (dg.sum_axis, dg.max, dg.min):
            with self.assertRaises(IndexOutOfRangeError):
                op(t, 2)
            with self.assertRaises(IndexOutOfRangeError):
                op(t, -3)

    def test_axis_must_be_int(self):
        with self.assertRaises(TypeError):
            dg.sum_axis(dg.ones((2,)), 0.5)


if __name__ == "__main__":
    unittest.main()
