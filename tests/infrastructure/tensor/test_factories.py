import unittest
from unittest import TestCase

import numpy as np

import densegrad as dg
from densegrad.domain import InvalidShapeError, ShapeMismatchError


class TestFactories(TestCase):
    def test_zeros_ones_full(self):
        np.testing.assert_array_equal(dg.zeros((2, 2)).to_numpy(), np.zeros((2, 2)))
        np.testing.assert_array_equal(dg.ones(3).to_numpy(), np.ones(3))
        np.testing.assert_array_equal(dg.full((2,), 7.0).to_numpy(), [7.0, 7.0])

    def test_like_factories(self):
        src = dg.from_data([[1.0, 2.0, 3.0]])
        self.assertEqual(dg.zeros_like(src).shape, (1, 3))
        np.testing.assert_array_equal(dg.ones_like(src).data, [1.0, 1.0, 1.0])

    def test_requires_grad_flag(self):
        self.assertTrue(dg.zeros((2,), requires_grad=True).requires_grad)
        self.assertFalse(dg.ones((2,)).requires_grad)

    def test_invalid_shape(self):
        with self.assertRaises(InvalidShapeError):
            dg.zeros((0,))
        with self.assertRaises(InvalidShapeError):
            dg.full((-1, 2), 1.0)

    def test_random_normal_is_reproducible(self):
        a = dg.random_normal((3, 4), np.random.default_rng(7), mean=1.0, std=0.5)
        b = dg.random_normal((3, 4), np.random.default_rng(7), mean=1.0, std=0.5)
        self.assertEqual(a.shape, (3, 4))
        np.testing.assert_array_equal(a.to_numpy(), b.to_numpy())

    def test_random_normal_requires_generator(self):
        with self.assertRaises(TypeError):
            dg.random_normal((2,), 42)

    def test_from_data_with_shape(self):
        t = dg.from_data([1, 2, 3, 4], (2, 2))
        np.testing.assert_array_equal(t.to_numpy(), [[1, 2], [3, 4]])
        with self.assertRaises(ShapeMismatchError):
            dg.from_data([1, 2, 3], (2, 2))

    def test_from_data_copies(self):
        arr = np.zeros(3)
        t = dg.from_data(arr)
        arr[0] = 5.0
        self.assertEqual(t.data[0], 0.0)

    def test_copy_into(self):
        dst = dg.zeros((2, 2))
        dg.copy_into(dst, dg.full((2, 2), 3.0))
        np.testing.assert_array_equal(dst.data, [3.0] * 4)
        with self.assertRaises(ShapeMismatchError):
            dg.copy_into(dst, dg.ones((4,)))


if __name__ == "__main__":
    unittest.main()
