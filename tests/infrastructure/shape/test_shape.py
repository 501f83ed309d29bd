import unittest
from unittest import TestCase

import numpy as np

import densegrad as dg
from densegrad.domain import (
    IndexOutOfRangeError,
    InvalidShapeError,
    ShapeMismatchError,
)

from tests._gradcheck import assert_gradients_match


class TestReshape(TestCase):
    def test_inferred_dimension(self):
        t = dg.from_data(np.arange(12.0))
        self.assertEqual(dg.reshape(t, (3, -1)).shape, (3, 4))
        self.assertEqual(t.reshape(2, -1, 2).shape, (2, 3, 2))

    def test_round_trip_restores_shape_and_data(self):
        x = np.random.default_rng(0).normal(size=(2, 3, 4))
        t = dg.from_data(x)
        back = dg.reshape(dg.reshape(t, (4, 6)), (2, 3, 4))
        self.assertEqual(back.shape, (2, 3, 4))
        np.testing.assert_array_equal(back.to_numpy(), x)

    def test_reshape_is_a_view(self):
        t = dg.from_data(np.arange(6.0))
        v = dg.reshape(t, (2, 3))
        self.assertTrue(v.is_view)
        v.copy_from_numpy(np.full((2, 3), 9.0))
        np.testing.assert_array_equal(t.data, [9.0] * 6)

    def test_reshape_of_transpose_copies(self):
        t = dg.from_data(np.arange(6.0).reshape(2, 3))
        r = dg.reshape(dg.transpose(t), (6,))
        np.testing.assert_array_equal(r.data, [0, 3, 1, 4, 2, 5])
        self.assertFalse(r.is_view)

    def test_errors(self):
        t = dg.ones((2, 3))
        with self.assertRaises(InvalidShapeError):
            dg.reshape(t, (-1, -1))
        with self.assertRaises(InvalidShapeError):
            dg.reshape(t, (0, 6))
        with self.assertRaises(ShapeMismatchError):
            dg.reshape(t, (4, 2))
        with self.assertRaises(ShapeMismatchError):
            dg.reshape(t, (4, -1))

    def test_gradients(self):
        x = np.random.default_rng(1).normal(size=(2, 6))
        assert_gradients_match(lambda v: dg.reshape(v, (3, 4)), x)
        assert_gradients_match(dg.flatten, x.reshape(2, 3, 2))

    def test_flatten(self):
        self.assertEqual(dg.flatten(dg.ones((2, 3, 4))).shape, (2, 12))
        self.assertEqual(dg.flatten(dg.ones((5,))).shape, (5,))


class TestTransposeAndSlices(TestCase):
    def test_transpose(self):
        x = np.arange(6.0).reshape(2, 3)
        t = dg.transpose(dg.from_data(x))
        self.assertTrue(t.is_view)
        np.testing.assert_array_equal(t.to_numpy(), x.T)
        assert_gradients_match(dg.transpose, x)
        with self.assertRaises(ShapeMismatchError):
            dg.transpose(dg.ones((2, 2, 2)))

    def test_slice_rows(self):
        x = np.arange(12.0).reshape(4, 3)
        s = dg.slice_rows(dg.from_data(x), 1, 2)
        self.assertTrue(s.is_view)
        np.testing.assert_array_equal(s.to_numpy(), x[1:3])
        assert_gradients_match(lambda v: dg.slice_rows(v, 1, 2), x)

    def test_slice_rows_errors(self):
        t = dg.ones((4, 3))
        with self.assertRaises(IndexOutOfRangeError):
            dg.slice_rows(t, 3, 2)
        with self.assertRaises(IndexOutOfRangeError):
            dg.slice_rows(t, -1, 1)
        with self.assertRaises(IndexOutOfRangeError):
            dg.slice_rows(t, 0, 0)
        with self.assertRaises(ShapeMismatchError):
            dg.slice_rows(dg.ones((4,)), 0, 1)


class TestSqueezeUnsqueeze(TestCase):
    def test_squeeze_all(self):
        t = dg.ones((1, 3, 1))
        self.assertEqual(dg.squeeze(t).shape, (3,))
        self.assertEqual(dg.squeeze(dg.ones((1, 1))).shape, (1,))

    def test_squeeze_named_axis(self):
        t = dg.ones((1, 3, 1))
        self.assertEqual(dg.squeeze(t, -1).shape, (1, 3))
        with self.assertRaises(ShapeMismatchError):
            dg.squeeze(t, 1)
        with self.assertRaises(IndexOutOfRangeError):
            dg.squeeze(t, 3)

    def test_squeeze_nothing_to_remove(self):
        t = dg.from_data([1.0, 2.0], requires_grad=True)
        s = dg.squeeze(t)
        self.assertEqual(s.shape, (2,))
        self.assertTrue(s.requires_grad)
        self.assertIsNone(s._get_ctx())

    def test_unsqueeze(self):
        t = dg.ones((2, 3))
        self.assertEqual(dg.unsqueeze(t, 0).shape, (1, 2, 3))
        self.assertEqual(dg.unsqueeze(t, 2).shape, (2, 3, 1))
        self.assertEqual(dg.unsqueeze(t, -1).shape, (2, 3, 1))
        with self.assertRaises(IndexOutOfRangeError):
            dg.unsqueeze(t, 3)

    def test_gradients(self):
        x = np.random.default_rng(2).normal(size=(2, 1, 3))
        assert_gradients_match(dg.squeeze, x)
        assert_gradients_match(lambda v: dg.unsqueeze(v, 1), x)


class TestBroadcast(TestCase):
    def test_broadcast_forward(self):
        b = dg.broadcast_to(dg.from_data([1.0, 2.0, 3.0]), (2, 3))
        np.testing.assert_array_equal(b.to_numpy(), [[1, 2, 3], [1, 2, 3]])
        self.assertTrue(b.is_view)

    def test_incompatible(self):
        with self.assertRaises(ShapeMismatchError):
            dg.broadcast_to(dg.ones((2, 3)), (3, 3))
        with self.assertRaises(ShapeMismatchError):
            dg.broadcast_to(dg.ones((2, 3)), (3,))

    def test_adjoint_counts_multiplicity(self):
        x = dg.from_data([[1.0], [2.0]], requires_grad=True)
        dg.sum(dg.broadcast_to(x, (4, 2, 5))).backward()
        np.testing.assert_array_equal(x.grad.to_numpy(), [[20.0], [20.0]])

    def test_broadcast_gradients(self):
        x = np.random.default_rng(3).normal(size=(3, 1))
        assert_gradients_match(lambda v: dg.broadcast_to(v, (2, 3, 4)), x)

    def test_reduce_to_shape(self):
        g = np.arange(24.0).reshape(2, 3, 4)
        out = dg.reduce_to_shape(dg.from_data(g), (3, 1))
        np.testing.assert_array_equal(out.to_numpy(), g.sum(axis=(0, 2)).reshape(3, 1))
        self.assertEqual(dg.reduce_to_shape(dg.from_data(g), ()).shape, (1,))
        self.assertEqual(dg.reduce_to_shape(dg.from_data(g), ()).item(), g.sum())
        assert_gradients_match(lambda v: dg.reduce_to_shape(v, (3, 1)), g)

    def test_reduce_to_shape_incompatible(self):
        with self.assertRaises(ShapeMismatchError):
            dg.reduce_to_shape(dg.ones((2, 3)), (2,))


if __name__ == "__main__":
    unittest.main()
