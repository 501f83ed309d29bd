import unittest
from unittest import TestCase

import numpy as np

import densegrad as dg
from densegrad.domain import InvalidShapeError, ShapeMismatchError

from tests._gradcheck import assert_gradients_match


def _reference_pool(x, k, s, p, reduce):
    N, C, H, W = x.shape
    oh = (H + 2 * p[0] - k[0]) // s[0] + 1
    ow = (W + 2 * p[1] - k[1]) // s[1] + 1
    y = np.zeros((N, C, oh, ow))
    for i in range(oh):
        for j in range(ow):
            h0, w0 = i * s[0] - p[0], j * s[1] - p[1]
            hs = slice(max(h0, 0), min(h0 + k[0], H))
            ws = slice(max(w0, 0), min(w0 + k[1], W))
            y[:, :, i, j] = reduce(x[:, :, hs, ws], axis=(2, 3))
    return y


class TestMaxPool2d(TestCase):
    def setUp(self):
        # distinct values so the winner is unique
        self.x = np.random.default_rng(0).permutation(2 * 3 * 5 * 6).reshape(2, 3, 5, 6) / 10.0

    def test_forward_matches_reference(self):
        for k, s, p in (((2, 2), (2, 2), (0, 0)), ((3, 2), (1, 2), (1, 1)), ((2, 3), (2, 1), (1, 0))):
            with self.subTest(k=k, s=s, p=p):
                out = dg.max_pool2d(dg.from_data(self.x), k, s, p)
                np.testing.assert_array_equal(
                    out.to_numpy(), _reference_pool(self.x, k, s, p, np.max)
                )

    def test_stride_defaults_to_kernel(self):
        out = dg.max_pool2d(dg.from_data(self.x), 2)
        self.assertEqual(out.shape, (2, 3, 2, 3))

    def test_gradients(self):
        assert_gradients_match(lambda v: dg.max_pool2d(v, 3, 2, 1), self.x)

    def test_padding_never_wins(self):
        x = dg.from_data(-np.ones((1, 1, 2, 2)), requires_grad=True)
        y = dg.max_pool2d(x, 2, 1, 1)
        np.testing.assert_array_equal(y.to_numpy(), -np.ones((1, 1, 3, 3)))
        dg.sum(y).backward()
        # every window's first in-bounds element wins the tie
        np.testing.assert_array_equal(x.grad.to_numpy(), [[[[4.0, 2.0], [2.0, 1.0]]]])

    def test_overlapping_windows_accumulate(self):
        x = dg.from_data(
            [[[[0.0, 0.0, 0.0], [0.0, 9.0, 0.0], [0.0, 0.0, 0.0]]]], requires_grad=True
        )
        dg.sum(dg.max_pool2d(x, 2, 1)).backward()
        self.assertEqual(x.grad.to_numpy()[0, 0, 1, 1], 4.0)
        self.assertEqual(x.grad.to_numpy().sum(), 4.0)

    def test_window_entirely_in_padding(self):
        with self.assertRaises(InvalidShapeError):
            dg.max_pool2d(dg.ones((1, 1, 2, 2)), 1, 1, 1)


class TestAvgPool2d(TestCase):
    def setUp(self):
        self.x = np.random.default_rng(1).normal(size=(2, 2, 5, 4))

    def test_forward_matches_reference(self):
        for k, s, p in (((2, 2), (2, 2), (0, 0)), ((3, 3), (2, 1), (1, 1))):
            with self.subTest(k=k, s=s, p=p):
                out = dg.avg_pool2d(dg.from_data(self.x), k, s, p)
                np.testing.assert_allclose(
                    out.to_numpy(), _reference_pool(self.x, k, s, p, np.mean), rtol=1e-12
                )

    def test_gradients(self):
        assert_gradients_match(lambda v: dg.avg_pool2d(v, 3, (2, 1), 1), self.x)

    def test_padding_not_counted(self):
        out = dg.avg_pool2d(dg.ones((1, 1, 3, 3)), 3, 1, 1)
        np.testing.assert_allclose(out.to_numpy(), np.ones((1, 1, 3, 3)))

    def test_window_entirely_in_padding(self):
        with self.assertRaises(InvalidShapeError):
            dg.avg_pool2d(dg.ones((1, 1, 2, 2)), 1, 1, 1)


class TestPoolingArguments(TestCase):
    def test_rank_must_be_four(self):
        for op in (dg.max_pool2d, dg.avg_pool2d):
            with self.assertRaises(ShapeMismatchError):
                op(dg.ones((1, 4, 4)), 2)

    def test_invalid_hyperparameters(self):
        x = dg.ones((1, 1, 4, 4))
        for op in (dg.max_pool2d, dg.avg_pool2d):
            with self.assertRaises(InvalidShapeError):
                op(x, 0)
            with self.assertRaises(InvalidShapeError):
                op(x, 2, 0)
            with self.assertRaises(InvalidShapeError):
                op(x, 2, 1, -1)
            with self.assertRaises(InvalidShapeError):
                op(x, 5)


if __name__ == "__main__":
    unittest.main()
