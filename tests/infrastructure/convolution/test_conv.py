import itertools
import unittest
from unittest import TestCase

import numpy as np

import densegrad as dg
from densegrad.domain import InvalidShapeError, ShapeMismatchError
from densegrad.infrastructure.parallel import parallel_config

from tests._gradcheck import assert_gradients_match


def _reference_conv(x, w, b, stride, pad):
    """Direct-loop convolution over explicitly zero-padded input."""
    nd = x.ndim - 2
    xp = np.pad(x, [(0, 0), (0, 0)] + [(p, p) for p in pad])
    kernel = w.shape[2:]
    out_size = [
        (x.shape[2 + d] + 2 * pad[d] - kernel[d]) // stride[d] + 1 for d in range(nd)
    ]
    y = np.zeros((x.shape[0], w.shape[0]) + tuple(out_size))
    for pos in itertools.product(*[range(o) for o in out_size]):
        window = tuple(
            slice(pos[d] * stride[d], pos[d] * stride[d] + kernel[d]) for d in range(nd)
        )
        patch = xp[(slice(None), slice(None)) + window]
        axes = list(range(1, 2 + nd))
        y[(slice(None), slice(None)) + pos] = np.tensordot(patch, w, axes=(axes, axes))
    if b is not None:
        y += b.reshape((1, -1) + (1,) * nd)
    return y


class TestConv1d(TestCase):
    def setUp(self):
        rng = np.random.default_rng(0)
        self.x = rng.normal(size=(2, 3, 7))
        self.w = rng.normal(size=(4, 3, 3))
        self.b = rng.normal(size=(4,))

    def test_forward_matches_reference(self):
        for stride, pad in ((1, 0), (2, 1), (3, 2)):
            with self.subTest(stride=stride, pad=pad):
                out = dg.conv1d(
                    dg.from_data(self.x), dg.from_data(self.w), dg.from_data(self.b),
                    stride=stride, padding=pad,
                )
                ref = _reference_conv(self.x, self.w, self.b, (stride,), (pad,))
                np.testing.assert_allclose(out.to_numpy(), ref, rtol=1e-12, atol=1e-12)

    def test_gradients(self):
        assert_gradients_match(
            lambda x, w, b: dg.conv1d(x, w, b, stride=2, padding=1), self.x, self.w, self.b
        )

    def test_without_bias(self):
        out = dg.conv1d(dg.from_data(self.x), dg.from_data(self.w))
        ref = _reference_conv(self.x, self.w, None, (1,), (0,))
        np.testing.assert_allclose(out.to_numpy(), ref, rtol=1e-12, atol=1e-12)
        assert_gradients_match(lambda x, w: dg.conv1d(x, w, padding=1), self.x, self.w)


class TestConv2d(TestCase):
    def setUp(self):
        rng = np.random.default_rng(1)
        self.x = rng.normal(size=(2, 2, 5, 6))
        self.w = rng.normal(size=(3, 2, 3, 2))
        self.b = rng.normal(size=(3,))

    def test_forward_matches_reference(self):
        out = dg.conv2d(
            dg.from_data(self.x), dg.from_data(self.w), dg.from_data(self.b),
            stride=(2, 1), padding=(1, 2),
        )
        ref = _reference_conv(self.x, self.w, self.b, (2, 1), (1, 2))
        self.assertEqual(out.shape, ref.shape)
        np.testing.assert_allclose(out.to_numpy(), ref, rtol=1e-12, atol=1e-12)

    def test_gradients(self):
        assert_gradients_match(
            lambda x, w, b: dg.conv2d(x, w, b, stride=2, padding=1),
            self.x, self.w, self.b,
        )

    def test_gradients_independent_of_partitioning(self):
        def grads():
            x = dg.from_data(self.x, requires_grad=True)
            w = dg.from_data(self.w, requires_grad=True)
            dg.sum(dg.conv2d(x, w, padding=1)).backward()
            return x.grad.to_numpy(), w.grad.to_numpy()

        with parallel_config(num_threads=1):
            gx1, gw1 = grads()
        with parallel_config(num_threads=4):
            gx4, gw4 = grads()
        np.testing.assert_allclose(gx1, gx4, rtol=1e-12, atol=1e-12)
        np.testing.assert_allclose(gw1, gw4, rtol=1e-12, atol=1e-12)

    def test_shape_errors(self):
        x = dg.ones((1, 2, 5, 5))
        with self.assertRaises(ShapeMismatchError):
            dg.conv2d(dg.ones((2, 5, 5)), dg.ones((3, 2, 3, 3)))
        with self.assertRaises(ShapeMismatchError):
            dg.conv2d(x, dg.ones((3, 4, 3, 3)))
        with self.assertRaises(ShapeMismatchError):
            dg.conv2d(x, dg.ones((3, 2, 3, 3)), dg.ones((2,)))

    def test_invalid_hyperparameters(self):
        x = dg.ones((1, 2, 5, 5))
        w = dg.ones((3, 2, 3, 3))
        with self.assertRaises(InvalidShapeError):
            dg.conv2d(x, w, stride=0)
        with self.assertRaises(InvalidShapeError):
            dg.conv2d(x, w, padding=-1)
        with self.assertRaises(InvalidShapeError):
            dg.conv2d(x, dg.ones((3, 2, 7, 7)))
        with self.assertRaises(InvalidShapeError):
            dg.conv2d(x, w, stride=(1, 1, 1))


class TestConv3d(TestCase):
    def test_forward_and_gradients(self):
        rng = np.random.default_rng(2)
        x = rng.normal(size=(1, 2, 4, 3, 4))
        w = rng.normal(size=(2, 2, 2, 2, 3))
        b = rng.normal(size=(2,))
        out = dg.conv3d(
            dg.from_data(x), dg.from_data(w), dg.from_data(b),
            stride=(1, 2, 1), padding=(1, 0, 1),
        )
        ref = _reference_conv(x, w, b, (1, 2, 1), (1, 0, 1))
        np.testing.assert_allclose(out.to_numpy(), ref, rtol=1e-12, atol=1e-12)
        assert_gradients_match(
            lambda x, w, b: dg.conv3d(x, w, b, stride=(1, 2, 1), padding=(1, 0, 1)),
            x, w, b,
        )


if __name__ == "__main__":
    unittest.main()
