import unittest
from unittest import TestCase

import numpy as np

import densegrad as dg
from densegrad.domain import (
    InvalidShapeError,
    ShapeMismatchError,
    UnsupportedConfigurationError,
)

from tests._gradcheck import assert_gradients_match


def _reference_layer_norm(x, ndims, w, b, eps):
    axes = tuple(range(x.ndim - ndims, x.ndim))
    mean = x.mean(axis=axes, keepdims=True)
    var = x.var(axis=axes, keepdims=True)
    y = (x - mean) / np.sqrt(var + eps)
    if w is not None:
        y = y * w
    if b is not None:
        y = y + b
    return y


class TestLayerNorm(TestCase):
    def setUp(self):
        rng = np.random.default_rng(0)
        self.x = rng.normal(size=(2, 3, 4))
        self.w = rng.uniform(0.5, 1.5, size=(4,))
        self.b = rng.normal(size=(4,))

    def test_forward(self):
        out = dg.layer_norm(dg.from_data(self.x), (4,), dg.from_data(self.w), dg.from_data(self.b))
        np.testing.assert_allclose(
            out.to_numpy(),
            _reference_layer_norm(self.x, 1, self.w, self.b, 1e-5),
            rtol=1e-10,
            atol=1e-12,
        )

    def test_forward_multi_axis_without_affine(self):
        out = dg.layer_norm(dg.from_data(self.x), (3, 4))
        np.testing.assert_allclose(
            out.to_numpy(),
            _reference_layer_norm(self.x, 2, None, None, 1e-5),
            rtol=1e-10,
            atol=1e-12,
        )

    def test_gradients(self):
        assert_gradients_match(
            lambda x, w, b: dg.layer_norm(x, (4,), w, b), self.x, self.w, self.b
        )
        assert_gradients_match(lambda x: dg.layer_norm(x, (3, 4)), self.x)

    def test_non_positive_eps_falls_back(self):
        x = dg.from_data(self.x)
        np.testing.assert_array_equal(
            dg.layer_norm(x, 4, eps=0.0).to_numpy(), dg.layer_norm(x, 4).to_numpy()
        )

    def test_errors(self):
        x = dg.from_data(self.x)
        with self.assertRaises(ShapeMismatchError):
            dg.layer_norm(x, (3,))
        with self.assertRaises(ShapeMismatchError):
            dg.layer_norm(x, (4,), dg.ones((3,)))
        with self.assertRaises(ShapeMismatchError):
            dg.layer_norm(x, (2, 3, 4, 1))
        with self.assertRaises(InvalidShapeError):
            dg.layer_norm(x, ())


class TestBatchNorm(TestCase):
    def setUp(self):
        rng = np.random.default_rng(1)
        self.x4 = rng.normal(loc=2.0, size=(3, 2, 2, 3))
        self.x2 = rng.normal(size=(5, 3))
        self.w = rng.uniform(0.5, 1.5, size=(2,))
        self.b = rng.normal(size=(2,))

    def test_training_forward_normalizes_per_channel(self):
        out = dg.batch_norm(dg.from_data(self.x4)).to_numpy()
        np.testing.assert_allclose(out.mean(axis=(0, 2, 3)), 0.0, atol=1e-12)
        np.testing.assert_allclose(out.var(axis=(0, 2, 3)), 1.0, rtol=1e-4)

    def test_running_statistics_update(self):
        rm = dg.zeros((2,))
        rv = dg.ones((2,))
        dg.batch_norm(dg.from_data(self.x4), rm, rv, momentum=0.25)
        mean = self.x4.mean(axis=(0, 2, 3))
        var = self.x4.var(axis=(0, 2, 3))
        np.testing.assert_allclose(rm.to_numpy(), 0.25 * mean)
        np.testing.assert_allclose(rv.to_numpy(), 0.75 + 0.25 * var)

    def test_evaluation_uses_running_statistics(self):
        rm = dg.from_data([0.5, -1.0])
        rv = dg.from_data([4.0, 0.25])
        out = dg.batch_norm(
            dg.from_data(self.x4), rm, rv, dg.from_data(self.w), dg.from_data(self.b),
            training=False,
        )
        shape = (1, 2, 1, 1)
        ref = (self.x4 - rm.to_numpy().reshape(shape)) / np.sqrt(rv.to_numpy().reshape(shape) + 1e-5)
        ref = ref * self.w.reshape(shape) + self.b.reshape(shape)
        np.testing.assert_allclose(out.to_numpy(), ref, rtol=1e-10, atol=1e-12)
        np.testing.assert_array_equal(rm.to_numpy(), [0.5, -1.0])

    def test_training_gradients(self):
        assert_gradients_match(
            lambda x, w, b: dg.batch_norm(x, weight=w, bias=b), self.x4, self.w, self.b
        )
        assert_gradients_match(dg.batch_norm, self.x2)

    def test_evaluation_gradients(self):
        rm = dg.from_data([0.1, 0.2])
        rv = dg.from_data([1.5, 0.5])
        assert_gradients_match(
            lambda x, w, b: dg.batch_norm(x, rm, rv, w, b, training=False),
            self.x4, self.w, self.b,
        )

    def test_errors(self):
        with self.assertRaises(ShapeMismatchError):
            dg.batch_norm(dg.ones((2, 3, 4)))
        with self.assertRaises(ShapeMismatchError):
            dg.batch_norm(dg.from_data(self.x4), weight=dg.ones((3,)))
        with self.assertRaises(UnsupportedConfigurationError):
            dg.batch_norm(dg.from_data(self.x4), training=False)


if __name__ == "__main__":
    unittest.main()
