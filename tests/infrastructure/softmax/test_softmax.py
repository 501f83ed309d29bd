import unittest
from unittest import TestCase

import numpy as np

import densegrad as dg
from densegrad.domain import (
    IndexOutOfRangeError,
    ShapeMismatchError,
    UnsupportedConfigurationError,
)

from tests._gradcheck import assert_gradients_match


def _reference_softmax(x):
    e = np.exp(x - x.max(axis=1, keepdims=True))
    return e / e.sum(axis=1, keepdims=True)


class TestLogSoftmax(TestCase):
    def setUp(self):
        self.x = np.random.default_rng(0).normal(size=(4, 5))

    def test_values(self):
        out = dg.log_softmax(dg.from_data(self.x)).to_numpy()
        np.testing.assert_allclose(out, np.log(_reference_softmax(self.x)), rtol=1e-12)

    def test_large_logits_stay_finite(self):
        x = np.array([[1000.0, 0.0, -1000.0]])
        out = dg.log_softmax(dg.from_data(x)).to_numpy()
        self.assertTrue(np.all(np.isfinite(out[:, :2])))
        self.assertAlmostEqual(out[0, 0], 0.0)

    def test_softmax_rows_sum_to_one(self):
        out = dg.softmax(dg.from_data(self.x)).to_numpy()
        np.testing.assert_allclose(out.sum(axis=1), 1.0, rtol=1e-12)
        np.testing.assert_allclose(out, _reference_softmax(self.x), rtol=1e-12)

    def test_gradients(self):
        assert_gradients_match(dg.log_softmax, self.x)
        assert_gradients_match(dg.softmax, self.x)

    def test_axis_one_is_last_axis(self):
        x = dg.from_data(self.x)
        np.testing.assert_array_equal(
            dg.log_softmax(x, 1).to_numpy(), dg.log_softmax(x).to_numpy()
        )

    def test_errors(self):
        with self.assertRaises(ShapeMismatchError):
            dg.log_softmax(dg.ones((2, 3, 4)))
        with self.assertRaises(UnsupportedConfigurationError):
            dg.log_softmax(dg.ones((2, 3)), axis=0)
        with self.assertRaises(TypeError):
            dg.softmax(dg.ones((2, 3)), axis=1.0)


class TestLosses(TestCase):
    def test_cross_entropy_gradient_is_softmax_minus_one_hot(self):
        logits = dg.from_data([[1.0, 0.0, -1.0]], requires_grad=True)
        loss = dg.cross_entropy(logits, [1])
        s = _reference_softmax(np.array([[1.0, 0.0, -1.0]]))
        self.assertEqual(loss.shape, (1,))
        self.assertAlmostEqual(float(loss.to_numpy()[0]), -np.log(s[0, 1]))

        loss.backward()
        expected = s.copy()
        expected[0, 1] -= 1.0
        np.testing.assert_allclose(logits.grad.to_numpy(), expected, rtol=1e-12)

    def test_cross_entropy_mean_over_batch(self):
        x = np.random.default_rng(1).normal(size=(3, 4))
        targets = [0, 3, 2]
        loss = dg.cross_entropy(dg.from_data(x), targets).to_numpy()[0]
        lp = np.log(_reference_softmax(x))
        self.assertAlmostEqual(loss, -np.mean(lp[np.arange(3), targets]))

    def test_cross_entropy_gradients(self):
        x = np.random.default_rng(2).normal(size=(3, 4))
        targets = dg.from_data([2.0, 0.0, 3.0])
        assert_gradients_match(lambda t: dg.cross_entropy(t, targets), x)

    def test_nll_loss_picks_target_entries(self):
        lp = dg.from_data([[-0.5, -1.0], [-2.0, -0.25]])
        loss = dg.nll_loss(lp, [1, 0])
        self.assertAlmostEqual(float(loss.to_numpy()[0]), 1.5)

    def test_mse_loss_value(self):
        pred = dg.from_data([[1.0, 2.0], [3.0, 4.0]])
        target = dg.from_data([[0.0, 2.0], [5.0, 3.0]])
        loss = dg.mse_loss(pred, target)
        self.assertEqual(loss.shape, (1,))
        self.assertAlmostEqual(float(loss.to_numpy()[0]), (1.0 + 0.0 + 4.0 + 1.0) / 4.0)

    def test_mse_loss_gradients(self):
        rng = np.random.default_rng(3)
        pred, target = rng.normal(size=(3, 4)), rng.normal(size=(3, 4))
        assert_gradients_match(dg.mse_loss, pred, target)

    def test_errors(self):
        logits = dg.ones((2, 3))
        with self.assertRaises(ShapeMismatchError):
            dg.cross_entropy(logits, [0])
        with self.assertRaises(IndexOutOfRangeError):
            dg.cross_entropy(logits, [0, 3])
        with self.assertRaises(ShapeMismatchError):
            dg.nll_loss(dg.ones((3,)), [0])
        with self.assertRaises(ShapeMismatchError):
            dg.mse_loss(dg.ones((2, 3)), dg.ones((3, 2)))


if __name__ == "__main__":
    unittest.main()
