import json
import os
import tempfile
import unittest
from unittest import TestCase

import numpy as np

import densegrad as dg


class TestTensorIO(TestCase):
    def setUp(self):
        self._dir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self._dir.name, "weights.json")

    def tearDown(self):
        self._dir.cleanup()

    def test_round_trip(self):
        w = dg.from_data(np.arange(6.0).reshape(2, 3) / 7.0, requires_grad=True)
        b = dg.from_data([-1.5])
        dg.save_tensors(self.path, {"w": w, "b": b})

        loaded = dg.load_tensors(self.path)
        self.assertEqual(set(loaded), {"w", "b"})
        self.assertEqual(loaded["w"].shape, (2, 3))
        np.testing.assert_array_equal(loaded["w"].to_numpy(), w.to_numpy())
        np.testing.assert_array_equal(loaded["b"].to_numpy(), [-1.5])
        self.assertFalse(loaded["w"].requires_grad)

    def test_file_layout(self):
        dg.save_tensors(self.path, {"x": dg.ones((2, 2))})
        with open(self.path, "r", encoding="utf-8") as f:
            doc = json.load(f)
        self.assertEqual(doc["x"]["shape"], [2, 2])
        self.assertIsInstance(doc["x"]["data"], str)

    def test_view_is_saved_by_value(self):
        t = dg.from_data(np.arange(6.0).reshape(2, 3))
        dg.save_tensors(self.path, {"t": t.T})
        np.testing.assert_array_equal(
            dg.load_tensors(self.path)["t"].to_numpy(), np.arange(6.0).reshape(2, 3).T
        )

    def test_rejects_non_tensor(self):
        with self.assertRaises(TypeError):
            dg.save_tensors(self.path, {"x": np.zeros(2)})

    def test_rejects_non_object_document(self):
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump([1, 2], f)
        with self.assertRaises(ValueError):
            dg.load_tensors(self.path)


if __name__ == "__main__":
    unittest.main()
