import unittest
from unittest import TestCase

import numpy as np

from densegrad.infrastructure.encoding import (
    array_to_payload,
    decode_float64,
    encode_float64,
    payload_to_array,
)


class TestFloat64Base64(TestCase):
    def test_special_values_survive(self):
        values = np.array([0.0, -0.0, 1e-310, np.inf, -np.inf, 1.0 / 3.0])
        out = decode_float64(encode_float64(values), values.size)
        np.testing.assert_array_equal(out, values)
        self.assertTrue(np.signbit(out[1]))

    def test_little_endian_bytes(self):
        # 1.0 as little-endian IEEE-754 double
        self.assertEqual(encode_float64(np.array([1.0])), "AAAAAAAA8D8=")

    def test_count_mismatch(self):
        with self.assertRaises(ValueError):
            decode_float64(encode_float64(np.zeros(3)), 4)

    def test_invalid_base64(self):
        with self.assertRaises(ValueError):
            decode_float64("not base64!", 1)

    def test_payload(self):
        arr = np.arange(6.0).reshape(3, 2)
        payload = array_to_payload(arr)
        self.assertEqual(payload["shape"], [3, 2])
        np.testing.assert_array_equal(payload_to_array(payload), arr)

    def test_malformed_payload(self):
        with self.assertRaises(ValueError):
            payload_to_array({"data": ""})


if __name__ == "__main__":
    unittest.main()
