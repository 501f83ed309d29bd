import unittest
from unittest import TestCase

from densegrad.domain import Function

import densegrad  # noqa: F401  (registers every operation)


class TestFunctionRegistry(TestCase):
    def test_core_operations_are_registered(self):
        names = Function.registered().keys()
        for op in (
            "add",
            "mul",
            "matmul",
            "conv2d",
            "conv_transpose3d",
            "max_pool2d",
            "layer_norm",
            "batch_norm",
            "log_softmax",
            "concat",
            "gather",
            "embedding",
            "reshape",
            "broadcast_to",
        ):
            self.assertIn(op, names)

    def test_registered_returns_a_snapshot(self):
        snap = Function.registered()
        snap["bogus"] = object
        self.assertNotIn("bogus", Function.registered())

    def test_duplicate_op_name_rejected(self):
        with self.assertRaises(TypeError):

            class _Duplicate(Function):
                op_name = "add"

                @staticmethod
                def forward(ctx, x):
                    return x

                @staticmethod
                def backward(ctx, grad_out):
                    return (grad_out,)

    def test_abstract_intermediate_is_not_registered(self):
        class _Base(Function):
            @staticmethod
            def forward(ctx, x):
                return x

            @staticmethod
            def backward(ctx, grad_out):
                return (grad_out,)

        self.assertFalse(Function.is_registered(_Base))


if __name__ == "__main__":
    unittest.main()
