from ._factories import (
    copy_into,
    from_data,
    full,
    ones,
    ones_like,
    random_normal,
    zeros,
    zeros_like,
)
from ._io import load_tensors, save_tensors
from ._tensor import Tensor
from ._tensor_context import Context, run_function

__all__ = [
    Tensor.__name__,
    Context.__name__,
    run_function.__name__,
    copy_into.__name__,
    from_data.__name__,
    full.__name__,
    ones.__name__,
    ones_like.__name__,
    random_normal.__name__,
    zeros.__name__,
    zeros_like.__name__,
    load_tensors.__name__,
    save_tensors.__name__,
]
