from ._functional import (
    broadcast_to,
    flatten,
    reduce_to_shape,
    reshape,
    slice_rows,
    squeeze,
    transpose,
    unsqueeze,
)

__all__ = [
    broadcast_to.__name__,
    flatten.__name__,
    reduce_to_shape.__name__,
    reshape.__name__,
    slice_rows.__name__,
    squeeze.__name__,
    transpose.__name__,
    unsqueeze.__name__,
]
