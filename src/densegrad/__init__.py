"""
densegrad: a dense float64 tensor library with reverse-mode automatic
differentiation, backed by NumPy.

The public surface is functional: every operation takes tensors and returns a
new tensor that is wired into the autograd graph when any input requires
gradients. Call `Tensor.backward()` (or `densegrad.backward`) on a result to
populate `.grad` on every reachable tensor.
"""

import logging

from .domain import (
    DenseGradError,
    Function,
    GradientInvariantError,
    IndexOutOfRangeError,
    InvalidShapeError,
    InvariantViolationError,
    ShapeMismatchError,
    UnsupportedConfigurationError,
)
from .infrastructure.autograd import backward
from .infrastructure.convolution import (
    conv1d,
    conv2d,
    conv3d,
    conv_transpose1d,
    conv_transpose2d,
    conv_transpose3d,
)
from .infrastructure.elementwise import (
    add,
    add_scalar,
    div,
    elu,
    exp,
    gelu,
    leaky_relu,
    log,
    mul,
    mul_scalar,
    neg,
    pow,
    relu,
    sigmoid,
    softplus,
    sub,
    tanh,
)
from .infrastructure.linalg import add_bias_2d, matmul
from .infrastructure.normalization import batch_norm, layer_norm
from .infrastructure.parallel import (
    ParallelConfig,
    get_parallel_config,
    parallel_config,
    parallel_for,
    set_parallel_config,
)
from .infrastructure.pooling import avg_pool2d, max_pool2d
from .infrastructure.reduction import max, mean, min, sum, sum_axis
from .infrastructure.shape import (
    broadcast_to,
    flatten,
    reduce_to_shape,
    reshape,
    slice_rows,
    squeeze,
    transpose,
    unsqueeze,
)
from .infrastructure.softmax import (
    cross_entropy,
    log_softmax,
    mse_loss,
    nll_loss,
    softmax,
)
from .infrastructure.structural import (
    chunk,
    concat,
    dropout,
    embedding,
    gather,
    split,
    stack,
)
from .infrastructure.tensor import (
    Tensor,
    copy_into,
    from_data,
    full,
    load_tensors,
    ones,
    ones_like,
    random_normal,
    save_tensors,
    zeros,
    zeros_like,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # tensor
    "Tensor",
    "copy_into",
    "from_data",
    "full",
    "load_tensors",
    "ones",
    "ones_like",
    "random_normal",
    "save_tensors",
    "zeros",
    "zeros_like",
    "backward",
    # errors
    "DenseGradError",
    "GradientInvariantError",
    "IndexOutOfRangeError",
    "InvalidShapeError",
    "InvariantViolationError",
    "ShapeMismatchError",
    "UnsupportedConfigurationError",
    "Function",
    # parallel
    "ParallelConfig",
    "get_parallel_config",
    "parallel_config",
    "parallel_for",
    "set_parallel_config",
    # elementwise
    "add",
    "add_scalar",
    "div",
    "elu",
    "exp",
    "gelu",
    "leaky_relu",
    "log",
    "mul",
    "mul_scalar",
    "neg",
    "pow",
    "relu",
    "sigmoid",
    "softplus",
    "sub",
    "tanh",
    # reduction
    "max",
    "mean",
    "min",
    "sum",
    "sum_axis",
    # linalg
    "add_bias_2d",
    "matmul",
    # convolution
    "conv1d",
    "conv2d",
    "conv3d",
    "conv_transpose1d",
    "conv_transpose2d",
    "conv_transpose3d",
    # pooling
    "avg_pool2d",
    "max_pool2d",
    # normalization
    "batch_norm",
    "layer_norm",
    # softmax
    "cross_entropy",
    "log_softmax",
    "mse_loss",
    "nll_loss",
    "softmax",
    # shape
    "broadcast_to",
    "flatten",
    "reduce_to_shape",
    "reshape",
    "slice_rows",
    "squeeze",
    "transpose",
    "unsqueeze",
    # structural
    "chunk",
    "concat",
    "dropout",
    "embedding",
    "gather",
    "split",
    "stack",
]
