"""
Backend-agnostic contracts: tensor protocol, differentiable-function base
class, the parallel-for work callback type and the error taxonomy.
"""

from ._errors import (
    DenseGradError,
    GradientInvariantError,
    IndexOutOfRangeError,
    InvalidShapeError,
    InvariantViolationError,
    ShapeMismatchError,
    UnsupportedConfigurationError,
)
from ._function import Function
from ._parallel import WorkFn
from ._tensor import ITensor, Number

__all__ = [
    DenseGradError.__name__,
    GradientInvariantError.__name__,
    IndexOutOfRangeError.__name__,
    InvalidShapeError.__name__,
    InvariantViolationError.__name__,
    ShapeMismatchError.__name__,
    UnsupportedConfigurationError.__name__,
    Function.__name__,
    ITensor.__name__,
    "WorkFn",
    "Number",
]
