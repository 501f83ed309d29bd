from ._functional import (
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

__all__ = [
    add.__name__,
    add_scalar.__name__,
    div.__name__,
    elu.__name__,
    exp.__name__,
    gelu.__name__,
    leaky_relu.__name__,
    log.__name__,
    mul.__name__,
    mul_scalar.__name__,
    neg.__name__,
    pow.__name__,
    relu.__name__,
    sigmoid.__name__,
    softplus.__name__,
    sub.__name__,
    tanh.__name__,
]
