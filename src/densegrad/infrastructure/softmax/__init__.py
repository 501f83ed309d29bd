from ._functional import cross_entropy, log_softmax, mse_loss, nll_loss, softmax

__all__ = [
    cross_entropy.__name__,
    log_softmax.__name__,
    mse_loss.__name__,
    nll_loss.__name__,
    softmax.__name__,
]
