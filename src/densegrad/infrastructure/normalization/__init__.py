from ._functional import batch_norm, layer_norm

__all__ = [batch_norm.__name__, layer_norm.__name__]
