from ._functional import avg_pool2d, max_pool2d

__all__ = [avg_pool2d.__name__, max_pool2d.__name__]
