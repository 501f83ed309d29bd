from ._functional import max, mean, min, sum, sum_axis

__all__ = [
    max.__name__,
    mean.__name__,
    min.__name__,
    sum.__name__,
    sum_axis.__name__,
]
