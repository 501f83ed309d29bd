from ._engine import GradientAccumulator, backward, topological_order

__all__ = [
    GradientAccumulator.__name__,
    backward.__name__,
    topological_order.__name__,
]
