from ._functional import conv_transpose1d, conv_transpose2d, conv_transpose3d

__all__ = [
    conv_transpose1d.__name__,
    conv_transpose2d.__name__,
    conv_transpose3d.__name__,
]
