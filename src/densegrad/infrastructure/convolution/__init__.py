from ._functional import conv1d, conv2d, conv3d
from .transpose import conv_transpose1d, conv_transpose2d, conv_transpose3d

__all__ = [
    conv1d.__name__,
    conv2d.__name__,
    conv3d.__name__,
    conv_transpose1d.__name__,
    conv_transpose2d.__name__,
    conv_transpose3d.__name__,
]
