"""
Parallel-for primitive used by every CPU kernel.
"""

from ._config import (
    ParallelConfig,
    get_parallel_config,
    parallel_config,
    set_parallel_config,
)
from ._parallel_for import parallel_for, partition

__all__ = [
    ParallelConfig.__name__,
    get_parallel_config.__name__,
    parallel_config.__name__,
    set_parallel_config.__name__,
    parallel_for.__name__,
    partition.__name__,
]
