"""
Process-wide configuration of the parallel-for primitive.

Values are read from the environment once, on first use:

- `DENSEGRAD_NUM_THREADS`: maximum number of workers per call. Defaults to
  `os.cpu_count()`.
- `DENSEGRAD_MIN_CHUNK`: minimum number of items handed to one worker, applied
  on top of the per-kernel grain. Defaults to 1.

`set_parallel_config` replaces the process-wide configuration.
`parallel_config` overrides it for the duration of a `with` block in the
current thread (or async task) only; other threads keep seeing the
process-wide value.
"""

from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, replace
from typing import Iterator, Optional

_ENV_NUM_THREADS = "DENSEGRAD_NUM_THREADS"
_ENV_MIN_CHUNK = "DENSEGRAD_MIN_CHUNK"


def _read_positive_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a positive integer, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value}")
    return value


@dataclass(frozen=True)
class ParallelConfig:
    """
    Parallel-for tuning knobs.

    Attributes
    ----------
    num_threads : int
        Upper bound on concurrently running workers for a single call.
    min_chunk : int
        Lower bound on the number of items per worker.
    """

    num_threads: int
    min_chunk: int = 1

    def __post_init__(self) -> None:
        if self.num_threads <= 0:
            raise ValueError(f"num_threads must be positive, got {self.num_threads}")
        if self.min_chunk <= 0:
            raise ValueError(f"min_chunk must be positive, got {self.min_chunk}")

    @classmethod
    def from_env(cls) -> "ParallelConfig":
        """Build a configuration from `DENSEGRAD_*` environment variables."""
        return cls(
            num_threads=_read_positive_int(_ENV_NUM_THREADS, os.cpu_count() or 1),
            min_chunk=_read_positive_int(_ENV_MIN_CHUNK, 1),
        )


_lock = threading.Lock()
_active: Optional[ParallelConfig] = None
_override: ContextVar[Optional[ParallelConfig]] = ContextVar(
    "densegrad_parallel_override", default=None
)


def get_parallel_config() -> ParallelConfig:
    """
    Return the configuration in effect for the calling thread.

    A `parallel_config` override active in this context wins; otherwise the
    process-wide value is returned, loaded from the environment once.
    """
    global _active
    override = _override.get()
    if override is not None:
        return override
    with _lock:
        if _active is None:
            _active = ParallelConfig.from_env()
        return _active


def set_parallel_config(config: Optional[ParallelConfig]) -> None:
    """
    Replace the process-wide configuration.

    Passing None discards the current value so the next lookup re-reads the
    environment.
    """
    global _active
    with _lock:
        _active = config


@contextmanager
def parallel_config(
    *, num_threads: Optional[int] = None, min_chunk: Optional[int] = None
) -> Iterator[ParallelConfig]:
    """
    Temporarily override fields of the configuration for the calling thread.

    The override is held in a context variable, so concurrent overrides in
    other threads neither see nor clobber it, and the process-wide value set
    by `set_parallel_config` is never written.

    Examples
    --------
    >>> with parallel_config(num_threads=1):
    ...     run_deterministic_kernel()
    """
    previous = get_parallel_config()
    changes = {}
    if num_threads is not None:
        changes["num_threads"] = num_threads
    if min_chunk is not None:
        changes["min_chunk"] = min_chunk
    current = replace(previous, **changes)
    token = _override.set(current)
    try:
        yield current
    finally:
        _override.reset(token)
