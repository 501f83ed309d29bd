"""
Blocking parallel-for over a contiguous index range.

Every kernel that touches many independent output elements hands its range to
`parallel_for`, which splits it into contiguous chunks and runs them on a
short-lived `ThreadPoolExecutor`. No pool outlives a call. NumPy releases the
GIL inside its vectorized loops, so kernels give each worker a vectorized slab
rather than a per-element Python loop.

Kernels must write disjoint output regions per chunk.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from ...domain._parallel import WorkFn
from ._config import get_parallel_config

logger = logging.getLogger(__name__)


def partition(range_size: int, workers: int) -> list[tuple[int, int]]:
    """
    Split `[0, range_size)` into at most `workers` contiguous chunks.

    Chunks have equal size except for a shorter trailing chunk.

    Returns
    -------
    list[tuple[int, int]]
        Half-open `(start, end)` pairs covering the range exactly once.
    """
    if range_size <= 0:
        return []
    workers = max(1, min(workers, range_size))
    chunk = (range_size + workers - 1) // workers
    return [
        (start, min(start + chunk, range_size))
        for start in range(0, range_size, chunk)
    ]


def parallel_for(range_size: int, work_fn: WorkFn, *, grain: int = 1) -> None:
    """
    Run `work_fn(start, end)` over a full partition of `[0, range_size)`.

    Parameters
    ----------
    range_size : int
        Number of independent work items. Values <= 0 make the call a no-op.
    work_fn : Callable[[int, int], None]
        Callback processing items `[start, end)`.
    grain : int, optional
        Minimum number of items per worker, so cheap kernels are not split
        into chunks smaller than the thread start-up cost. Defaults to 1.

    Notes
    -----
    The worker count is `min(num_threads, range_size // max(grain, min_chunk))`
    (at least 1). With a single worker the callback runs inline on the calling
    thread. The first exception raised by a chunk is re-raised once all chunks
    have finished.
    """
    if range_size <= 0:
        return

    cfg = get_parallel_config()
    per_worker = max(1, grain, cfg.min_chunk)
    workers = min(cfg.num_threads, range_size, max(1, range_size // per_worker))

    if workers <= 1:
        work_fn(0, range_size)
        return

    chunks = partition(range_size, workers)
    logger.debug(
        "parallel_for: range=%d workers=%d chunks=%d", range_size, workers, len(chunks)
    )
    with ThreadPoolExecutor(max_workers=len(chunks)) as pool:
        futures = [pool.submit(work_fn, start, end) for start, end in chunks]
    for f in futures:
        f.result()
