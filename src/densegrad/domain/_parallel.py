"""
Parallel-for contract.

Kernels split independent index ranges across workers by handing a `WorkFn`
to the parallel-for primitive. The contract:

- `work_fn(start, end)` is invoked over a full, non-overlapping partition of
  `[0, range_size)`;
- the call blocks until every partition has finished;
- `range_size <= 0` is a no-op;
- an exception raised by any partition propagates to the caller.
"""

from __future__ import annotations

from typing import Callable

WorkFn = Callable[[int, int], None]
