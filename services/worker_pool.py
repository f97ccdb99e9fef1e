"""Run per-item coroutines with a bound on how many are in flight."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def run_bounded(items: Sequence[T], worker: Callable[[T], Awaitable[R]], limit: int = 1) -> List[R]:
    """Await `worker(item)` for every item and return results in input order.

    With `limit == 1` items are processed strictly one after another. Workers
    are expected to handle their own per-item failures; an exception that
    escapes a worker cancels the others and is re-raised once all have stopped.
    """
    if limit <= 1:
        results: List[R] = []
        for item in items:
            results.append(await worker(item))
        return results

    semaphore = asyncio.Semaphore(limit)

    async def _guarded(item: T) -> R:
        async with semaphore:
            return await worker(item)

    tasks = [asyncio.ensure_future(_guarded(item)) for item in items]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        # Nothing may still be running once the error reaches the caller.
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
