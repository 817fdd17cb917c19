"""
Chunking and bounded fan-out for worker dispatch.

chunk() splits a queue into contiguous batches so that one worker RPC carries
many jobs. map_limited() runs an async operation over items with at most N in
flight and stops scheduling on the first failure.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import Any, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def chunk(items: Sequence[T], size: int) -> list[list[T]]:
    """
    Partition items into contiguous groups of `size`, preserving order.

    Every group has exactly `size` items except possibly the last one.

    Args:
        items: Ordered items to partition
        size: Group size (must be positive)

    Returns:
        List of groups; empty when items is empty

    Raises:
        ValueError: If size is not positive
    """
    if size <= 0:
        raise ValueError(f"chunk size must be positive, got {size}")
    items = list(items)
    return [items[i:i + size] for i in range(0, len(items), size)]


async def map_limited(
    items: Iterable[T],
    fn: Callable[[T], Awaitable[R]],
    concurrency: int,
) -> list[R]:
    """
    Await fn(item) for every item with at most `concurrency` calls in flight.

    Items are started in submission order. Results are returned in the same
    order regardless of completion order. The first failure wins: no further
    items are started and that exception is raised. Calls already in flight
    are not cancelled and are not waited for.

    Args:
        items: Work items
        fn: Async operation applied to each item
        concurrency: Maximum number of concurrent calls (>= 1)

    Returns:
        Results aligned with items

    Raises:
        ValueError: If concurrency is less than 1
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be at least 1, got {concurrency}")

    items = list(items)
    results: list[Any] = [None] * len(items)
    if not items:
        return results

    pending = iter(enumerate(items))
    failed = False

    async def _runner() -> None:
        nonlocal failed
        while not failed:
            try:
                index, item = next(pending)
            except StopIteration:
                return
            try:
                results[index] = await fn(item)
            except BaseException:
                failed = True
                raise

    runners = [_runner() for _ in range(min(concurrency, len(items)))]
    await asyncio.gather(*runners)
    return results
