import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

T = TypeVar("T")


async def drain(
    items: Iterable[T],
    handler: Callable[[T], Awaitable[None]],
    *,
    concurrency: int,
) -> None:
    """Process ``items`` with at most ``concurrency`` workers pulling from a shared queue.

    A worker takes the next pending item as soon as it finishes its current
    one, so a slow item never holds back the rest. ``handler`` is expected to
    absorb its own upstream failures.
    """
    queue: asyncio.Queue[T] = asyncio.Queue()
    for item in items:
        queue.put_nowait(item)
    if queue.empty():
        return

    async def _worker() -> None:
        while True:
            try:
                item = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                await handler(item)
            finally:
                queue.task_done()

    workers = max(1, min(concurrency, queue.qsize()))
    await asyncio.gather(*(_worker() for _ in range(workers)))
