import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class PendingRefresh(Generic[T]):
    """Handle on one running refresh, shared by every caller that joins it."""

    def __init__(self, task: asyncio.Task[T]) -> None:
        self.task = task
        self.waiters = 0

    def done(self) -> bool:
        return self.task.done()

    async def wait(self) -> T:
        # shield: a caller that goes away must not cancel the shared refresh
        self.waiters += 1
        try:
            return await asyncio.shield(self.task)
        finally:
            self.waiters -= 1


class SingleFlight(Generic[T]):
    """At most one refresh in flight; late callers attach to the running one.

    ``start`` and the completion callback never await between check and set,
    so within one event loop they cannot interleave.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._pending: PendingRefresh[T] | None = None
        self.started = 0

    @property
    def pending(self) -> PendingRefresh[T] | None:
        return self._pending

    def start(self, factory: Callable[[], Awaitable[T]]) -> PendingRefresh[T]:
        pending = self._pending
        if pending is not None and not pending.done():
            return pending

        async def _run() -> T:
            return await factory()

        task = asyncio.create_task(_run(), name=f"refresh:{self._name}")
        pending = PendingRefresh(task)
        self._pending = pending
        self.started += 1
        task.add_done_callback(lambda t: self._finish(pending, t))
        return pending

    def _finish(self, pending: PendingRefresh[T], task: asyncio.Task[T]) -> None:
        if self._pending is pending:
            self._pending = None
        # Background refreshes may have no awaiter; the owner records the error.
        if not task.cancelled():
            task.exception()
