from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, TypeVar

from hanashi.errors import RequestCancelled

T = TypeVar("T")


class CancellationToken:
    """
    Cooperative cancellation for one long-running call.

    cancel() may be called from any coroutine on the same loop. Callees
    either poll `cancelled` or wrap their awaitable with run().
    """

    def __init__(self) -> None:
        self._event: Optional[asyncio.Event] = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> bool:
        if self._cancelled:
            return False
        self._cancelled = True
        if self._event is not None:
            self._event.set()
        return True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RequestCancelled("request cancelled")

    async def run(self, aw: Awaitable[T]) -> T:
        """Await `aw`, aborting it as soon as the token fires."""
        task = asyncio.ensure_future(aw)
        if self._cancelled:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            raise RequestCancelled("request cancelled")

        if self._event is None:
            self._event = asyncio.Event()
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task.done():
            return task.result()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise RequestCancelled("request cancelled")
