"""Cooperative cancellation for one resolution attempt."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, TypeVar

from tsparse.core.errors import ResolutionCancelled

T = TypeVar("T")


class CancellationToken:
    """Set once when a newer input supersedes the attempt that owns this token.

    Work awaited through `run` is abandoned as soon as the token fires, and the
    underlying task is cancelled so an HTTP request stops consuming quota.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ResolutionCancelled()

    async def run(self, awaitable: Awaitable[T], *, timeout: Optional[float] = None) -> T:
        """Await `awaitable` unless cancelled first or `timeout` elapses.

        Raises ResolutionCancelled or asyncio.TimeoutError; in both cases the
        inner task is cancelled and its eventual result is dropped.
        """
        self.raise_if_cancelled()
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()

        if task in done:
            return task.result()
        if self.cancelled:
            raise ResolutionCancelled()
        raise asyncio.TimeoutError()
