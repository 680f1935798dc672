"""Consumable stream of bulk status snapshots."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator

from conductor.models.bulk import BulkOperationStatus

_CLOSED = object()


class ProgressChannel:
    """Async iterator over status snapshots, ended by ``close()``.

    With a ``maxsize`` the channel keeps the newest snapshots: publishing to a
    full channel drops the oldest pending one.  Producers never block.
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue = asyncio.Queue(maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _put(self, item: object) -> None:
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(item)

    def publish(self, snapshot: BulkOperationStatus) -> None:
        if not self._closed:
            self._put(snapshot)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._put(_CLOSED)

    def __aiter__(self) -> AsyncIterator[BulkOperationStatus]:
        return self

    async def __anext__(self) -> BulkOperationStatus:
        item = await self._queue.get()
        if item is _CLOSED:
            # leave the marker for any other reader
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item
