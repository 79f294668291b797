"""Bounded async channel carrying byte chunks between pipeline stages.

A ``Channel`` is the glue of the pipeline: one producer task puts
chunks into it and one consumer iterates over it. The queue is bounded,
so a slow consumer suspends the producer instead of letting chunks pile
up in memory.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

logger = logging.getLogger(__name__)

_EOF = object()


class Channel:
    """Single-producer, single-consumer stream of byte chunks.

    The producer calls :meth:`send` for every chunk and :meth:`close`
    exactly once when done, optionally passing the exception that ended
    the stream. The consumer iterates with ``async for``; iteration
    ends after the last chunk, or raises the producer's exception once
    every chunk sent before the failure has been delivered.

    Example usage::

        channel = Channel()
        ...
        async for chunk in channel:
            handle(chunk)
    """

    def __init__(self, maxsize: int = 1) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._task: asyncio.Task[None] | None = None

    @property
    def closed(self) -> bool:
        """Whether the producer has closed the channel."""
        return self._closed

    async def send(self, chunk: bytes) -> None:
        """Put a chunk, waiting while the channel is full."""
        if self._closed:
            raise RuntimeError("send on closed channel")
        await self._queue.put(chunk)

    async def close(self, error: BaseException | None = None) -> None:
        """Mark the end of the stream, carrying ``error`` if it failed."""
        if self._closed:
            return
        self._closed = True
        await self._queue.put(error if error is not None else _EOF)

    def attach(self, task: asyncio.Task[None]) -> None:
        """Keep a reference to the producer task feeding this channel."""
        self._task = task

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self

    async def __anext__(self) -> bytes:
        item = await self._queue.get()
        if item is _EOF:
            # Leave the marker for any further reads.
            self._queue.put_nowait(_EOF)
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            self._queue.put_nowait(_EOF)
            raise item
        return item  # type: ignore[return-value]
