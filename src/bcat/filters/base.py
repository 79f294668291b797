"""Streaming filter stages.

A filter takes an async stream of byte chunks and returns another one.
Each stage runs in its own task: it reads from upstream, transforms the
chunk, and sends the result into a bounded channel, closing that channel
when upstream ends. Errors raised upstream are passed on downstream so
the final consumer sees them.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator, Callable

from bcat.reader.channel import Channel

logger = logging.getLogger(__name__)

FilterFunc = Callable[[AsyncIterator[bytes]], AsyncIterator[bytes]]


class ChunkTransform(ABC):
    """Stateful per-chunk transformation driven by :func:`forward`."""

    @abstractmethod
    def feed(self, chunk: bytes) -> bytes:
        """Transform one chunk. May return ``b""`` to emit nothing."""
        ...

    def finish(self) -> bytes:
        """Return trailing output once upstream has ended."""
        return b""


def forward(
    source: AsyncIterator[bytes],
    transform: ChunkTransform,
    maxsize: int = 1,
) -> Channel:
    """Run ``transform`` over ``source`` in a background task.

    Must be called from inside a running event loop.
    """
    channel = Channel(maxsize=maxsize)
    channel.attach(asyncio.create_task(_forward(source, transform, channel)))
    return channel


async def _forward(
    source: AsyncIterator[bytes],
    transform: ChunkTransform,
    channel: Channel,
) -> None:
    name = type(transform).__name__
    try:
        async for chunk in source:
            output = transform.feed(chunk)
            if output:
                await channel.send(output)
        trailer = transform.finish()
        if trailer:
            await channel.send(trailer)
    except Exception as e:
        logger.debug("%s stage stopped: %s", name, e)
        await channel.close(e)
        return
    await channel.close()


def chain(source: AsyncIterator[bytes], *filters: FilterFunc) -> AsyncIterator[bytes]:
    """Compose filters left to right: each one consumes the previous output."""
    stream = source
    for stage in filters:
        stream = stage(stream)
    return stream
