"""Input format detection.

Input is treated as HTML when its first non-whitespace byte is ``<``,
and as plain text otherwise. Detection peeks at the stream, so the
bytes it consumed are replayed in front of the rest.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator, Literal

logger = logging.getLogger(__name__)

InputFormat = Literal["html", "text"]


def detect_format(head: bytes) -> InputFormat:
    """Classify a leading sample of the input."""
    stripped = head.lstrip()
    if stripped.startswith(b"<"):
        return "html"
    return "text"


async def sniff_format(
    source: AsyncIterator[bytes],
) -> tuple[InputFormat, AsyncIterator[bytes]]:
    """Detect the format of ``source``.

    Reads chunks until one contains non-whitespace (or the stream ends)
    and returns the format with a stream yielding the same bytes as
    ``source`` would have.
    """
    peeked: list[bytes] = []
    ended = False
    while True:
        try:
            chunk = await source.__anext__()
        except StopAsyncIteration:
            ended = True
            break
        peeked.append(chunk)
        if chunk.strip():
            break

    fmt = detect_format(b"".join(peeked))
    logger.debug("Detected %s input", fmt)
    return fmt, _replay(peeked, source, ended)


async def _replay(
    peeked: list[bytes],
    source: AsyncIterator[bytes],
    ended: bool,
) -> AsyncIterator[bytes]:
    for chunk in peeked:
        yield chunk
    if ended:
        return
    async for chunk in source:
        yield chunk
