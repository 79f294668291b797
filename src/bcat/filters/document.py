"""HTML document wrapper carrying the page title."""

from __future__ import annotations

import functools
import html
from typing import AsyncIterator

from bcat.filters.base import ChunkTransform, FilterFunc, forward
from bcat.reader.channel import Channel

DEFAULT_TITLE = "bcat"

DOCUMENT_HEAD = (
    "<!DOCTYPE html>\n"
    "<html>\n"
    "<head>\n"
    '<meta charset="utf-8">\n'
    "<title>{title}</title>\n"
    "</head>\n"
    "<body>\n"
)
DOCUMENT_TAIL = b"\n</body>\n</html>\n"


class DocumentTransform(ChunkTransform):
    """Emit the document head before the first chunk and the tail at the end."""

    def __init__(self, title: str = DEFAULT_TITLE) -> None:
        self._head = DOCUMENT_HEAD.format(title=html.escape(title)).encode("utf-8")
        self._started = False

    def feed(self, chunk: bytes) -> bytes:
        if self._started:
            return chunk
        self._started = True
        return self._head + chunk

    def finish(self) -> bytes:
        if not self._started:
            return self._head + DOCUMENT_TAIL
        return DOCUMENT_TAIL


def document_filter(source: AsyncIterator[bytes], title: str = DEFAULT_TITLE) -> Channel:
    """Wrap ``source`` in a complete HTML document titled ``title``."""
    return forward(source, DocumentTransform(title))


def make_document_filter(title: str | None) -> FilterFunc:
    return functools.partial(document_filter, title=title or DEFAULT_TITLE)
