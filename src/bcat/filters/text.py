"""Plain text to HTML filter."""

from __future__ import annotations

import codecs
import functools
import html
from typing import AsyncIterator

from bcat.filters.ansi import AnsiTransform
from bcat.filters.base import ChunkTransform, FilterFunc, forward
from bcat.reader.channel import Channel

PRE_OPEN = b"<pre>"
PRE_CLOSE = b"</pre>"
LINE_BREAK = "<br>"


class TextTransform(ChunkTransform):
    """Escape HTML and turn newlines into ``<br>`` inside a ``<pre>`` block.

    Input is decoded as UTF-8 incrementally, so multi-byte characters
    split across chunks come out intact. Invalid bytes are replaced.
    Quotes are escaped as ``&#39;`` and ``&#34;``.

    An optional ``markup`` transform runs over the escaped text and is
    finished before ``</pre>``, so any elements it opens are closed
    inside the block.
    """

    def __init__(self, markup: ChunkTransform | None = None) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._markup = markup
        self._started = False

    def feed(self, chunk: bytes) -> bytes:
        output = self._mark_up(self._escape(self._decoder.decode(chunk)))
        if not self._started:
            self._started = True
            return PRE_OPEN + output
        return output

    def finish(self) -> bytes:
        output = self._mark_up(self._escape(self._decoder.decode(b"", final=True)))
        if self._markup is not None:
            output += self._markup.finish()
        if not self._started:
            output = PRE_OPEN + output
        return output + PRE_CLOSE

    def _mark_up(self, data: bytes) -> bytes:
        if self._markup is None or not data:
            return data
        return self._markup.feed(data)

    @staticmethod
    def _escape(text: str) -> bytes:
        escaped = html.escape(text, quote=False).replace('"', "&#34;").replace("'", "&#39;")
        return escaped.replace("\n", LINE_BREAK).encode("utf-8")


def text_filter(source: AsyncIterator[bytes], ansi: bool = False) -> Channel:
    """Wrap ``source`` as escaped, preformatted HTML text.

    With ``ansi`` set, color escape sequences become styled spans that
    are all closed before the block ends.
    """
    return forward(source, TextTransform(AnsiTransform() if ansi else None))


def make_text_filter(ansi: bool = False) -> FilterFunc:
    return functools.partial(text_filter, ansi=ansi)
