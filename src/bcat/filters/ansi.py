"""ANSI escape sequence to HTML filter.

Converts SGR (Select Graphic Rendition) sequences into inline-styled
``<span>`` elements and drops every other CSI sequence. For text input
the text filter runs it over the escaped text; ESC is not an HTML
special character and survives escaping untouched.

Resetting any attribute (``0``, ``22``, ``39`` ...) closes all spans
opened so far rather than unwinding a single attribute.
"""

from __future__ import annotations

import re
from typing import AsyncIterator

from bcat.filters.base import ChunkTransform, forward
from bcat.reader.channel import Channel

CSI_SEQUENCE = re.compile(rb"\x1b\[([0-9;]*)([@-~])")
# An escape sequence cut off by the end of a chunk.
PARTIAL_SEQUENCE = re.compile(rb"\x1b(\[[0-9;]*)?\Z")

PALETTE = (
    "#000000", "#cd0000", "#00cd00", "#cdcd00",
    "#0000ee", "#cd00cd", "#00cdcd", "#e5e5e5",
    "#7f7f7f", "#ff0000", "#00ff00", "#ffff00",
    "#5c5cff", "#ff00ff", "#00ffff", "#ffffff",
)

RESET_CODES = frozenset({0, 22, 23, 24, 27, 29, 39, 49})

ATTRIBUTE_STYLES = {
    1: "font-weight: bold",
    2: "opacity: 0.67",
    3: "font-style: italic",
    4: "text-decoration: underline",
    9: "text-decoration: line-through",
}


def xterm_color(index: int) -> str:
    """Return the hex color of an xterm 256-color palette entry."""
    if index < 16:
        return PALETTE[index]
    if index < 232:
        index -= 16
        levels = (0, 95, 135, 175, 215, 255)
        r, g, b = levels[index // 36], levels[(index // 6) % 6], levels[index % 6]
        return f"#{r:02x}{g:02x}{b:02x}"
    gray = 8 + (index - 232) * 10
    return f"#{gray:02x}{gray:02x}{gray:02x}"


class AnsiTransform(ChunkTransform):
    """Streaming ANSI to HTML conversion with state across chunks."""

    def __init__(self) -> None:
        self._pending = b""
        self._open_spans = 0

    def feed(self, chunk: bytes) -> bytes:
        data = self._pending + chunk
        self._pending = b""
        partial = PARTIAL_SEQUENCE.search(data)
        if partial:
            self._pending = data[partial.start():]
            data = data[:partial.start()]
        return CSI_SEQUENCE.sub(self._replace, data)

    def finish(self) -> bytes:
        self._pending = b""
        return self._close_all()

    def _replace(self, match: re.Match[bytes]) -> bytes:
        if match.group(2) != b"m":
            return b""
        return self._render(match.group(1))

    def _render(self, params: bytes) -> bytes:
        codes = [int(p) if p else 0 for p in params.split(b";")]
        output = b""
        styles: list[str] = []
        i = 0
        while i < len(codes):
            code = codes[i]
            if code in RESET_CODES:
                output += self._close_all()
                styles = []
            elif code in ATTRIBUTE_STYLES:
                styles.append(ATTRIBUTE_STYLES[code])
            elif 30 <= code <= 37:
                styles.append(f"color: {PALETTE[code - 30]}")
            elif 90 <= code <= 97:
                styles.append(f"color: {PALETTE[code - 90 + 8]}")
            elif 40 <= code <= 47:
                styles.append(f"background-color: {PALETTE[code - 40]}")
            elif 100 <= code <= 107:
                styles.append(f"background-color: {PALETTE[code - 100 + 8]}")
            elif code in (38, 48):
                prop = "color" if code == 38 else "background-color"
                color, consumed = _extended_color(codes[i + 1:])
                if color:
                    styles.append(f"{prop}: {color}")
                i += consumed
            i += 1

        if styles:
            self._open_spans += 1
            output += f'<span style="{"; ".join(styles)}">'.encode("ascii")
        return output

    def _close_all(self) -> bytes:
        output = b"</span>" * self._open_spans
        self._open_spans = 0
        return output


def _extended_color(args: list[int]) -> tuple[str | None, int]:
    """Parse the arguments of a 38/48 code: ``5;n`` or ``2;r;g;b``."""
    if len(args) >= 2 and args[0] == 5:
        return xterm_color(min(args[1], 255)), 2
    if len(args) >= 4 and args[0] == 2:
        r, g, b = (min(v, 255) for v in args[1:4])
        return f"#{r:02x}{g:02x}{b:02x}", 4
    return None, len(args)


def ansi_filter(source: AsyncIterator[bytes]) -> Channel:
    """Convert ANSI color sequences in ``source`` to HTML spans."""
    return forward(source, AnsiTransform())
