"""Tests for the plain text to HTML filter."""

from __future__ import annotations

import pytest

from bcat.errors import InputReadError
from bcat.filters.ansi import AnsiTransform
from bcat.filters.text import TextTransform, text_filter


class TestTextTransform:
    def test_escapes_and_wraps(self) -> None:
        transform = TextTransform()
        out = transform.feed(b"a<b>\nc") + transform.finish()
        assert out == b"<pre>a&lt;b&gt;<br>c</pre>"

    def test_opening_marker_only_once(self) -> None:
        transform = TextTransform()
        assert transform.feed(b"one\n") == b"<pre>one<br>"
        assert transform.feed(b"two & three") == b"two &amp; three"
        assert transform.finish() == b"</pre>"

    def test_empty_input_still_balanced(self) -> None:
        assert TextTransform().finish() == b"<pre></pre>"

    def test_multibyte_character_split_across_chunks(self) -> None:
        encoded = "é<".encode("utf-8")
        transform = TextTransform()
        out = transform.feed(encoded[:1]) + transform.feed(encoded[1:]) + transform.finish()
        assert out.decode("utf-8") == "<pre>é&lt;</pre>"

    def test_quotes_use_numeric_references(self) -> None:
        transform = TextTransform()
        out = transform.feed(b"it's \"q\"") + transform.finish()
        assert out == b"<pre>it&#39;s &#34;q&#34;</pre>"

    def test_markup_finished_inside_block(self) -> None:
        transform = TextTransform(AnsiTransform())
        out = transform.feed(b"\x1b[1mbold") + transform.finish()
        assert out == b'<pre><span style="font-weight: bold">bold</span></pre>'

    def test_invalid_utf8_is_replaced(self) -> None:
        transform = TextTransform()
        out = transform.feed(b"\xff") + transform.finish()
        assert out.decode("utf-8") == "<pre>�</pre>"


class TestTextFilter:
    @pytest.mark.asyncio
    async def test_streams_example(self, chunk_source, collect) -> None:
        chunks = await collect(text_filter(chunk_source(b"a<b>\nc")))
        assert b"".join(chunks) == b"<pre>a&lt;b&gt;<br>c</pre>"

    @pytest.mark.asyncio
    async def test_multiple_chunks_keep_order(self, chunk_source, collect) -> None:
        chunks = await collect(text_filter(chunk_source(b"1\n", b"2\n", b"3")))
        assert chunks == [b"<pre>1<br>", b"2<br>", b"3", b"</pre>"]

    @pytest.mark.asyncio
    async def test_upstream_error_propagates(self, failing_source) -> None:
        stream = text_filter(failing_source(InputReadError("gone"), b"x"))
        assert await stream.__anext__() == b"<pre>x"
        with pytest.raises(InputReadError):
            await stream.__anext__()
