"""End-to-end tests for the pipeline runner with a fake browser."""

from __future__ import annotations

import asyncio
import io
from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest

from bcat.config.settings import Settings
from bcat.errors import ExecutableNotFoundError, InputOpenError, UnsupportedBrowserError
from bcat.filters import chain
from bcat.runner import build_filters, run


class FakeBrowser:
    """Fetches the page the way a browser would once it is 'opened'."""

    def __init__(self, error: Exception | None = None) -> None:
        self.urls: list[str] = []
        self.fetches: list[asyncio.Task[httpx.Response]] = []
        self._error = error

    def open(self, url: str) -> None:
        self.urls.append(url)
        self.fetches.append(asyncio.get_running_loop().create_task(self._fetch(url)))
        if self._error is not None:
            raise self._error

    async def _fetch(self, url: str) -> httpx.Response:
        async with httpx.AsyncClient(trust_env=False, timeout=5) as client:
            return await client.get(url + "/")


def _write(tmp_path: Path, name: str, data: bytes) -> str:
    path = tmp_path / name
    path.write_bytes(data)
    return str(path)


async def _run_with(browser: FakeBrowser, settings: Settings, args, **kwargs) -> httpx.Response:
    with patch("bcat.runner.Browser.resolve", return_value=browser):
        await asyncio.wait_for(run(settings, args, **kwargs), timeout=10)
    assert len(browser.fetches) == 1
    return await browser.fetches[0]


class TestRun:
    @pytest.mark.asyncio
    async def test_text_input_becomes_html_page(self, settings: Settings, tmp_path: Path) -> None:
        path = _write(tmp_path, "in.txt", b"a<b>\nc")
        browser = FakeBrowser()
        response = await _run_with(browser, settings, [path])
        assert browser.urls[0].startswith("http://127.0.0.1:")
        assert response.status_code == 200
        assert b"<title>bcat</title>" in response.content
        assert b"<pre>a&lt;b&gt;<br>c</pre>" in response.content

    @pytest.mark.asyncio
    async def test_html_input_passes_through(self, settings: Settings, tmp_path: Path) -> None:
        page = b"<html><body><h1>hi</h1></body></html>"
        path = _write(tmp_path, "in.html", page)
        response = await _run_with(FakeBrowser(), settings, [path])
        assert response.content == page

    @pytest.mark.asyncio
    async def test_stdin_and_files_concatenate(self, settings: Settings, tmp_path: Path) -> None:
        settings.display.format = "html"
        path = _write(tmp_path, "b.html", b"<b>file</b>")
        stdin = io.BytesIO(b"<i>stdin</i>")
        response = await _run_with(FakeBrowser(), settings, ["-", path], stdin=stdin)
        assert response.content == b"<i>stdin</i><b>file</b>"

    @pytest.mark.asyncio
    async def test_tee_echoes_raw_input(self, settings: Settings, tmp_path: Path) -> None:
        settings.pipeline.tee = True
        path = _write(tmp_path, "in.txt", b"x < y\n")
        stdout = io.BytesIO()
        response = await _run_with(FakeBrowser(), settings, [path], stdout=stdout)
        assert stdout.getvalue() == b"x < y\n"
        assert b"x &lt; y<br>" in response.content

    @pytest.mark.asyncio
    async def test_launch_failure_keeps_serving(self, settings: Settings, tmp_path: Path, caplog) -> None:
        path = _write(tmp_path, "in.html", b"<p>still here</p>")
        browser = FakeBrowser(error=ExecutableNotFoundError("xdg-open"))
        with caplog.at_level("ERROR", logger="bcat"):
            response = await _run_with(browser, settings, [path])
        assert response.content == b"<p>still here</p>"
        assert browser.urls[0] in caplog.text

    @pytest.mark.asyncio
    async def test_unsupported_browser_reads_nothing(self, settings: Settings) -> None:
        settings.launch.browser = "netscape"
        with patch("bcat.runner.ReaderCollection") as reader_cls:
            with pytest.raises(UnsupportedBrowserError):
                await run(settings, ["in.txt"])
        reader_cls.open.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_file(self, settings: Settings, tmp_path: Path) -> None:
        with patch("bcat.runner.Browser.resolve", return_value=MagicMock()):
            with pytest.raises(InputOpenError):
                await run(settings, [str(tmp_path / "missing.txt")])


class TestBuildFilters:
    def test_text_gets_escape_and_document(self, settings: Settings) -> None:
        assert len(build_filters(settings, "text")) == 2

    def test_html_without_title_is_untouched(self, settings: Settings) -> None:
        assert build_filters(settings, "html") == []

    def test_all_stages(self, settings: Settings) -> None:
        settings.pipeline.tee = True
        settings.display.ansi = True
        settings.display.title = "t"
        assert len(build_filters(settings, "text", io.BytesIO())) == 3
        assert len(build_filters(settings, "html", io.BytesIO())) == 3

    @pytest.mark.asyncio
    async def test_ansi_spans_close_inside_pre(self, settings: Settings, chunk_source, collect) -> None:
        settings.display.ansi = True
        stream = chain(chunk_source(b"\x1b[31mred"), *build_filters(settings, "text"))
        page = b"".join(await collect(stream))
        assert b'<pre><span style="color: #cd0000">red</span></pre>' in page
