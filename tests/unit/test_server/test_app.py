"""Tests for the FastAPI application and payload sources."""

from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from bcat.errors import InputReadError
from bcat.server.app import CompletingResponse, ReplayPayload, StreamPayload, create_app


class TestCreateApp:
    def test_get_root_returns_payload(self, chunk_source) -> None:
        app = create_app(StreamPayload(chunk_source(b"<p>", b"hello", b"</p>")))
        with TestClient(app) as client:
            response = client.get("/")
        assert response.status_code == 200
        assert response.content == b"<p>hello</p>"
        assert response.headers["content-type"].startswith("text/html")

    def test_other_routes_not_found(self, chunk_source) -> None:
        app = create_app(StreamPayload(chunk_source(b"x")))
        with TestClient(app) as client:
            assert client.get("/favicon.ico").status_code == 404
            assert client.get("/docs").status_code == 404

    def test_stream_payload_served_once(self, chunk_source) -> None:
        app = create_app(StreamPayload(chunk_source(b"once")))
        with TestClient(app) as client:
            assert client.get("/").content == b"once"
            assert client.get("/").status_code == 410

    def test_replay_payload_serves_every_request(self, chunk_source) -> None:
        app = create_app(ReplayPayload(chunk_source(b"again ", b"and again")))
        with TestClient(app) as client:
            for _ in range(3):
                assert client.get("/").content == b"again and again"

    def test_on_complete_runs_after_response(self, chunk_source) -> None:
        calls: list[str] = []

        def done() -> None:
            calls.append("done")

        app = create_app(StreamPayload(chunk_source(b"x")), on_complete=done)
        with TestClient(app) as client:
            client.get("/")
        assert calls == ["done"]


class TestCompletingResponse:
    @pytest.mark.asyncio
    async def test_hook_runs_when_client_goes_away(self, chunk_source) -> None:
        calls: list[str] = []
        response = CompletingResponse(chunk_source(b"a", b"b"), lambda: calls.append("done"))
        scope = {"type": "http", "method": "GET", "path": "/", "asgi": {"spec_version": "2.4"}}

        async def receive() -> dict:
            await asyncio.Event().wait()
            return {"type": "http.disconnect"}

        async def send(message: dict) -> None:
            if message["type"] == "http.response.body":
                raise OSError("connection reset")

        with pytest.raises(Exception):
            await response(scope, receive, send)
        assert calls == ["done"]


class TestStreamPayload:
    @pytest.mark.asyncio
    async def test_records_upstream_error(self, failing_source, collect) -> None:
        payload = StreamPayload(failing_source(InputReadError("gone"), b"part"))
        assert await collect(payload.stream()) == [b"part"]
        assert isinstance(payload.error, InputReadError)

    @pytest.mark.asyncio
    async def test_second_stream_rejected(self, chunk_source) -> None:
        payload = StreamPayload(chunk_source(b"x"))
        payload.stream()
        assert not payload.available
        with pytest.raises(RuntimeError):
            payload.stream()


class TestReplayPayload:
    @pytest.mark.asyncio
    async def test_late_reader_sees_everything(self, chunk_source, collect) -> None:
        payload = ReplayPayload(chunk_source(b"a", b"b", b"c"))
        first = await collect(payload.stream())
        second = await collect(payload.stream())
        assert first == second == [b"a", b"b", b"c"]
        assert payload.done
        await payload.stop()

    @pytest.mark.asyncio
    async def test_readers_follow_live_stream(self, collect) -> None:
        gate = asyncio.Event()

        async def source():
            yield b"early "
            await gate.wait()
            yield b"late"

        payload = ReplayPayload(source())
        await payload.start()
        readers = [asyncio.create_task(collect(payload.stream())) for _ in range(2)]
        await asyncio.sleep(0.01)
        assert not any(r.done() for r in readers)
        gate.set()
        results = await asyncio.wait_for(asyncio.gather(*readers), timeout=2)
        assert results == [[b"early ", b"late"], [b"early ", b"late"]]
        await payload.stop()

    @pytest.mark.asyncio
    async def test_records_upstream_error(self, failing_source, collect) -> None:
        payload = ReplayPayload(failing_source(InputReadError("gone"), b"part"))
        assert await collect(payload.stream()) == [b"part"]
        assert isinstance(payload.error, InputReadError)
        await payload.stop()
