"""FastAPI application serving the piped content at ``/``.

The content comes from a payload. A ``StreamPayload`` hands the live
chunk stream to exactly one response without buffering; a
``ReplayPayload`` records the stream so any number of requests (browser
reloads) can read it from the start.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse, Response, StreamingResponse
from starlette.types import Receive, Scope, Send

from bcat.errors import BcatError

logger = logging.getLogger(__name__)

MEDIA_TYPE = "text/html"


class Payload(ABC):
    """Source of the bytes returned for ``GET /``."""

    def __init__(self) -> None:
        self.error: BcatError | None = None

    @property
    def available(self) -> bool:
        """Whether another response can still be served."""
        return True

    async def start(self) -> None:
        """Called once when the server starts."""

    async def stop(self) -> None:
        """Called once when the server shuts down."""

    @abstractmethod
    def stream(self) -> AsyncIterator[bytes]:
        """Return the chunks for one response."""
        ...


class StreamPayload(Payload):
    """Serve the live stream once, chunk by chunk."""

    def __init__(self, source: AsyncIterator[bytes]) -> None:
        super().__init__()
        self._source = source
        self._claimed = False

    @property
    def available(self) -> bool:
        return not self._claimed

    def stream(self) -> AsyncIterator[bytes]:
        if self._claimed:
            raise RuntimeError("stream payload already served")
        self._claimed = True
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[bytes]:
        total = 0
        try:
            async for chunk in self._source:
                total += len(chunk)
                yield chunk
        except BcatError as e:
            logger.error("Stream failed after %d bytes: %s", total, e)
            self.error = e
            return
        logger.debug("Served %d bytes", total)


class ReplayPayload(Payload):
    """Record the stream and replay it to every request.

    Requests arriving before the stream has ended receive what has been
    recorded so far and then follow the live stream to its end.
    """

    def __init__(self, source: AsyncIterator[bytes]) -> None:
        super().__init__()
        self._source = source
        self._chunks: list[bytes] = []
        self._done = False
        self._changed = asyncio.Condition()
        self._task: asyncio.Task[None] | None = None

    @property
    def done(self) -> bool:
        return self._done

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._record())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _record(self) -> None:
        try:
            async for chunk in self._source:
                async with self._changed:
                    self._chunks.append(chunk)
                    self._changed.notify_all()
        except BcatError as e:
            logger.error("Stream failed after %d chunks: %s", len(self._chunks), e)
            self.error = e
        finally:
            async with self._changed:
                self._done = True
                self._changed.notify_all()
        logger.debug("Recorded %d bytes", sum(len(c) for c in self._chunks))

    def stream(self) -> AsyncIterator[bytes]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[bytes]:
        await self.start()
        index = 0
        while True:
            async with self._changed:
                while index >= len(self._chunks) and not self._done:
                    await self._changed.wait()
                pending = self._chunks[index:]
                finished = self._done
            for chunk in pending:
                yield chunk
            index += len(pending)
            if finished and index >= len(self._chunks):
                return


class CompletingResponse(StreamingResponse):
    """Streaming response that runs a hook once it has ended.

    The hook runs after the body was fully sent, and also when the
    client disconnected or the request was cancelled mid-stream.
    """

    def __init__(
        self,
        content: AsyncIterator[bytes],
        on_complete: Callable[[], None] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(content, **kwargs)
        self.on_complete = on_complete

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            if self.on_complete is not None:
                logger.debug("Response ended")
                self.on_complete()


def create_app(
    payload: Payload,
    on_complete: Callable[[], None] | None = None,
    title: str = "bcat",
) -> FastAPI:
    """Create the application with its single route.

    Args:
        payload: Where the response body comes from.
        on_complete: Called when a response body ends, whether it was
                     fully sent or the client went away mid-stream.
        title: Application title shown in the OpenAPI metadata.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await payload.start()
        yield
        await payload.stop()

    app = FastAPI(
        title=title,
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.payload = payload

    @app.get("/")
    async def index() -> Response:
        if not payload.available:
            return PlainTextResponse("content already served\n", status_code=410)
        return CompletingResponse(payload.stream(), on_complete, media_type=MEDIA_TYPE)

    return app

