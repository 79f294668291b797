"""Ephemeral HTTP server on a random loopback port.

The socket is bound when the server is constructed, so the URL is known
(and connections already queue in the listen backlog) before the browser
is launched and before uvicorn starts accepting.
"""

from __future__ import annotations

import enum
import logging
import socket

import uvicorn

from bcat.errors import ServerBindError
from bcat.server.app import Payload, create_app

logger = logging.getLogger(__name__)

LOOPBACK_HOST = "127.0.0.1"


class ServerState(str, enum.Enum):
    """Lifecycle of an ephemeral server."""

    BOUND = "bound"  # Socket bound, URL known
    SERVING = "serving"
    CLOSED = "closed"


class EphemeralServer:
    """Serves a single payload at ``/`` from an OS-assigned port.

    In one-shot mode the server shuts itself down once the first
    response has ended, even if the client disconnected early. In
    persist mode it runs until closed.

    Example usage::

        server = EphemeralServer(StreamPayload(chunks))
        browser.open(server.url)
        await server.serve()
    """

    def __init__(
        self,
        payload: Payload,
        host: str = LOOPBACK_HOST,
        persist: bool = False,
        log_level: str = "warning",
        title: str = "bcat",
    ) -> None:
        self._payload = payload
        self._persist = persist
        self._log_level = log_level
        self._socket = _bind(host)
        bound_host, port = self._socket.getsockname()[:2]
        self._url = f"http://{bound_host}:{port}"
        self._server: uvicorn.Server | None = None
        self._state = ServerState.BOUND
        self.app = create_app(
            payload,
            on_complete=None if persist else self.close,
            title=title,
        )
        logger.debug("Bound %s (persist=%s)", self._url, persist)

    @property
    def url(self) -> str:
        """Base URL (scheme, host and assigned port)."""
        return self._url

    @property
    def port(self) -> int:
        return self._socket.getsockname()[1]

    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def payload(self) -> Payload:
        return self._payload

    @property
    def started(self) -> bool:
        """Whether uvicorn has finished starting up."""
        return self._server is not None and self._server.started

    async def serve(self) -> None:
        """Accept connections until the server is closed.

        Raises:
            RuntimeError: If the server is not in the bound state.
        """
        if self._state is not ServerState.BOUND:
            raise RuntimeError(f"cannot serve from state {self._state.value}")

        config = uvicorn.Config(
            self.app,
            log_level=self._log_level,
            access_log=False,
        )
        self._server = uvicorn.Server(config)
        self._state = ServerState.SERVING
        logger.debug("Serving %s", self._url)
        try:
            await self._server.serve(sockets=[self._socket])
        finally:
            self._socket.close()
            self._state = ServerState.CLOSED
            logger.debug("Server %s closed", self._url)

    def close(self) -> None:
        """Stop serving. Safe to call in any state and more than once."""
        if self._server is not None:
            self._server.should_exit = True
            return
        if self._state is ServerState.BOUND:
            self._socket.close()
            self._state = ServerState.CLOSED


def _bind(host: str) -> socket.socket:
    """Bind and listen on ``host`` with an OS-assigned port."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, 0))
        sock.listen(socket.SOMAXCONN)
    except OSError as e:
        sock.close()
        raise ServerBindError(f"cannot bind {host}: {e}") from e
    return sock
