"""Ephemeral HTTP server for bcat.

Public API:
    EphemeralServer -- loopback server on an OS-assigned port
    StreamPayload -- serve the live stream once
    ReplayPayload -- record the stream and serve it to every request
    create_app -- the FastAPI application with its single route
"""

from bcat.server.app import Payload, ReplayPayload, StreamPayload, create_app
from bcat.server.ephemeral import EphemeralServer, ServerState

__all__ = [
    "EphemeralServer",
    "Payload",
    "ReplayPayload",
    "ServerState",
    "StreamPayload",
    "create_app",
]
