"""Shared test fixtures for the bcat test suite.

Provides chunk sources, a collector for async streams, and settings
objects isolated from the user's config file and environment.
"""

from __future__ import annotations

from typing import AsyncIterator, Awaitable, Callable, Iterator

import pytest

from bcat.config.settings import Settings


# ---------------------------------------------------------------------------
# Stream Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def chunk_source() -> Callable[..., AsyncIterator[bytes]]:
    """Factory for an async stream yielding the given chunks in order."""

    def make(*chunks: bytes) -> AsyncIterator[bytes]:
        async def gen() -> AsyncIterator[bytes]:
            for chunk in chunks:
                yield chunk

        return gen()

    return make


@pytest.fixture
def failing_source() -> Callable[..., AsyncIterator[bytes]]:
    """Factory for a stream that yields chunks and then raises ``error``."""

    def make(error: Exception, *chunks: bytes) -> AsyncIterator[bytes]:
        async def gen() -> AsyncIterator[bytes]:
            for chunk in chunks:
                yield chunk
            raise error

        return gen()

    return make


@pytest.fixture
def collect() -> Callable[[AsyncIterator[bytes]], Awaitable[list[bytes]]]:
    """Drain an async stream into a list of chunks."""

    async def drain(stream: AsyncIterator[bytes]) -> list[bytes]:
        return [chunk async for chunk in stream]

    return drain


# ---------------------------------------------------------------------------
# Settings Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove every BCAT_ variable from the environment."""
    import os

    for key in list(os.environ):
        if key.startswith("BCAT_"):
            monkeypatch.delenv(key)


@pytest.fixture
def settings(clean_env: None) -> Settings:
    """Default settings, unaffected by the environment."""
    return Settings()


@pytest.fixture(autouse=True)
def reset_bcat_logger() -> Iterator[None]:
    """Drop handlers installed by setup_logging during a test."""
    import logging

    yield
    logger = logging.getLogger("bcat")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
