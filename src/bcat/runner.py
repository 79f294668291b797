"""Pipeline orchestration.

Wires the components in order: browser resolution, input aggregation,
filter chain, ephemeral server, browser launch, serving. Every error is
raised to the caller except a failed browser launch, which is logged
together with the URL while the server keeps running.
"""

from __future__ import annotations

import logging
import sys
from typing import AsyncIterator, BinaryIO, Sequence

from bcat.browser.launcher import Browser
from bcat.config.settings import Settings
from bcat.errors import ExecutableNotFoundError, LaunchError
from bcat.filters import (
    FilterFunc,
    ansi_filter,
    chain,
    make_document_filter,
    make_tee_filter,
    make_text_filter,
    sniff_format,
)
from bcat.filters.detect import InputFormat
from bcat.reader.collection import ReaderCollection
from bcat.server.app import Payload, ReplayPayload, StreamPayload
from bcat.server.ephemeral import EphemeralServer

logger = logging.getLogger(__name__)


def build_filters(
    settings: Settings,
    input_format: InputFormat,
    tee_output: BinaryIO | None = None,
) -> list[FilterFunc]:
    """Select the filter stages for the given settings and input format.

    Order: tee (raw input), text escaping with ANSI conversion inside
    the <pre> block, document wrapper. HTML input gets ANSI conversion
    on its own, and a document only when a title was asked for.
    """
    filters: list[FilterFunc] = []
    if settings.pipeline.tee:
        filters.append(make_tee_filter(tee_output or sys.stdout.buffer))
    if input_format == "text":
        filters.append(make_text_filter(ansi=settings.display.ansi))
    elif settings.display.ansi:
        filters.append(ansi_filter)
    if input_format == "text" or settings.display.title:
        filters.append(make_document_filter(settings.display.title))
    return filters


def build_payload(settings: Settings, stream: AsyncIterator[bytes]) -> Payload:
    if settings.server.persist:
        return ReplayPayload(stream)
    return StreamPayload(stream)


async def run(
    settings: Settings,
    args: Sequence[str] = (),
    command: bool = False,
    stdin: BinaryIO | None = None,
    stdout: BinaryIO | None = None,
) -> None:
    """Pipe the inputs named by ``args`` to a browser.

    Args:
        settings: Resolved settings (config file, environment and flags).
        args: Input paths, or the command line to run when ``command``.
        command: Treat ``args`` as a command whose output is the input.
        stdin: Stream standing in for standard input.
        stdout: Side output for tee mode.

    Raises:
        BcatError: On any failure other than launching the browser.
    """
    browser = Browser.resolve(settings.launch.browser, settings.launch.command)

    if command:
        reader = ReaderCollection.from_command(args)
    else:
        reader = ReaderCollection.open(args, stdin=stdin)

    try:
        source: AsyncIterator[bytes] = reader.chunks(
            chunk_size=settings.pipeline.chunk_size,
            maxsize=settings.pipeline.channel_size,
        )

        input_format = settings.display.format
        if input_format == "auto":
            input_format, source = await sniff_format(source)

        stream = chain(source, *build_filters(settings, input_format, stdout))
        payload = build_payload(settings, stream)
        server = EphemeralServer(
            payload,
            host=settings.server.host,
            persist=settings.server.persist,
            log_level=settings.server.log_level,
            title=settings.display.title or "bcat",
        )
        logger.info("Serving %s input at %s", input_format, server.url)

        try:
            browser.open(server.url)
        except (ExecutableNotFoundError, LaunchError) as e:
            logger.error("%s; open %s manually", e, server.url)

        await server.serve()
        if payload.error is not None:
            raise payload.error
    finally:
        reader.close()
