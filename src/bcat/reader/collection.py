"""Aggregation of input sources into a single byte stream.

Follows ``cat`` semantics: no arguments means standard input, ``-``
means standard input, anything else is a file path. Reads walk through
the sources in argument order, exhausting each before moving on.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import functools
import logging
import os
import subprocess
import sys
import threading
from typing import Any, BinaryIO, Callable, Coroutine, Sequence

from bcat.errors import InputCloseError, InputOpenError, InputReadError
from bcat.reader.channel import Channel

logger = logging.getLogger(__name__)

STDIN_MARKER = "-"
DEFAULT_CHUNK_SIZE = 4096


class ReaderCollection:
    """A readable, closeable concatenation of binary streams.

    Example usage::

        reader = ReaderCollection.open(["a.txt", "-", "b.txt"])
        try:
            async for chunk in reader.chunks():
                ...
        finally:
            reader.close()
    """

    def __init__(
        self,
        streams: Sequence[BinaryIO],
        process: subprocess.Popen[bytes] | None = None,
    ) -> None:
        self._streams = list(streams)
        self._index = 0
        self._process = process
        self._lock = threading.Lock()
        self._reading = False
        self._close_pending = False

    @classmethod
    def open(
        cls,
        args: Sequence[str],
        stdin: BinaryIO | None = None,
    ) -> ReaderCollection:
        """Open every path in ``args``.

        Args:
            args: Paths in reading order. Empty means standard input only.
            stdin: Stream used for standard input. Defaults to the
                   binary buffer of ``sys.stdin``.

        Raises:
            InputOpenError: If any path cannot be opened. Streams opened
                            before the failing one are closed again.
        """
        if stdin is None:
            stdin = sys.stdin.buffer

        if not args:
            return cls([stdin])

        streams: list[BinaryIO] = []
        for path in args:
            if path == STDIN_MARKER:
                streams.append(stdin)
                continue
            try:
                streams.append(open(path, "rb"))
            except OSError as e:
                for stream in streams:
                    if stream is not stdin:
                        stream.close()
                raise InputOpenError(path, e.strerror or str(e)) from e
            logger.debug("Opened input %s", path)

        return cls(streams)

    @classmethod
    def from_command(cls, argv: Sequence[str]) -> ReaderCollection:
        """Run ``argv`` and read its standard output.

        Raises:
            InputOpenError: If the command cannot be started.
        """
        if not argv:
            raise InputOpenError("<command>", "no command given")
        try:
            process = subprocess.Popen(list(argv), stdout=subprocess.PIPE)
        except OSError as e:
            raise InputOpenError(argv[0], e.strerror or str(e)) from e
        logger.debug("Started command %s (pid=%d)", argv[0], process.pid)
        assert process.stdout is not None
        return cls([process.stdout], process=process)

    def read(self, size: int = DEFAULT_CHUNK_SIZE) -> bytes:
        """Read up to ``size`` bytes, advancing to the next stream on EOF.

        Returns ``b""`` only once every stream is exhausted.
        """
        while self._index < len(self._streams):
            data = _raw_reader(self._streams[self._index])(size)
            if data:
                return data
            self._index += 1
        return b""

    def chunks(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        maxsize: int = 1,
    ) -> Channel:
        """Start a reader thread that feeds the streams into a channel.

        Must be called from inside a running event loop. Reads block in a
        daemon thread, so an input that never ends (a terminal, ``tail
        -f``) does not keep the process alive after the loop has finished.
        The channel ends on EOF; a read failure is delivered to the
        consumer as ``InputReadError``.
        """
        loop = asyncio.get_running_loop()
        channel = Channel(maxsize=maxsize)
        with self._lock:
            self._reading = True
        thread = threading.Thread(
            target=self._pump,
            args=(loop, channel, chunk_size),
            name="bcat-reader",
            daemon=True,
        )
        thread.start()
        return channel

    def _pump(
        self,
        loop: asyncio.AbstractEventLoop,
        channel: Channel,
        chunk_size: int,
    ) -> None:
        total = 0
        error: InputReadError | None = None
        try:
            while True:
                data = self.read(chunk_size)
                if not data:
                    break
                total += len(data)
                if not _call_in_loop(loop, channel.send(data)):
                    logger.debug("Event loop gone, reader stopped after %d bytes", total)
                    return
        except (OSError, ValueError) as e:
            logger.debug("Input read failed after %d bytes: %s", total, e)
            error = InputReadError(f"read failed: {e}")
            error.__cause__ = e
        finally:
            self._reading_done()

        if error is None:
            logger.debug("Input exhausted after %d bytes", total)
        _call_in_loop(loop, channel.close(error))

    def _reading_done(self) -> None:
        with self._lock:
            self._reading = False
            close_pending = self._close_pending
        if close_pending:
            try:
                self._close_streams()
            except InputCloseError as e:
                logger.warning("%s", e)

    def close(self) -> None:
        """Close every stream once.

        All streams are closed even when some fail. If the reader thread
        is still blocked on an input, the streams are closed by that
        thread once its read returns, and a running command is
        terminated; this call does not wait for either.

        Raises:
            InputCloseError: Wrapping the last close failure, if any.
        """
        with self._lock:
            deferred = self._reading
            self._close_pending = deferred
        if not deferred:
            self._close_streams()
            return

        if self._process is not None and self._process.poll() is None:
            logger.debug("Terminating command (pid=%d)", self._process.pid)
            self._process.terminate()
        logger.debug("Input still open, closing it when the reader stops")

    def _close_streams(self) -> None:
        error: Exception | None = None
        seen: set[int] = set()
        for stream in self._streams:
            if id(stream) in seen:
                continue
            seen.add(id(stream))
            try:
                stream.close()
            except OSError as e:
                error = e

        if self._process is not None:
            returncode = self._process.wait()
            logger.debug("Command exited with status %d", returncode)

        if error is not None:
            raise InputCloseError(f"close failed: {error}") from error


def _raw_reader(stream: BinaryIO) -> Callable[[int], bytes]:
    """Return a read function for ``stream``.

    Streams backed by a file descriptor are read with ``os.read``, so a
    read blocked in the reader thread holds no lock on the buffered
    object and never stalls a close or interpreter shutdown.
    """
    try:
        fd = stream.fileno()
    except (AttributeError, OSError, ValueError):
        return getattr(stream, "read1", stream.read)
    return functools.partial(os.read, fd)


def _call_in_loop(
    loop: asyncio.AbstractEventLoop,
    coro: Coroutine[Any, Any, None],
) -> bool:
    """Run ``coro`` on ``loop`` from another thread and wait for it.

    Returns False if the loop is closed or cancels the call while
    shutting down.
    """
    try:
        future = asyncio.run_coroutine_threadsafe(coro, loop)
    except RuntimeError:
        coro.close()
        return False
    try:
        future.result()
    except (concurrent.futures.CancelledError, RuntimeError):
        return False
    return True
