"""Tee filter: echo chunks to a side output while passing them on."""

from __future__ import annotations

import functools
from typing import AsyncIterator, BinaryIO

from bcat.errors import OutputWriteError
from bcat.filters.base import ChunkTransform, FilterFunc, forward
from bcat.reader.channel import Channel


class TeeTransform(ChunkTransform):
    """Write every chunk to ``outfile`` unchanged and return it as is."""

    def __init__(self, outfile: BinaryIO) -> None:
        self._outfile = outfile
        self.bytes_written = 0

    def feed(self, chunk: bytes) -> bytes:
        try:
            self._outfile.write(chunk)
            self._outfile.flush()
        except OSError as e:
            raise OutputWriteError(f"tee write failed: {e}") from e
        self.bytes_written += len(chunk)
        return chunk


def tee_filter(source: AsyncIterator[bytes], outfile: BinaryIO) -> Channel:
    """Pass ``source`` through, copying each chunk to ``outfile``."""
    return forward(source, TeeTransform(outfile))


def make_tee_filter(outfile: BinaryIO) -> FilterFunc:
    """Bind ``outfile`` so the tee can be used in :func:`chain`."""
    return functools.partial(tee_filter, outfile=outfile)
