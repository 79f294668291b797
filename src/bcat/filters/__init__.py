"""Streaming filter chain for bcat.

Each filter turns one async stream of byte chunks into another and runs
as its own task, so stages overlap and chunks keep their order.

Public API:
    chain -- compose filters left to right
    text_filter -- escape plain text into a <pre> block
    make_text_filter -- text_filter with ANSI conversion switched on or off
    tee_filter -- copy chunks to a side output
    ansi_filter -- turn ANSI colors into styled spans
    document_filter -- wrap content in an HTML document with a title
    sniff_format -- detect html vs text input
"""

from bcat.filters.ansi import ansi_filter
from bcat.filters.base import ChunkTransform, FilterFunc, chain, forward
from bcat.filters.detect import detect_format, sniff_format
from bcat.filters.document import document_filter, make_document_filter
from bcat.filters.tee import make_tee_filter, tee_filter
from bcat.filters.text import make_text_filter, text_filter

__all__ = [
    "ChunkTransform",
    "FilterFunc",
    "ansi_filter",
    "chain",
    "detect_format",
    "document_filter",
    "forward",
    "make_document_filter",
    "make_tee_filter",
    "make_text_filter",
    "sniff_format",
    "tee_filter",
    "text_filter",
]
