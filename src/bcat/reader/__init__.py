"""Input aggregation for bcat.

Public API:
    ReaderCollection -- concatenation of stdin, files, or a command's output
    Channel -- bounded async stream of byte chunks between stages
"""

from bcat.reader.channel import Channel
from bcat.reader.collection import STDIN_MARKER, ReaderCollection

__all__ = ["Channel", "ReaderCollection", "STDIN_MARKER"]
