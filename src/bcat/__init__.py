"""bcat -- pipe to browser utility.

Reads standard input, files, or the output of a command, optionally
turns plain text into HTML, and serves the result from an ephemeral
loopback HTTP server that a freshly launched browser window points at.
"""

__version__ = "0.1.0"
