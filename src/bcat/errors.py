"""Error hierarchy for bcat.

Every failure is terminal for the invocation: errors are raised where
they are detected and reported once by the CLI.
"""

from __future__ import annotations


class BcatError(Exception):
    """Base class for all bcat errors."""


class UnsupportedBrowserError(BcatError):
    """Raised when a browser name is not in the command table."""

    def __init__(self, browser: str) -> None:
        super().__init__(f"browser not supported: {browser}")
        self.browser = browser


class InputOpenError(BcatError):
    """Raised when an input path cannot be opened."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"cannot open {path}: {reason}")
        self.path = path


class InputReadError(BcatError):
    """Raised when reading from the input streams fails mid-stream."""


class InputCloseError(BcatError):
    """Raised when closing an input stream fails."""


class OutputWriteError(BcatError):
    """Raised when the tee side output cannot be written."""


class ServerBindError(BcatError):
    """Raised when the ephemeral server cannot bind its socket."""


class ExecutableNotFoundError(BcatError):
    """Raised when the browser executable is not on the search path."""

    def __init__(self, executable: str) -> None:
        super().__init__(f"executable not found in PATH: {executable}")
        self.executable = executable


class LaunchError(BcatError):
    """Raised when the browser process cannot be spawned."""
