"""Browser resolution and launching.

Browsers are looked up by name in a static, platform-specific command
table unless an explicit launch command is configured (``launch.command``
in the config file or ``BCAT_COMMAND`` in the environment). Launching
runs ``<command> <url>`` as a detached process and does not wait for it.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys
from types import MappingProxyType
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field

from bcat.errors import ExecutableNotFoundError, LaunchError, UnsupportedBrowserError

logger = logging.getLogger(__name__)

DEFAULT_BROWSER = "default"

# Commands are split on whitespace, so they must not contain quoted
# arguments. macOS applications are addressed by bundle identifier.
_DARWIN_COMMANDS = {
    "default": "open",
    "safari": "open -b com.apple.Safari",
    "firefox": "open -b org.mozilla.firefox",
    "chrome": "open -b com.google.Chrome",
    "google-chrome": "open -b com.google.Chrome",
    "chromium": "open -b org.chromium.Chromium",
    "opera": "open -b com.operasoftware.Opera",
    "brave": "open -b com.brave.Browser",
    "edge": "open -b com.microsoft.edgemac",
}

_LINUX_COMMANDS = {
    "default": "xdg-open",
    "firefox": "firefox",
    "chrome": "google-chrome",
    "google-chrome": "google-chrome",
    "chromium": "chromium",
    "opera": "opera",
    "brave": "brave-browser",
    "epiphany": "epiphany",
    "konqueror": "konqueror",
}

_WINDOWS_COMMANDS = {
    "default": "explorer",
    "firefox": "firefox",
    "chrome": "chrome",
    "edge": "msedge",
}


def _platform_commands(platform: str) -> Mapping[str, str]:
    if platform == "darwin":
        table = _DARWIN_COMMANDS
    elif platform.startswith("win"):
        table = _WINDOWS_COMMANDS
    else:
        table = _LINUX_COMMANDS
    return MappingProxyType(dict(table))


COMMANDS: Mapping[str, str] = _platform_commands(sys.platform)


class BrowserDescriptor(BaseModel):
    """A browser name and the command template that launches it."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Lower-cased browser name")
    command: str = Field(min_length=1, description="Launch command; the URL is appended")


def lookup_command(browser: str, commands: Mapping[str, str] = COMMANDS) -> str:
    """Return the launch command for ``browser``.

    Raises:
        UnsupportedBrowserError: If the name is not in the table.
    """
    try:
        return commands[browser.lower()]
    except KeyError:
        raise UnsupportedBrowserError(browser) from None


class Browser:
    """Launches a browser window pointed at a URL."""

    def __init__(self, descriptor: BrowserDescriptor) -> None:
        self._descriptor = descriptor

    @classmethod
    def resolve(
        cls,
        browser: str = DEFAULT_BROWSER,
        command: str | None = None,
        commands: Mapping[str, str] = COMMANDS,
    ) -> Browser:
        """Build a browser from its name, or from an explicit command.

        A non-empty ``command`` wins over the table lookup, so any name
        is accepted when it is given.

        Raises:
            UnsupportedBrowserError: If there is no override and the
                                     name is not in the table.
        """
        name = browser.lower()
        if not command:
            command = lookup_command(name, commands)
        logger.debug("Resolved browser %s to %r", name, command)
        return cls(BrowserDescriptor(name=name, command=command))

    @property
    def name(self) -> str:
        return self._descriptor.name

    @property
    def command(self) -> str:
        return self._descriptor.command

    @property
    def descriptor(self) -> BrowserDescriptor:
        return self._descriptor

    def argv(self, url: str) -> list[str]:
        """Split ``<command> <url>`` into process arguments."""
        return f"{self._descriptor.command} {url}".split()

    def executable(self) -> str:
        """Locate the launch executable on ``PATH``.

        Raises:
            ExecutableNotFoundError: If it cannot be found.
        """
        program = self._descriptor.command.split()[0]
        path = shutil.which(program)
        if path is None:
            raise ExecutableNotFoundError(program)
        return path

    def open(self, url: str) -> subprocess.Popen[bytes]:
        """Spawn the browser on ``url`` without waiting for it.

        The process inherits the working directory and environment, and
        gets its own session so an interrupt of bcat leaves it running.

        Raises:
            ExecutableNotFoundError: If the executable is not on ``PATH``.
            LaunchError: If the process cannot be created.
        """
        args = self.argv(url)
        binary = self.executable()
        try:
            process = subprocess.Popen(
                args,
                executable=binary,
                cwd=os.getcwd(),
                env=os.environ.copy(),
                stdin=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            raise LaunchError(f"cannot launch {binary}: {e}") from e
        logger.debug("Launched %s (pid=%d) on %s", binary, process.pid, url)
        return process
