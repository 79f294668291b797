"""Command-line interface for bcat and btee.

Parses flags, merges them over the loaded settings, and runs the
pipeline. Invoked as ``btee`` (or with ``--tee``) all input is also
echoed to standard output.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import yaml
from pydantic import ValidationError

from bcat import __version__

if TYPE_CHECKING:
    from bcat.config.settings import Settings

logger = logging.getLogger(__name__)

USAGE = """\
%(prog)s [-htp] [-a] [-b <browser>] [-T <title>] [<file>]...
       %(prog)s [-htp] [-a] [-b <browser>] [-T <title>] -c command...
       btee <options> [<file>]..."""

DESCRIPTION = """\
Pipe to browser utility. Read standard input, possibly one or more <file>s,
and write concatenated / formatted output to browser. When invoked as btee,
also write all input back to standard output."""

TEE_PROGRAM = "btee"


def parse_args(argv: list[str] | None = None, prog: str | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog=prog or "bcat",
        usage=USAGE,
        description=DESCRIPTION,
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: ~/.bcat.yaml)",
    )

    display = parser.add_argument_group("display options")
    display.add_argument(
        "-b", "--browser", default=None,
        help="open <browser> instead of system default browser",
    )
    display.add_argument(
        "-T", "--title", default=None,
        help="use <text> as the browser title",
    )
    display.add_argument(
        "-a", "--ansi", action="store_true", default=None,
        help="convert ANSI (color) escape sequences to HTML",
    )

    fmt = parser.add_argument_group("input format (auto detected by default)")
    exclusive = fmt.add_mutually_exclusive_group()
    exclusive.add_argument(
        "--html", dest="format", action="store_const", const="html",
        help="input is already HTML encoded, doc or fragment",
    )
    exclusive.add_argument(
        "--text", dest="format", action="store_const", const="text",
        help="input is unencoded text",
    )

    misc = parser.add_argument_group("misc options")
    misc.add_argument(
        "-t", "--tee", action="store_true", default=None,
        help="also write all input to standard output",
    )
    misc.add_argument(
        "-c", "--command", action="store_true",
        help="read the standard output of command",
    )
    misc.add_argument(
        "-p", "--persist", action="store_true", default=None,
        help="serve until interrupted, allowing reload",
    )
    misc.add_argument(
        "-d", "--debug", action="store_true",
        help="enable verbose debug logging on stderr",
    )
    parser.add_argument(
        "args", nargs=argparse.REMAINDER,
        help="files to read (- for standard input), or the command with -c",
    )

    args = parser.parse_args(argv)
    if args.command and not args.args:
        parser.error("-c requires a command")
    return args


def apply_args(settings: Settings, args: argparse.Namespace) -> None:
    """Override settings with the flags given on the command line."""
    if args.browser is not None:
        settings.launch.browser = args.browser
    if args.title is not None:
        settings.display.title = args.title
    if args.ansi:
        settings.display.ansi = True
    if args.format is not None:
        settings.display.format = args.format
    if args.tee:
        settings.pipeline.tee = True
    if args.persist:
        settings.server.persist = True
    if args.debug:
        settings.logging.level = "DEBUG"
        settings.server.log_level = "info"


def main(argv: list[str] | None = None, prog: str | None = None) -> int:
    """Main entry point for the bcat CLI. Returns the exit status."""
    if prog is None:
        prog = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "bcat"
        if prog not in ("bcat", TEE_PROGRAM):
            prog = "bcat"
    args = parse_args(argv, prog)

    from bcat.config.settings import load_settings
    from bcat.errors import BcatError
    from bcat.runner import run
    from bcat.utils.logging import setup_logging

    try:
        settings = load_settings(args.config)
    except (ValidationError, yaml.YAMLError, OSError) as e:
        print(f"{prog}: error: invalid configuration: {e}", file=sys.stderr)
        return 2

    if prog == TEE_PROGRAM:
        settings.pipeline.tee = True
    apply_args(settings, args)

    setup_logging(settings.logging)
    logger.debug("Running with %s", settings.model_dump())

    try:
        asyncio.run(run(settings, args.args, command=args.command))
    except BcatError as e:
        print(f"{prog}: error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


def tee_main(argv: list[str] | None = None) -> int:
    """Entry point for ``btee``."""
    return main(argv, prog=TEE_PROGRAM)


if __name__ == "__main__":
    sys.exit(main())
