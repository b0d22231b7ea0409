"""
Console script for accuripper.

Runs the Typer app and turns whatever escapes it into a process exit status:
0 for a clean run, 1 for a reported failure and 130 when interrupted.
"""

import asyncio
import logging
import os
import sys

import typer
from rich.console import Console

from accuripper.cli.app import app
from accuripper.cli.formatters import format_error_with_suggestions
from accuripper.exceptions import AccuRipperError

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

log = logging.getLogger("accuripper")


def _force_utf8_streams() -> None:
    # Channel and artist names are rendered as-is; cp1252 consoles choke on them.
    if os.name != "nt":
        return
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.reconfigure(encoding="utf-8")
        except (TypeError, AttributeError):
            pass


def _report(console: Console, error: BaseException) -> int:
    """Prints a failure that escaped the CLI and returns the exit status for it."""
    if isinstance(error, (KeyboardInterrupt, asyncio.CancelledError)):
        console.print("\n[yellow]Interrupted; the store keeps every batch saved so far.[/yellow]")
        return EXIT_INTERRUPTED
    if isinstance(error, AccuRipperError):
        console.print(format_error_with_suggestions(error))
    else:
        console.print(format_error_with_suggestions(error, {"type": "Unexpected"}))
        log.debug("Unhandled error in accuripper", exc_info=error)
    return EXIT_FAILURE


def main() -> None:
    _force_utf8_streams()
    console = Console(stderr=True)
    try:
        app()
    except (typer.Exit, typer.Abort):
        return
    except (KeyboardInterrupt, asyncio.CancelledError, Exception) as e:
        sys.exit(_report(console, e))


if __name__ == "__main__":
    main()
