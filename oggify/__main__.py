"""
Entry point for `python -m oggify` and the `oggify` console script.
"""

import asyncio
import logging
import os
import sys

import typer
from rich.console import Console

from oggify.cli.app import app
from oggify.cli.formatters import format_error_with_suggestions
from oggify.exceptions import OggifyError


def _force_utf8_streams() -> None:
    # Windows consoles default to a legacy code page
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.reconfigure(encoding="utf-8")
        except (AttributeError, TypeError):
            pass


def main() -> None:
    if os.name == "nt":
        _force_utf8_streams()

    console = Console(stderr=True)
    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(130)
    except OggifyError as e:
        console.print(format_error_with_suggestions(e))
        sys.exit(1)
    except Exception as e:
        console.print(format_error_with_suggestions(e, {"type": "Unexpected"}))
        logging.getLogger("oggify").debug("Traceback:", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
