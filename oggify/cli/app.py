"""
The `oggify` command line: configuration commands and the download run.
"""

import asyncio
import logging
import os
import sys
import time
from pathlib import Path
from typing import AsyncIterator, Iterable

import typer
from rich.console import Console
from rich.logging import RichHandler

from oggify import __version__
from oggify.api.session import create_session
from oggify.core.download_manager import TERMINATOR, DownloadManager
from oggify.exceptions import OggifyError, PenaltyCeilingError
from oggify.storage.config_manager import ConfigManager

from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_summary_panel,
    print_validation_table,
)

console = Console(stderr=True)

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("oggify")

app = typer.Typer(
    name="oggify",
    help=(
        "Download tracks, albums, playlists, shows, and episodes into grouped"
        " folders. Feed identifiers on stdin, one per line, and finish with 'done'."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def default_config_file() -> Path:
    """$OGGIFY_CONFIG if set, else config.ini in the per-user config folder."""
    if override := os.getenv("OGGIFY_CONFIG"):
        return Path(override).expanduser()
    if os.name == "nt":
        root = os.getenv("APPDATA") or "~/AppData/Roaming"
    else:
        root = os.getenv("XDG_CONFIG_HOME") or "~/.config"
    return Path(root).expanduser() / "oggify" / "config.ini"


CONFIG_FILE = default_config_file()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True, help="Show debug output with -vv."
    ),
    version: bool = typer.Option(
        False, "--version", is_eager=True, help="Print the version and exit."
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Print the configuration file and exit."
    ),
):
    """oggify downloader CLI"""
    if version:
        console.print(f"[bold]oggify[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    logging.getLogger("oggify").setLevel(logging.DEBUG if verbose >= 2 else logging.INFO)

    if show_config:
        try:
            print_config(CONFIG_FILE, ConfigManager(CONFIG_FILE).get_config_as_dict())
        except OggifyError as e:
            console.print(f"[red]✗ {e}[/red]")
            raise typer.Exit(code=1) from e
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    session_factory: str = typer.Argument(
        ...,
        metavar="<MODULE:CALLABLE>",
        help="Session implementation to load, e.g. 'my_session:create'.",
    ),
    output_dir: str = typer.Option(
        ".", "-o", "--output-dir", help="Folder the group folders are created in."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Replace an existing file without asking."
    ),
):
    """Write a new configuration file."""
    if CONFIG_FILE.exists() and not force:
        typer.confirm(f"'{CONFIG_FILE}' exists. Replace it?", abort=True)

    try:
        ConfigManager(CONFIG_FILE).save_new_config(
            {"session_factory": session_factory, "output_dir": output_dir}
        )
    except OggifyError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1) from e
    console.print(f"[bold green]✓ Wrote '{CONFIG_FILE}'[/bold green]")
    console.print("Next: [cyan]echo 'spotify:track:<id>' | oggify download[/cyan]")


async def _stdin_lines() -> AsyncIterator[str]:
    """Yields stdin lines without blocking the event loop."""
    while line := await asyncio.to_thread(sys.stdin.readline):
        yield line


async def _iter_lines(lines: Iterable[str]) -> AsyncIterator[str]:
    for line in lines:
        yield line


async def _run_download(cli_options: dict, identifiers: list[str]) -> None:
    config = ConfigManager(CONFIG_FILE).load_config(cli_options)
    async with create_session(config) as session:
        log.debug("Session established")
        manager = DownloadManager(config, session)
        if identifiers:
            lines = _iter_lines([*identifiers, TERMINATOR])
        else:
            if sys.stdin.isatty():
                console.print(
                    f"[dim]One identifier per line, '{TERMINATOR}' to start.[/dim]"
                )
            lines = _stdin_lines()

        started = time.monotonic()
        try:
            await manager.run(lines)
        finally:
            print_summary_panel(manager.stats, time.monotonic() - started)


@app.command()
def download(
    identifiers: list[str] = typer.Argument(  # noqa: B008
        None, help="Identifiers or links. Read from stdin when none are given."
    ),
    output_dir: str | None = typer.Option(
        None, "-o", "--output-dir", help="Override the configured output folder."
    ),
    delay: float | None = typer.Option(
        None, "-d", "--delay", help="Seconds to wait between items of one group."
    ),
    raw_fallback: bool | None = typer.Option(
        None,
        "--raw-fallback/--no-raw-fallback",
        help="Keep untagged audio when the packaging helper fails.",
    ),
):
    """Resolve identifiers, then download every grouped item."""
    overrides = {
        "output_dir": output_dir,
        "delay_between_items": delay,
        "raw_fallback": raw_fallback,
    }
    cli_options = {key: value for key, value in overrides.items() if value is not None}

    try:
        asyncio.run(_run_download(cli_options, identifiers or []))
    except PenaltyCeilingError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e
    except OggifyError as e:
        console.print(f"[bold red]✗ {e}[/bold red]")
        raise typer.Exit(code=1) from e


@app.command()
def validate():
    """Load the configuration and show the resulting settings."""
    try:
        config = ConfigManager(CONFIG_FILE).load_config()
    except OggifyError as e:
        console.print(f"[red]✗ Invalid configuration: {e}[/red]")
        raise typer.Exit(code=1) from e
    print_validation_table(config)
