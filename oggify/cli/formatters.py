"""
Rich renderables for errors, settings, and the end-of-run report.
"""

from pathlib import Path
from typing import Any

import aiohttp
from rich import box
from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from oggify.exceptions import (
    AuthenticationError,
    ConfigurationError,
    LoadError,
    PenaltyCeilingError,
)
from oggify.models.config import OggifyConfig
from oggify.models.stats import DownloadStats
from oggify.utils.formatting import format_duration, format_size

MAX_LISTED_FAILURES = 20

# Checked in order, so subclasses must come before their bases
HINTS: list[tuple[type[BaseException], list[str]]] = [
    (
        AuthenticationError,
        [
            "Check the credentials your session factory uses.",
            "Stored credentials may have expired, log in again.",
        ],
    ),
    (
        ConfigurationError,
        [
            "Create a configuration with `oggify init <module:callable>`.",
            "Check the current settings with `oggify validate`.",
        ],
    ),
    (
        PenaltyCeilingError,
        [
            "The service keeps refusing decryption keys for this session.",
            "Give it some time before the next run, or raise "
            "`delay_between_items`.",
        ],
    ),
    (
        aiohttp.ClientError,
        [
            "The connection to the service failed.",
            "It may be down for a moment, try again later.",
        ],
    ),
    (LoadError, ["The item was skipped, the rest of the run is unaffected."]),
]
DEFAULT_HINTS = ["Rerun with -vv to see the debug log."]


def _hints_for(error: BaseException) -> list[str]:
    for error_class, hints in HINTS:
        if isinstance(error, error_class):
            return hints
    return DEFAULT_HINTS


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Wraps an error and some hints on what to do about it in a red panel."""
    headline = Text.assemble((f"{type(error).__name__}: ", "bold red"), str(error))
    parts: list[Any] = [
        headline,
        Text(""),
        Text("What to try", style="bold yellow"),
        *(Text(f"• {hint}") for hint in _hints_for(error)),
    ]
    if context:
        parts += [Text(""), Text(f"Context: {context}", style="dim")]

    return Panel(
        Group(*parts),
        title="[bold red]Error[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Shows the raw key/value pairs of the configuration file."""
    lines = [
        f"[cyan]{key}[/cyan] = {escape(str(value))}"
        for key, value in config_data.items()
    ]
    Console().print(
        Panel("\n".join(lines), title=f"[dim]{config_path}[/dim]", border_style="cyan")
    )


def _settings_table(config: OggifyConfig) -> Table:
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()
    rows = [
        ("Session Factory", f"[green]{escape(config.session_factory) or '-'}[/green]"),
        ("Output Directory", escape(config.output_dir)),
        ("Delay Between Items", f"{config.delay_between_items:g}s"),
        (
            "Penalty Backoff",
            f"+{config.penalty_step:g}s per denial, at most "
            f"{config.max_penalty_delay:g}s",
        ),
        ("Ogg Packager", escape(config.ogg_packager_command)),
        ("Raw Fallback", "on" if config.raw_fallback else "off"),
    ]
    for label, value in rows:
        table.add_row(label, value)
    return table


def print_validation_table(config: OggifyConfig):
    Console().print(
        Panel(
            _settings_table(config),
            title="[bold green]✓ Configuration OK[/bold green]",
            border_style="green",
        )
    )


def _counters(stats: DownloadStats) -> list[tuple[str, str]]:
    """Labelled counters for the report. Zero-valued extras are left out."""
    rows = [("Downloaded", f"[bold green]{stats.tracks_downloaded}[/bold green]")]
    optional = [
        ("Already Present", stats.tracks_skipped_exists, "yellow"),
        ("Failed Items", stats.tracks_failed, "bold red"),
        ("Failed Lines", stats.lines_failed, "red"),
        ("Key Retries", stats.key_denied_retries, "yellow"),
    ]
    rows += [
        (label, f"[{style}]{count}[/{style}]")
        for label, count, style in optional
        if count
    ]
    return rows


def _failures_table(failed_items: list[tuple[str, str]]) -> Table:
    table = Table(title="Failed Items", box=box.ROUNDED)
    table.add_column("URI", style="dim", no_wrap=True)
    table.add_column("Reason", style="red")
    for uri, reason in failed_items[:MAX_LISTED_FAILURES]:
        table.add_row(uri, escape(reason))
    if len(failed_items) > MAX_LISTED_FAILURES:
        table.caption = f"{len(failed_items) - MAX_LISTED_FAILURES} more not shown"
    return table


def print_summary_panel(stats: DownloadStats, duration_s: float):
    """Prints the end-of-run report, followed by any failed items."""
    console = Console()

    report = Table.grid(padding=(0, 2))
    report.add_column(style="bold cyan", justify="right")
    report.add_column()
    for label, value in _counters(stats):
        report.add_row(f"{label}:", value)
    report.add_row()
    report.add_row("Size:", f"[cyan]{format_size(stats.total_size_downloaded)}[/cyan]")
    report.add_row("Elapsed:", f"[blue]{format_duration(duration_s)}[/blue]")

    console.print()
    console.print(
        Panel(
            report,
            title="[bold]Run Finished[/bold]",
            border_style="red" if stats.tracks_failed else "green",
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    if stats.failed_items:
        console.print(_failures_table(stats.failed_items))
    console.print()
