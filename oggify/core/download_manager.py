"""
The main orchestrator: ingests identifier lines, then downloads every grouped
item one at a time with pacing and penalty backoff.
"""

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import AsyncIterable, Awaitable, Callable, Optional

from rich.markup import escape

from oggify.api.session import RemoteSession
from oggify.exceptions import KeyDeniedError, OggifyError
from oggify.media.packager import Packager, build_packager
from oggify.models.catalog import TrackMetadata
from oggify.models.config import OggifyConfig
from oggify.models.formats import file_extension
from oggify.models.stats import DownloadStats
from oggify.utils.backoff import PenaltyBackoff
from oggify.utils.path import create_dir, track_filename

from .grouping import GroupingStore
from .identifier import ItemIdentifier, parse_item_identifier
from .resolver import CatalogResolver
from .track_loader import TrackLoader

log = logging.getLogger(__name__)

TERMINATOR = "done"

Sleeper = Callable[[float], Awaitable[None]]


class RunState(Enum):
    IDLE = "idle"
    INGESTING = "ingesting"
    PROCESSING = "processing"
    DONE = "done"


class DownloadManager:
    """Orchestrates the entire download process."""

    def __init__(
        self,
        config: OggifyConfig,
        session: RemoteSession,
        track_loader: Optional[TrackLoader] = None,
        packager: Optional[Packager] = None,
        stats: Optional[DownloadStats] = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.config = config
        self.session = session
        self.base_path = Path(config.output_dir)
        self.resolver = CatalogResolver(session)
        self.track_loader = track_loader or TrackLoader(session)
        self.packager = packager or build_packager(config)
        self.stats = stats or DownloadStats()
        self.store = GroupingStore()
        self.backoff = PenaltyBackoff(config.penalty_step, config.max_penalty_delay)
        self.state = RunState.IDLE
        self._sleep = sleep

    # Ingestion phase

    async def load_item(self, line: str) -> None:
        """
        Parses one line, resolves it, and adds its members to the store.
        Lines without a recognized identifier are ignored.

        Raises:
            InvalidIdentifierError: If the identifier cannot be decoded.
            RemoteError: If a collection lookup fails.
        """
        identifier = parse_item_identifier(line)
        if identifier is None:
            log.debug(f"Ignoring line without identifier: {escape(line)}")
            return

        resolved = await self.resolver.resolve(identifier)
        if resolved is None:
            return
        key, members = resolved
        added = self.store.ingest(key, members)
        self.stats.lines_ingested += 1
        log.info(f"Queued {added} new item(s) under [cyan]{escape(key)}[/cyan]")

    async def ingest_lines(self, lines: AsyncIterable[str]) -> None:
        """
        Feeds lines to `load_item` until a 'done' line or the end of input.
        A failing line is logged and skipped.
        """
        self.state = RunState.INGESTING
        async for raw_line in lines:
            line = raw_line.strip()
            if line == TERMINATOR:
                break
            if not line:
                continue
            try:
                await self.load_item(line)
            except OggifyError as e:
                self.stats.lines_failed += 1
                log.error(f"[red]Failed to load item: {escape(str(e))}[/red]")

    # Processing phase

    async def process_items(self) -> None:
        """
        Drains the store and downloads every group's items in turn.

        Raises:
            PenaltyCeilingError: If the key-denied penalty exceeds its ceiling.
        """
        self.state = RunState.PROCESSING
        if not self.store:
            log.warning("[yellow]No items to process.[/yellow]")
            self.state = RunState.DONE
            return

        grouped_ids = self.store.drain()
        for group, identifiers in grouped_ids.items():
            if not identifiers:
                continue
            dir_path = self.base_path / group
            try:
                create_dir(dir_path)
            except OSError as e:
                log.error(f"[red]Cannot create '{escape(str(dir_path))}': {e}[/red]")
                for identifier in identifiers:
                    self.stats.record_failure(identifier.uri, str(e))
                continue

            log.info(
                f"\n[bold cyan]▶ {escape(group)}[/] ({len(identifiers)} items)"
            )
            for index, identifier in enumerate(identifiers):
                await self.process_single_item(identifier, dir_path)
                if index != len(identifiers) - 1:
                    await self._sleep(self.config.delay_between_items)

        self.state = RunState.DONE

    async def process_single_item(
        self, identifier: ItemIdentifier, dir_path: Path
    ) -> bool:
        """
        Downloads one item, retrying on key denials with an escalating delay.

        Returns:
            True if the item was saved or already present, False if abandoned.

        Raises:
            PenaltyCeilingError: If the penalty delay exceeds its ceiling.
        """
        while True:
            try:
                await self.save_audio_item(identifier, dir_path)
            except KeyDeniedError:
                delay = self.backoff.on_key_denied()
                self.stats.key_denied_retries += 1
                log.warning(
                    f"[yellow]Audio key response error. Wait '{delay:.0f}' "
                    "seconds and retrying...[/yellow]"
                )
                await self._sleep(delay)
            except OggifyError as e:
                reason = f"{type(e).__name__}: {e}"
                self.stats.record_failure(identifier.uri, reason)
                log.error(
                    f"[red]  ✗ Failed:[/] {identifier.uri} ({escape(reason)})",
                    exc_info=log.getEffectiveLevel() == logging.DEBUG,
                )
                return False
            else:
                self.backoff.reset()
                return True

    async def save_audio_item(self, identifier: ItemIdentifier, dir_path: Path) -> None:
        """
        Loads one item and packages it into `dir_path`. An existing
        destination file is left untouched.
        """
        loaded = await self.track_loader.load_track(identifier)
        audio_item = loaded.audio_item
        metadata = TrackMetadata.from_audio_item(audio_item)

        extension = file_extension(loaded.audio_format)
        full_path = dir_path / track_filename(
            audio_item.name, metadata.contributors, extension
        )
        if full_path.exists():
            self.stats.tracks_skipped_exists += 1
            log.warning(
                f"  [yellow]○ File '{escape(str(full_path))}' already exists. "
                "Skipping[/yellow]"
            )
            return

        await self.packager.package(
            loaded.audio_bytes, loaded.audio_format, metadata, full_path
        )
        self.stats.tracks_downloaded += 1
        self.stats.total_size_downloaded += len(loaded.audio_bytes)
        log.info(f"  [green]✓ Saved:[/] [dim]{escape(full_path.name)}[/dim]")

    async def run(self, lines: AsyncIterable[str]) -> DownloadStats:
        """Runs ingestion followed by processing and returns the session stats."""
        await self.ingest_lines(lines)
        await self.process_items()
        return self.stats
