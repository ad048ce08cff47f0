"""
Hands finished audio to the packaging step that writes the final file.
"""

import asyncio
import logging
import shlex
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping, Optional

import aiofiles
from rich.markup import escape

from oggify.exceptions import LocalIOError, PackagingError
from oggify.models.catalog import TrackMetadata
from oggify.models.config import DEFAULT_OGG_PACKAGER, OggifyConfig
from oggify.models.formats import AudioFileFormat, file_extension

log = logging.getLogger(__name__)


class Packager(ABC):
    """Writes audio bytes plus metadata to a destination file."""

    @abstractmethod
    async def package(
        self,
        audio_bytes: bytes,
        audio_format: AudioFileFormat,
        metadata: TrackMetadata,
        destination: Path,
    ) -> None:
        """Writes the final file, or raises on failure."""


class ExternalPackager(Packager):
    """
    Pipes the audio into an external executable chosen by file extension.

    The executable is called as
    `<command> <catalog_id> <title> <group_name> <destination> <cover_url> <contributor>...`
    and reads the audio from its standard input. A zero exit code is success.
    """

    def __init__(self, commands: Optional[Mapping[str, str]] = None):
        """
        Args:
            commands: Maps a file extension to a command line. Defaults to the
                bundled Ogg helper.
        """
        if commands is None:
            commands = {"ogg": DEFAULT_OGG_PACKAGER}
        self.commands = dict(commands)

    def build_args(self, metadata: TrackMetadata, destination: Path) -> list[str]:
        return [
            metadata.catalog_id,
            metadata.title,
            metadata.group_name,
            str(destination),
            metadata.cover_url,
            *metadata.contributors,
        ]

    async def package(
        self,
        audio_bytes: bytes,
        audio_format: AudioFileFormat,
        metadata: TrackMetadata,
        destination: Path,
    ) -> None:
        extension = file_extension(audio_format)
        command = self.commands.get(extension)
        if not command:
            raise PackagingError(f"No script for extension {extension}")

        argv = shlex.split(command) + self.build_args(metadata, destination)
        log.debug(f"Running packager: {escape(' '.join(argv))}")

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise PackagingError(f"Failed to start '{argv[0]}': {e}") from e

        await process.communicate(input=audio_bytes)
        if process.returncode != 0:
            raise PackagingError(
                f"Helper script returned an error (exit code {process.returncode})"
            )


class RawFilePackager(Packager):
    """Writes the audio bytes as they are, without any metadata."""

    async def package(
        self,
        audio_bytes: bytes,
        audio_format: AudioFileFormat,
        metadata: TrackMetadata,
        destination: Path,
    ) -> None:
        try:
            async with aiofiles.open(destination, "wb") as f:
                await f.write(audio_bytes)
        except OSError as e:
            raise LocalIOError(f"Failed to write '{destination}': {e}") from e


class FallbackPackager(Packager):
    """Uses `primary`, degrading to `fallback` whenever packaging fails."""

    def __init__(self, primary: Packager, fallback: Packager):
        self.primary = primary
        self.fallback = fallback

    async def package(
        self,
        audio_bytes: bytes,
        audio_format: AudioFileFormat,
        metadata: TrackMetadata,
        destination: Path,
    ) -> None:
        try:
            await self.primary.package(audio_bytes, audio_format, metadata, destination)
        except PackagingError as e:
            log.warning(
                f"[yellow]Error running helper script: {e}. "
                "Saving file without metadata[/yellow]"
            )
            await self.fallback.package(
                audio_bytes, audio_format, metadata, destination
            )


def build_packager(config: OggifyConfig) -> Packager:
    """Creates the packager described by the configuration."""
    external = ExternalPackager({"ogg": config.ogg_packager_command})
    if not config.raw_fallback:
        return external
    return FallbackPackager(external, RawFilePackager())
