"""
Loads one track or episode: resolves a playable version, picks an encoding,
then fetches and decrypts the audio.
"""

import asyncio
import logging
from typing import AsyncIterator, Optional

import aiohttp
from rich.markup import escape

from oggify.api.session import RemoteSession, remote_call
from oggify.exceptions import LocalIOError, UnavailableError, UnsupportedFormatError
from oggify.media.decrypt import decrypt_audio
from oggify.models.catalog import AudioItem, LoadedTrack
from oggify.models.formats import (
    FORMAT_PRIORITY,
    OGG_HEADER_SIZE,
    AudioFileFormat,
    is_ogg_vorbis,
    stream_data_rate,
)
from oggify.utils.race import first_success

from .identifier import ItemIdentifier

log = logging.getLogger(__name__)


def select_audio_format(audio_item: AudioItem) -> tuple[AudioFileFormat, str]:
    """
    Picks the highest priority encoding present in the item's file map.

    Raises:
        UnsupportedFormatError: If none of the supported encodings is offered.
    """
    for audio_format in FORMAT_PRIORITY:
        if (file_id := audio_item.files.get(audio_format)) is not None:
            return audio_format, file_id
    raise UnsupportedFormatError(
        f"<{audio_item.name}> is not available in any supported format"
    )


def strip_ogg_header(audio_bytes: bytes) -> bytes:
    """
    Drops the custom packet the service inserts at the start of Ogg Vorbis
    streams. It is not well-formed and players may balk at it.
    """
    if len(audio_bytes) < OGG_HEADER_SIZE:
        raise LocalIOError(
            f"Decrypted stream is too short ({len(audio_bytes)} bytes) to hold "
            "the Ogg header"
        )
    return audio_bytes[OGG_HEADER_SIZE:]


class TrackLoader:
    """Produces a `LoadedTrack` for a single identifier."""

    def __init__(self, session: RemoteSession):
        self.session = session

    async def _fetch_audio_item(self, identifier: ItemIdentifier) -> AudioItem:
        async with remote_call(f"Audio item fetch for {identifier.uri}"):
            return await self.session.get_audio_item(identifier)

    async def find_available_alternative(
        self, audio_item: AudioItem
    ) -> Optional[AudioItem]:
        """
        Returns a playable version of the item: the item itself if it has
        files, otherwise the first alternative that resolves and is available.
        """
        if not audio_item.is_available:
            log.error(f"Track is unavailable: {audio_item.availability}")
            return None
        if audio_item.files:
            return audio_item
        if audio_item.alternatives:
            log.debug(
                f"Probing {len(audio_item.alternatives)} alternatives for "
                f"<{audio_item.uri}>"
            )
            return await first_success(
                (self._fetch_audio_item(alt) for alt in audio_item.alternatives),
                accept=lambda candidate: candidate.is_available,
            )
        log.error("Track should be available, but no alternatives found.")
        return None

    async def _read_stream(self, file_id: str, stream: AsyncIterator[bytes]) -> bytes:
        chunks = []
        async with remote_call(f"Download of file {file_id}"):
            try:
                async for chunk in stream:
                    chunks.append(chunk)
            except (aiohttp.ClientError, asyncio.TimeoutError):
                # Both subclass OSError; they are remote failures, not local ones
                raise
            except OSError as e:
                raise LocalIOError(f"Cannot read file stream: {e}") from e
        return b"".join(chunks)

    async def load_track(self, identifier: ItemIdentifier) -> LoadedTrack:
        """
        Loads and decrypts the audio for one identifier.

        Raises:
            UnavailableError: If neither the item nor an alternative is playable.
            UnsupportedFormatError: If no acceptable encoding is offered.
            RemoteError: If a remote request fails. `KeyDeniedError` signals
                that the service refused the decryption key.
            LocalIOError: If reading or decrypting the stream fails.
        """
        audio_item = await self._fetch_audio_item(identifier)
        resolved = await self.find_available_alternative(audio_item)
        if resolved is None:
            log.warning(f"<{identifier.uri}> is not available")
            raise UnavailableError(f"<{identifier.uri}> is not available")
        audio_item = resolved

        audio_format, file_id = select_audio_format(audio_item)
        bytes_per_second = stream_data_rate(audio_format)
        log.debug(
            f"Selected {audio_format.name} ({bytes_per_second} B/s) for "
            f"<{audio_item.uri}>"
        )

        # Nothing is transferred until the stream is iterated
        async with remote_call(f"Opening file {file_id}"):
            stream = self.session.open_file(file_id, bytes_per_second)
        async with remote_call(f"Key request for {identifier.uri}"):
            key = await self.session.get_decryption_key(identifier, file_id)

        encrypted = await self._read_stream(file_id, stream)

        audio_bytes = await asyncio.to_thread(decrypt_audio, key, encrypted)
        if is_ogg_vorbis(audio_format):
            audio_bytes = strip_ogg_header(audio_bytes)

        log.info(
            f"Loaded <{escape(audio_item.name)}> with URI <{audio_item.uri}>"
        )
        return LoadedTrack(
            audio_item=audio_item, audio_bytes=audio_bytes, audio_format=audio_format
        )
