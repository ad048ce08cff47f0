"""
Writes Vorbis comments and cover art into Ogg Vorbis files.
"""

import asyncio
import base64
import logging
from typing import Iterable, Optional

import aiohttp
from mutagen.flac import Picture
from mutagen.oggvorbis import OggVorbis

log = logging.getLogger(__name__)

FLAC_MAX_BLOCKSIZE = 16777215  # ~16.7MB, max size for a FLAC metadata block


def build_picture_block(image_data: bytes, mime: str = "image/jpeg") -> str:
    """Encodes an image as a base64 METADATA_BLOCK_PICTURE value (front cover)."""
    pic = Picture()
    pic.type = 3
    pic.mime = mime
    pic.desc = ""
    pic.data = image_data
    return base64.b64encode(pic.write()).decode("ascii")


async def fetch_cover(url: str, timeout: float = 30) -> Optional[bytes]:
    """Downloads cover art, returning None if the request fails."""
    if not url:
        return None
    try:
        async with (
            aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout)) as session,
            session.get(url) as response,
        ):
            response.raise_for_status()
            return await response.read()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        log.warning(f"Failed to download cover '{url}': {e}")
        return None


class OggTagger:
    """Tags an Ogg Vorbis file the way the packaging helper expects."""

    def tag_file(
        self,
        path: str,
        catalog_id: str,
        title: str,
        album: str,
        artists: Iterable[str],
        cover: Optional[bytes] = None,
    ) -> None:
        """
        Appends identifying comments and replaces any embedded cover.

        Raises:
            mutagen.MutagenError: If the file is not a readable Ogg Vorbis stream.
        """
        audio = OggVorbis(path)
        audio["SPOTIFY_ID"] = [catalog_id]
        audio["TITLE"] = [title]
        audio["ALBUM"] = [album]
        if names := [a.replace("\n", " ") for a in artists if a]:
            audio["ARTIST"] = names

        if cover:
            if len(cover) > FLAC_MAX_BLOCKSIZE:
                log.warning("Cover art is too large to embed, skipping it.")
            else:
                audio["METADATA_BLOCK_PICTURE"] = [build_picture_block(cover)]

        audio.save()
