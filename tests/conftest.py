"""Shared test helpers and fixtures."""

import struct
from typing import AsyncIterator, Optional

import pytest
from mutagen.ogg import OggPage

from oggify.api.session import RemoteSession
from oggify.core.identifier import ItemIdentifier, ItemKind
from oggify.exceptions import KeyDeniedError, RemoteError
from oggify.media.decrypt import decrypt_audio
from oggify.models.catalog import AudioItem, CatalogEntity
from oggify.models.config import OggifyConfig
from oggify.models.formats import OGG_HEADER_SIZE, AudioFileFormat

TEST_KEY = bytes(range(16))


def track_id(text: str) -> ItemIdentifier:
    return ItemIdentifier.from_base62(ItemKind.TRACK, text)


def episode_id(text: str) -> ItemIdentifier:
    return ItemIdentifier.from_base62(ItemKind.EPISODE, text)


def album_id(text: str) -> ItemIdentifier:
    return ItemIdentifier.from_base62(ItemKind.ALBUM, text)


def make_audio_item(
    text: str,
    name: str = "Song",
    files: Optional[dict] = None,
    **kwargs,
) -> AudioItem:
    """Builds a playable track with a single OGG_VORBIS_320 file by default."""
    if files is None:
        files = {AudioFileFormat.OGG_VORBIS_320: f"file-{text}"}
    kwargs.setdefault("artists", ["Artist A"])
    kwargs.setdefault("album", "Album")
    kwargs.setdefault("covers", ["https://covers.example/cover.jpg"])
    return AudioItem(track_id=track_id(text), name=name, files=files, **kwargs)


def make_ogg_payload(body: bytes = b"OggS audio data") -> bytes:
    """Plaintext as the service delivers it: a custom header, then real audio."""
    return b"\x00" * OGG_HEADER_SIZE + body


class FakeSession(RemoteSession):
    """
    In-memory session.

    Files are stored as plaintext and encrypted on the fly with TEST_KEY.
    `deny_keys` makes the next N key requests fail with KeyDeniedError.
    """

    def __init__(self):
        self.entities: dict[ItemIdentifier, CatalogEntity] = {}
        self.audio_items: dict[ItemIdentifier, AudioItem | Exception] = {}
        self.files: dict[str, bytes] = {}
        self.deny_keys = 0
        self.key_requests: list[tuple[ItemIdentifier, str]] = []
        self.lookups: list[ItemIdentifier] = []
        self.calls: list[str] = []
        self.connected = False
        self.closed = False

    def add_track(self, audio_item: AudioItem, payload: bytes | None = None) -> None:
        self.audio_items[audio_item.track_id] = audio_item
        for file_id in audio_item.files.values():
            self.files[file_id] = payload if payload is not None else make_ogg_payload()

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.closed = True

    async def lookup(self, identifier: ItemIdentifier) -> CatalogEntity:
        self.lookups.append(identifier)
        try:
            return self.entities[identifier]
        except KeyError:
            raise RemoteError(f"{identifier.uri} not found") from None

    async def get_audio_item(self, identifier: ItemIdentifier) -> AudioItem:
        item = self.audio_items.get(identifier)
        if item is None:
            raise RemoteError(f"{identifier.uri} not found")
        if isinstance(item, Exception):
            raise item
        return item

    def open_file(self, file_id: str, bytes_per_second: int) -> AsyncIterator[bytes]:
        self.calls.append("open_file")
        return self._stream(file_id)

    async def _stream(self, file_id: str) -> AsyncIterator[bytes]:
        ciphertext = decrypt_audio(TEST_KEY, self.files[file_id])
        for start in range(0, len(ciphertext), 64):
            yield ciphertext[start : start + 64]

    async def get_decryption_key(self, track_id: ItemIdentifier, file_id: str) -> bytes:
        self.calls.append("get_decryption_key")
        self.key_requests.append((track_id, file_id))
        if self.deny_keys > 0:
            self.deny_keys -= 1
            raise KeyDeniedError("Audio key response error")
        return TEST_KEY


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def config(tmp_path) -> OggifyConfig:
    return OggifyConfig(output_dir=str(tmp_path), session_factory="fake.module:create")


class RecordingSleep:
    """Stands in for asyncio.sleep and remembers every requested delay."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


def make_ogg_vorbis(sample_rate: int = 44100) -> bytes:
    """
    A minimal Ogg Vorbis stream mutagen can read and tag: identification,
    comment, and setup headers followed by one audio page.
    """
    identification = b"\x01vorbis" + struct.pack(
        "<IBIiiiBB", 0, 2, sample_rate, 0, 128000, 0, 0xB8, 1
    )
    vendor = b"oggify"
    comment = (
        b"\x03vorbis" + struct.pack("<I", len(vendor)) + vendor + struct.pack("<I", 0) + b"\x01"
    )
    setup = b"\x05vorbis" + bytes(16)

    pages = []
    for sequence, packets in enumerate([[identification], [comment, setup], [b"audio"]]):
        page = OggPage()
        page.serial = 1
        page.sequence = sequence
        page.packets = packets
        pages.append(page)
    pages[0].first = True
    pages[-1].position = sample_rate
    pages[-1].last = True
    return b"".join(page.write() for page in pages)
