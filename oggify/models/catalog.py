"""
Data classes describing what the remote session returns for catalog lookups.
"""

from dataclasses import dataclass, field
from typing import Optional

from oggify.core.identifier import ItemIdentifier

from .formats import AudioFileFormat


@dataclass
class CatalogEntity:
    """A playlist, album, or show together with its member items."""

    name: str
    items: list[ItemIdentifier] = field(default_factory=list)


@dataclass
class AudioItem:
    """A track or episode as described by the remote session."""

    track_id: ItemIdentifier
    name: str
    uri: str = ""
    availability: Optional[str] = None  # None when playable, else the reason
    files: dict[AudioFileFormat, str] = field(default_factory=dict)
    alternatives: list[ItemIdentifier] = field(default_factory=list)
    covers: list[str] = field(default_factory=list)
    # Track-only fields
    artists: list[str] = field(default_factory=list)
    album: Optional[str] = None
    # Episode-only fields
    show_name: Optional[str] = None

    def __post_init__(self):
        if not self.uri:
            self.uri = self.track_id.uri

    @property
    def is_available(self) -> bool:
        return self.availability is None

    @property
    def is_episode(self) -> bool:
        return self.show_name is not None

    @property
    def contributors(self) -> list[str]:
        """Artist names for tracks. Episodes have none."""
        return [] if self.is_episode else list(self.artists)

    @property
    def group_name(self) -> str:
        """The album for a track, or the show for an episode."""
        if self.is_episode:
            return self.show_name or ""
        return self.album or ""

    @property
    def cover_url(self) -> str:
        return self.covers[0] if self.covers else ""


@dataclass
class LoadedTrack:
    """Decrypted audio for one item. Consumed right away by the packager."""

    audio_item: AudioItem
    audio_bytes: bytes
    audio_format: AudioFileFormat


@dataclass(frozen=True)
class TrackMetadata:
    """The subset of an audio item handed to the packaging step."""

    catalog_id: str
    title: str
    group_name: str
    cover_url: str
    contributors: tuple[str, ...] = ()

    @classmethod
    def from_audio_item(cls, audio_item: AudioItem) -> "TrackMetadata":
        return cls(
            catalog_id=audio_item.track_id.to_base62(),
            title=audio_item.name,
            group_name=audio_item.group_name,
            cover_url=audio_item.cover_url,
            contributors=tuple(audio_item.contributors),
        )
