"""
Dataclass for tracking download session statistics.
"""

from dataclasses import dataclass, field


@dataclass
class DownloadStats:
    """Tracks what happened to every line and item during one run."""

    lines_ingested: int = 0
    lines_failed: int = 0
    tracks_downloaded: int = 0
    tracks_skipped_exists: int = 0
    tracks_failed: int = 0
    key_denied_retries: int = 0
    total_size_downloaded: int = 0
    # (uri, reason) for every item that was given up on
    failed_items: list[tuple[str, str]] = field(default_factory=list)

    def record_failure(self, uri: str, reason: str) -> None:
        self.tracks_failed += 1
        self.failed_items.append((uri, reason))
