"""
Utilities for building safe file and folder names.
"""

from pathlib import Path
from typing import Iterable

from pathvalidate import sanitize_filename


def sanitize_name(name: str) -> str:
    """Strips characters unsafe for file names and surrounding whitespace."""
    return sanitize_filename(name, platform="auto").strip()


def group_key(prefix: str, name: str) -> str:
    """Builds a destination group key such as 'albums/<name>'."""
    return f"{prefix}/{sanitize_name(name)}"


def track_filename(title: str, contributors: Iterable[str], extension: str) -> str:
    """Builds '<title> - <contributors>.<ext>' with the stem sanitized."""
    stem = sanitize_name(f"{title} - {', '.join(contributors)}")
    return f"{stem}.{extension}"


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)
