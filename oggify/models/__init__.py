"""
Data Models Layer.

This package contains the Pydantic configuration model, the catalog data
classes returned by the remote session, the encoding tables, and statistics.
"""

from .config import OggifyConfig
from .formats import AudioFileFormat
from .stats import DownloadStats

__all__ = ["AudioFileFormat", "DownloadStats", "OggifyConfig"]
