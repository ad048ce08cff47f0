"""
Media Processing Layer.

This package is responsible for all operations on audio data: decryption,
handing the result to the packaging step, and tagging Ogg files.
"""

from .decrypt import decrypt_audio
from .packager import ExternalPackager, FallbackPackager, Packager, RawFilePackager
from .tagger import OggTagger

__all__ = [
    "ExternalPackager",
    "FallbackPackager",
    "OggTagger",
    "Packager",
    "RawFilePackager",
    "decrypt_audio",
]
