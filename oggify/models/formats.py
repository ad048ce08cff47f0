"""
Audio encodings offered by the remote service and the tables used to choose between them.
"""

from enum import Enum

from oggify.exceptions import UnsupportedFormatError


class AudioFileFormat(Enum):
    """Encodings an audio item may list in its file map."""

    OGG_VORBIS_96 = "OGG_VORBIS_96"
    OGG_VORBIS_160 = "OGG_VORBIS_160"
    OGG_VORBIS_320 = "OGG_VORBIS_320"
    MP3_256 = "MP3_256"
    MP3_320 = "MP3_320"
    MP3_160 = "MP3_160"
    MP3_96 = "MP3_96"
    MP3_160_ENC = "MP3_160_ENC"
    AAC_24 = "AAC_24"
    AAC_48 = "AAC_48"
    AAC_160 = "AAC_160"
    AAC_320 = "AAC_320"
    MP4_128 = "MP4_128"
    OTHER5 = "OTHER5"
    FLAC_FLAC = "FLAC_FLAC"
    UNKNOWN_FORMAT = "UNKNOWN_FORMAT"

    @classmethod
    def from_name(cls, name: str) -> "AudioFileFormat":
        try:
            return cls[name]
        except KeyError:
            return cls.UNKNOWN_FORMAT


# Highest to lowest bitrate. The first one present in an item's file map wins.
FORMAT_PRIORITY = (
    AudioFileFormat.OGG_VORBIS_320,
    AudioFileFormat.MP3_320,
    AudioFileFormat.MP3_256,
    AudioFileFormat.OGG_VORBIS_160,
    AudioFileFormat.MP3_160,
    AudioFileFormat.OGG_VORBIS_96,
    AudioFileFormat.MP3_96,
)

# Expected stream rate in kilobytes per second, used as a buffering hint.
DATA_RATE_KBPS = {
    AudioFileFormat.OGG_VORBIS_96: 12,
    AudioFileFormat.OGG_VORBIS_160: 20,
    AudioFileFormat.OGG_VORBIS_320: 40,
    AudioFileFormat.MP3_256: 32,
    AudioFileFormat.MP3_320: 40,
    AudioFileFormat.MP3_160: 20,
    AudioFileFormat.MP3_96: 12,
    AudioFileFormat.MP3_160_ENC: 20,
    AudioFileFormat.AAC_24: 3,
    AudioFileFormat.AAC_48: 6,
    AudioFileFormat.AAC_160: 20,
    AudioFileFormat.AAC_320: 40,
    AudioFileFormat.MP4_128: 16,
    AudioFileFormat.OTHER5: 40,
    AudioFileFormat.FLAC_FLAC: 112,  # ~900 kbit/s on average
}

OGG_VORBIS_FORMATS = frozenset(
    {
        AudioFileFormat.OGG_VORBIS_96,
        AudioFileFormat.OGG_VORBIS_160,
        AudioFileFormat.OGG_VORBIS_320,
    }
)
MP3_FORMATS = frozenset(
    {
        AudioFileFormat.MP3_96,
        AudioFileFormat.MP3_160,
        AudioFileFormat.MP3_160_ENC,
        AudioFileFormat.MP3_256,
        AudioFileFormat.MP3_320,
    }
)

# Size of the non-standard packet the service prepends to Ogg Vorbis streams.
OGG_HEADER_SIZE = 0xA7


def is_ogg_vorbis(audio_format: AudioFileFormat) -> bool:
    return audio_format in OGG_VORBIS_FORMATS


def is_mp3(audio_format: AudioFileFormat) -> bool:
    return audio_format in MP3_FORMATS


def is_flac(audio_format: AudioFileFormat) -> bool:
    return audio_format is AudioFileFormat.FLAC_FLAC


def stream_data_rate(audio_format: AudioFileFormat) -> int:
    """
    Returns the expected bytes per second for an encoding.

    Raises:
        UnsupportedFormatError: If the encoding has no known rate.
    """
    kbps = DATA_RATE_KBPS.get(audio_format)
    if kbps is None:
        raise UnsupportedFormatError(
            f"Unknown stream data rate for format {audio_format.name}"
        )
    return kbps * 1024


def file_extension(audio_format: AudioFileFormat) -> str:
    """
    Returns the file extension used when saving an encoding.

    Raises:
        UnsupportedFormatError: If the encoding cannot be saved.
    """
    if is_ogg_vorbis(audio_format):
        return "ogg"
    if is_mp3(audio_format):
        return "mp3"
    if is_flac(audio_format):
        return "flac"
    raise UnsupportedFormatError(f"Unsupported audio format {audio_format.name}")
