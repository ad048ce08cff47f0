import json
import logging
import shlex
import sys
from unittest.mock import AsyncMock

import pytest
from conftest import make_ogg_vorbis
from mutagen.oggvorbis import OggVorbis

from oggify.exceptions import PackagingError
from oggify.media.packager import (
    ExternalPackager,
    FallbackPackager,
    Packager,
    RawFilePackager,
    build_packager,
)
from oggify.models.catalog import TrackMetadata
from oggify.models.config import OggifyConfig
from oggify.models.formats import AudioFileFormat

# Writes stdin to the destination argument and records the argument list next to it
RECORDING_HELPER = (
    "import json, pathlib, sys\n"
    "data = sys.stdin.buffer.read()\n"
    "dest = pathlib.Path(sys.argv[4])\n"
    "dest.write_bytes(data)\n"
    "dest.with_suffix('.json').write_text(json.dumps(sys.argv[1:]))\n"
)
FAILING_HELPER = "import sys; sys.stdin.buffer.read(); sys.exit(3)"

OGG = AudioFileFormat.OGG_VORBIS_320


def python_command(script: str) -> str:
    return shlex.join([sys.executable, "-c", script])


@pytest.fixture
def metadata():
    return TrackMetadata(
        catalog_id="4uLU6hMCjMI75M1A2tKUQC",
        title="Song One",
        group_name="Album",
        cover_url="https://covers.example/cover.jpg",
        contributors=("Artist A", "Artist B"),
    )


class TestExternalPackager:
    def test_argument_order(self, metadata, tmp_path):
        args = ExternalPackager().build_args(metadata, tmp_path / "x.ogg")
        assert args == [
            "4uLU6hMCjMI75M1A2tKUQC",
            "Song One",
            "Album",
            str(tmp_path / "x.ogg"),
            "https://covers.example/cover.jpg",
            "Artist A",
            "Artist B",
        ]

    def test_missing_cover_is_passed_as_empty(self, tmp_path):
        metadata = TrackMetadata("id", "Episode", "Show", "")
        args = ExternalPackager().build_args(metadata, tmp_path / "x.ogg")
        assert args == ["id", "Episode", "Show", str(tmp_path / "x.ogg"), ""]

    @pytest.mark.asyncio
    async def test_pipes_audio_to_helper(self, metadata, tmp_path):
        packager = ExternalPackager({"ogg": python_command(RECORDING_HELPER)})
        dest = tmp_path / "Song One - Artist A, Artist B.ogg"

        await packager.package(b"OggS audio", OGG, metadata, dest)

        assert dest.read_bytes() == b"OggS audio"
        recorded = json.loads(dest.with_suffix(".json").read_text())
        assert recorded == packager.build_args(metadata, dest)

    @pytest.mark.asyncio
    async def test_tag_helper_accepts_dash_leading_values(self, tmp_path):
        helper = shlex.join([sys.executable, "-m", "oggify.cli.tag_ogg"])
        packager = ExternalPackager({"ogg": helper})
        metadata = TrackMetadata("id1", "-Intro-", "Album", "", ("-M-", "Artist B"))
        dest = tmp_path / "-Intro- - -M-, Artist B.ogg"

        await packager.package(make_ogg_vorbis(), OGG, metadata, dest)

        tags = OggVorbis(dest)
        assert tags["TITLE"] == ["-Intro-"]
        assert tags["ARTIST"] == ["-M-", "Artist B"]

    @pytest.mark.asyncio
    async def test_nonzero_exit_raises(self, metadata, tmp_path):
        packager = ExternalPackager({"ogg": python_command(FAILING_HELPER)})
        with pytest.raises(PackagingError, match="exit code 3"):
            await packager.package(b"data", OGG, metadata, tmp_path / "x.ogg")

    @pytest.mark.asyncio
    async def test_missing_executable_raises(self, metadata, tmp_path):
        packager = ExternalPackager({"ogg": "oggify-no-such-helper-binary"})
        with pytest.raises(PackagingError, match="Failed to start"):
            await packager.package(b"data", OGG, metadata, tmp_path / "x.ogg")

    @pytest.mark.asyncio
    async def test_no_handler_for_extension(self, metadata, tmp_path):
        with pytest.raises(PackagingError, match="No script for extension mp3"):
            await ExternalPackager().package(
                b"data", AudioFileFormat.MP3_320, metadata, tmp_path / "x.mp3"
            )


class TestRawFilePackager:
    @pytest.mark.asyncio
    async def test_writes_bytes(self, metadata, tmp_path):
        dest = tmp_path / "x.mp3"
        await RawFilePackager().package(
            b"ID3", AudioFileFormat.MP3_320, metadata, dest
        )
        assert dest.read_bytes() == b"ID3"


class TestFallbackPackager:
    @pytest.mark.asyncio
    async def test_falls_back_on_packaging_error(self, metadata, tmp_path, caplog):
        packager = FallbackPackager(
            ExternalPackager({"ogg": python_command(FAILING_HELPER)}),
            RawFilePackager(),
        )
        dest = tmp_path / "x.ogg"

        with caplog.at_level(logging.WARNING):
            await packager.package(b"OggS raw", OGG, metadata, dest)

        assert dest.read_bytes() == b"OggS raw"
        assert "Saving file without metadata" in caplog.text

    @pytest.mark.asyncio
    async def test_non_ogg_goes_straight_to_fallback(self, metadata, tmp_path):
        packager = FallbackPackager(ExternalPackager(), RawFilePackager())
        dest = tmp_path / "x.mp3"
        await packager.package(b"ID3", AudioFileFormat.MP3_320, metadata, dest)
        assert dest.read_bytes() == b"ID3"

    @pytest.mark.asyncio
    async def test_primary_success_skips_fallback(self, metadata, tmp_path):
        primary = AsyncMock(spec=Packager)
        fallback = AsyncMock(spec=Packager)
        await FallbackPackager(primary, fallback).package(
            b"x", OGG, metadata, tmp_path / "x.ogg"
        )
        primary.package.assert_awaited_once()
        fallback.package.assert_not_awaited()


class TestBuildPackager:
    def test_with_raw_fallback(self):
        packager = build_packager(OggifyConfig(ogg_packager_command="tagger --quiet"))
        assert isinstance(packager, FallbackPackager)
        assert packager.primary.commands == {"ogg": "tagger --quiet"}

    def test_without_raw_fallback(self):
        packager = build_packager(OggifyConfig(raw_fallback=False))
        assert isinstance(packager, ExternalPackager)
