import aiohttp
import pytest
from conftest import TEST_KEY, make_audio_item, make_ogg_payload, track_id

from oggify.core.track_loader import (
    TrackLoader,
    select_audio_format,
    strip_ogg_header,
)
from oggify.exceptions import (
    KeyDeniedError,
    LocalIOError,
    RemoteError,
    UnavailableError,
    UnsupportedFormatError,
)
from oggify.models.formats import OGG_HEADER_SIZE, AudioFileFormat


class TestSelectAudioFormat:
    def test_prefers_highest_tier(self):
        item = make_audio_item(
            "t1",
            files={
                AudioFileFormat.MP3_96: "low",
                AudioFileFormat.MP3_320: "mp3",
                AudioFileFormat.OGG_VORBIS_160: "ogg160",
            },
        )
        assert select_audio_format(item) == (AudioFileFormat.MP3_320, "mp3")

    def test_ogg_320_beats_everything(self):
        item = make_audio_item(
            "t1",
            files={
                AudioFileFormat.MP3_320: "mp3",
                AudioFileFormat.OGG_VORBIS_320: "ogg",
            },
        )
        assert select_audio_format(item) == (AudioFileFormat.OGG_VORBIS_320, "ogg")

    def test_no_supported_encoding(self):
        item = make_audio_item("t1", files={AudioFileFormat.AAC_24: "aac"})
        with pytest.raises(UnsupportedFormatError):
            select_audio_format(item)


class TestStripOggHeader:
    def test_strips_exact_header(self):
        assert strip_ogg_header(make_ogg_payload(b"OggS")) == b"OggS"

    def test_short_input_raises(self):
        with pytest.raises(LocalIOError):
            strip_ogg_header(b"\x00" * (OGG_HEADER_SIZE - 1))


class TestTrackLoader:
    @pytest.mark.asyncio
    async def test_loads_and_strips_ogg(self, session):
        item = make_audio_item("t1", name="Song One")
        session.add_track(item, make_ogg_payload(b"OggS real audio"))

        loaded = await TrackLoader(session).load_track(track_id("t1"))

        assert loaded.audio_bytes == b"OggS real audio"
        assert loaded.audio_format is AudioFileFormat.OGG_VORBIS_320
        assert loaded.audio_item is item

    @pytest.mark.asyncio
    async def test_mp3_is_not_stripped(self, session):
        item = make_audio_item("t1", files={AudioFileFormat.MP3_320: "mp3-file"})
        session.add_track(item, b"ID3 short mp3")

        loaded = await TrackLoader(session).load_track(track_id("t1"))

        assert loaded.audio_bytes == b"ID3 short mp3"
        assert loaded.audio_format is AudioFileFormat.MP3_320

    @pytest.mark.asyncio
    async def test_key_requested_for_selected_file(self, session):
        session.add_track(make_audio_item("t1"))
        await TrackLoader(session).load_track(track_id("t1"))
        assert session.key_requests == [(track_id("t1"), "file-t1")]

    @pytest.mark.asyncio
    async def test_file_opened_before_key_request(self, session):
        session.add_track(make_audio_item("t1"))
        await TrackLoader(session).load_track(track_id("t1"))
        assert session.calls == ["open_file", "get_decryption_key"]

    @pytest.mark.asyncio
    async def test_unavailable_item(self, session):
        session.add_track(make_audio_item("t1", availability="region restricted"))
        with pytest.raises(UnavailableError):
            await TrackLoader(session).load_track(track_id("t1"))
        assert session.key_requests == []

    @pytest.mark.asyncio
    async def test_no_files_and_no_alternatives(self, session):
        session.add_track(make_audio_item("t1", files={}))
        with pytest.raises(UnavailableError):
            await TrackLoader(session).load_track(track_id("t1"))

    @pytest.mark.asyncio
    async def test_uses_available_alternative(self, session):
        alternatives = [track_id("alt1"), track_id("alt2"), track_id("alt3")]
        session.add_track(make_audio_item("t1", files={}, alternatives=alternatives))
        session.add_track(make_audio_item("alt1", availability="premium only"))
        session.add_track(
            make_audio_item("alt2", name="Alt Two"), make_ogg_payload(b"alt audio")
        )
        session.audio_items[track_id("alt3")] = RemoteError("lookup failed")

        loaded = await TrackLoader(session).load_track(track_id("t1"))

        assert loaded.audio_item.name == "Alt Two"
        assert loaded.audio_bytes == b"alt audio"
        # The key belongs to the requested item, the file to the alternative
        assert session.key_requests == [(track_id("t1"), "file-alt2")]

    @pytest.mark.asyncio
    async def test_no_alternative_available(self, session):
        alternatives = [track_id("alt1"), track_id("alt2")]
        session.add_track(make_audio_item("t1", files={}, alternatives=alternatives))
        session.add_track(make_audio_item("alt1", availability="region restricted"))
        session.audio_items[track_id("alt2")] = RemoteError("lookup failed")

        with pytest.raises(UnavailableError):
            await TrackLoader(session).load_track(track_id("t1"))

    @pytest.mark.asyncio
    async def test_key_denied_propagates(self, session):
        session.add_track(make_audio_item("t1"))
        session.deny_keys = 1
        with pytest.raises(KeyDeniedError):
            await TrackLoader(session).load_track(track_id("t1"))

    @pytest.mark.asyncio
    async def test_transport_error_becomes_remote_error(self, session):
        session.audio_items[track_id("t1")] = aiohttp.ServerDisconnectedError()
        with pytest.raises(RemoteError):
            await TrackLoader(session).load_track(track_id("t1"))

    @pytest.mark.asyncio
    async def test_local_stream_error(self, session):
        session.add_track(make_audio_item("t1"))

        async def broken_stream(file_id, bytes_per_second):
            yield b"partial"
            raise OSError("disk full")

        session.open_file = broken_stream
        with pytest.raises(LocalIOError, match="disk full"):
            await TrackLoader(session).load_track(track_id("t1"))

    @pytest.mark.asyncio
    async def test_truncated_ogg_stream(self, session):
        session.add_track(make_audio_item("t1"), b"too short")
        with pytest.raises(LocalIOError):
            await TrackLoader(session).load_track(track_id("t1"))

    @pytest.mark.asyncio
    async def test_malformed_key(self, session):
        session.add_track(make_audio_item("t1"))

        async def short_key(track, file_id):
            return TEST_KEY[:8]

        session.get_decryption_key = short_key
        with pytest.raises(LocalIOError):
            await TrackLoader(session).load_track(track_id("t1"))
