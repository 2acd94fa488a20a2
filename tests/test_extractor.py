"""Tests for tag extraction."""

import tempfile
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from mutagen.id3 import ID3, TALB, TIT2, TLEN, TPE1, TPE2, TPOS, TRCK

from media_catalog.core.identity import compute_id
from media_catalog.core.metadata import (
    ExtractionFailure,
    Id3TagReader,
    Mp4TagReader,
    TagExtractor,
    TagFields,
    TagReader,
    parse_number,
)
from media_catalog.core.metadata.duration import ITUNSMPB_KEY
from media_catalog.models import TagFormat
from media_catalog.utils.errors import TagReadError

FRAMES = {
    "TIT2": TIT2,
    "TPE1": TPE1,
    "TALB": TALB,
    "TPE2": TPE2,
    "TPOS": TPOS,
    "TRCK": TRCK,
    "TLEN": TLEN,
}


def write_id3(path: Path, version: int = 4, **frames) -> Path:
    """Write an ID3v2 tag with the given text frames to a new file."""
    path.write_bytes(b"\x00" * 64)
    tag = ID3()
    for frame_id, value in frames.items():
        text = value if isinstance(value, list) else [value]
        tag.add(FRAMES[frame_id](encoding=3, text=text))
    tag.save(path, v2_version=version, v23_sep=None)
    return path


def write_id3v1(
    path: Path, title: str, artist: str, album: str, track: int = 0
) -> Path:
    """Write a file carrying only an ID3v1.1 trailer."""

    def field(value: str, size: int) -> bytes:
        return value.encode("latin-1")[:size].ljust(size, b"\x00")

    trailer = (
        b"TAG"
        + field(title, 30)
        + field(artist, 30)
        + field(album, 30)
        + field("2001", 4)
        + field("", 28)
        + b"\x00"
        + bytes([track])
        + bytes([255])
    )
    path.write_bytes(b"\x00" * 256 + trailer)
    return path


def write_ftyp(path: Path) -> Path:
    """Write a file that starts like an MP4 container."""
    path.write_bytes(b"\x00\x00\x00\x18ftypM4A \x00\x00\x02\x00" + b"\x00" * 64)
    return path


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def extractor():
    """Create a TagExtractor with the default readers."""
    return TagExtractor()


class TestParseNumber:
    """Test parse_number."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("3", 3),
            ("3/12", 3),
            (" 7 / 9 ", 7),
            (4, 4),
            ("", None),
            ("abc", None),
            ("/12", None),
            (None, None),
            (-1, None),
        ],
    )
    def test_values(self, value, expected):
        """Test plain, slashed and invalid numbers."""
        assert parse_number(value) == expected


class TestId3TagReader:
    """Test ID3 tag reading."""

    def test_supports_id3v2_header(self, temp_dir: Path):
        """Test files starting with an ID3 header are supported."""
        path = write_id3(temp_dir / "a.mp3", TIT2="x")
        assert Id3TagReader().supports(path)

    def test_supports_id3v1_trailer(self, temp_dir: Path):
        """Test files ending with a TAG trailer are supported."""
        path = write_id3v1(temp_dir / "a.mp3", "t", "a", "b")
        assert Id3TagReader().supports(path)

    def test_rejects_plain_file(self, temp_dir: Path):
        """Test files without any ID3 marker are rejected cheaply."""
        path = temp_dir / "a.mp3"
        path.write_bytes(b"not audio")
        assert not Id3TagReader().supports(path)

    def test_reads_v24_fields(self, temp_dir: Path):
        """Test every field of an ID3v2.4 tag."""
        path = write_id3(
            temp_dir / "a.mp3",
            TIT2="Song",
            TPE1="Artist",
            TALB="Album",
            TPE2="Various",
            TPOS="1/2",
            TRCK="3/12",
            TLEN="215000",
        )
        fields = Id3TagReader().read(path)
        assert fields == TagFields(
            tag_format=TagFormat.ID3V24,
            title="Song",
            artist="Artist",
            album="Album",
            album_artist="Various",
            disc=1,
            track=3,
            duration=215000,
        )

    def test_v23_multi_value_becomes_slash(self, temp_dir: Path):
        """Test NUL separated ID3v2.3 values surface with a slash."""
        path = write_id3(temp_dir / "a.mp3", version=3, TPE1=["A", "B"])
        fields = Id3TagReader().read(path)
        assert fields.tag_format is TagFormat.ID3V23
        assert fields.artist == "A/B"

    def test_v24_multi_value_keeps_nul(self, temp_dir: Path):
        """Test ID3v2.4 multi-values are kept NUL separated."""
        path = write_id3(temp_dir / "a.mp3", version=4, TPE1=["A", "B"])
        fields = Id3TagReader().read(path)
        assert fields.tag_format is TagFormat.ID3V24
        assert fields.artist == "A\0B"

    def test_missing_frames_are_none(self, temp_dir: Path):
        """Test absent frames map to None."""
        fields = Id3TagReader().read(write_id3(temp_dir / "a.mp3", TIT2="Only"))
        assert fields.title == "Only"
        assert fields.artist is None
        assert fields.track is None
        assert fields.duration is None

    def test_reads_id3v1(self, temp_dir: Path):
        """Test ID3v1 fallback."""
        path = write_id3v1(temp_dir / "a.mp3", "Old", "Band", "Record", track=5)
        fields = Id3TagReader().read(path)
        assert fields.tag_format is TagFormat.ID3V1
        assert fields.title == "Old"
        assert fields.artist == "Band"
        assert fields.album == "Record"
        assert fields.track == 5

    def test_no_tag_raises(self, temp_dir: Path):
        """Test a file without a tag raises TagReadError."""
        path = temp_dir / "a.mp3"
        path.write_bytes(b"\x00" * 300)
        with pytest.raises(TagReadError):
            Id3TagReader().read(path)


class TestMp4TagReader:
    """Test MP4 tag reading."""

    def test_supports_ftyp(self, temp_dir: Path):
        """Test ftyp detection."""
        assert Mp4TagReader().supports(write_ftyp(temp_dir / "a.m4a"))
        plain = temp_dir / "b.m4a"
        plain.write_bytes(b"\x00" * 16)
        assert not Mp4TagReader().supports(plain)

    def test_reads_atoms(self, temp_dir: Path):
        """Test atoms map to fields and the stream length to a duration."""
        path = write_ftyp(temp_dir / "a.m4a")
        fake = SimpleNamespace(
            tags={
                "\xa9nam": ["Song"],
                "\xa9ART": ["Artist"],
                "\xa9alb": ["Album"],
                "aART": ["Album Artist"],
                "disk": [(1, 2)],
                "trkn": [(3, 12)],
            },
            info=SimpleNamespace(length=215.4996),
        )
        with patch("media_catalog.core.metadata.extractor.MP4", return_value=fake):
            fields = Mp4TagReader().read(path)

        assert fields.tag_format is TagFormat.MP4
        assert fields.title == "Song"
        assert fields.artist == "Artist"
        assert fields.album == "Album"
        assert fields.album_artist == "Album Artist"
        assert fields.disc == 1
        assert fields.track == 3
        assert fields.duration == 215500

    def test_gapless_info_trims_duration(self, temp_dir: Path):
        """Test iTunSMPB priming and padding are excluded from the duration."""
        path = write_ftyp(temp_dir / "a.m4a")
        fake = SimpleNamespace(
            tags={
                "\xa9nam": ["Song"],
                ITUNSMPB_KEY: [b" 00000000 00000840 000001C0 0000000000046E00"],
            },
            info=SimpleNamespace(length=6.64, sample_rate=44100),
        )
        with patch("media_catalog.core.metadata.extractor.MP4", return_value=fake):
            fields = Mp4TagReader().read(path)
        # 0x46E00 = 290304 valid samples at 44.1kHz
        assert fields.duration == 6583

    def test_zero_length_has_no_duration(self, temp_dir: Path):
        """Test a zero stream length leaves the duration unknown."""
        path = write_ftyp(temp_dir / "a.m4a")
        fake = SimpleNamespace(tags=None, info=SimpleNamespace(length=0.0))
        with patch("media_catalog.core.metadata.extractor.MP4", return_value=fake):
            fields = Mp4TagReader().read(path)
        assert fields.title is None
        assert fields.duration is None

    def test_invalid_container_raises(self, temp_dir: Path):
        """Test a broken MP4 raises TagReadError."""
        path = write_ftyp(temp_dir / "a.m4a")
        with pytest.raises(TagReadError):
            Mp4TagReader().read(path)


class _StubReader(TagReader):
    def __init__(self, name, result=None, supported=True):
        self.name = name
        self.result = result
        self.supported = supported
        self.calls = 0

    def supports(self, path):
        return self.supported

    def read(self, path):
        self.calls += 1
        if self.result is None:
            raise TagReadError(f"{self.name}: nothing")
        return self.result


class TestTagExtractor:
    """Test TagExtractor."""

    def test_first_parsing_format_wins(self, temp_dir: Path):
        """Test readers are tried in order and fields are never merged."""
        path = temp_dir / "a.mp3"
        path.write_bytes(b"")
        first = _StubReader("first", result=None)
        second = _StubReader(
            "second", result=TagFields(TagFormat.MP4, title="From MP4")
        )
        third = _StubReader(
            "third", result=TagFields(TagFormat.ID3V1, artist="Ignored")
        )

        fields = TagExtractor(readers=[first, second, third]).read_tags(path)

        assert fields.title == "From MP4"
        assert fields.artist is None
        assert third.calls == 0

    def test_unsupported_reader_skipped(self, temp_dir: Path):
        """Test readers that do not support a file are never asked to read."""
        path = temp_dir / "a.mp3"
        path.write_bytes(b"")
        skipped = _StubReader("skipped", supported=False)

        result = TagExtractor(readers=[skipped]).read_tags(path)

        assert isinstance(result, ExtractionFailure)
        assert skipped.calls == 0

    def test_failure_carries_path_and_errors(self, temp_dir: Path):
        """Test ExtractionFailure lists every reader error."""
        path = temp_dir / "a.mp3"
        path.write_bytes(b"")
        result = TagExtractor(
            readers=[_StubReader("one"), _StubReader("two")]
        ).try_extract(path)

        assert isinstance(result, ExtractionFailure)
        assert result.path == path
        assert result.errors == ["one: nothing", "two: nothing"]

    def test_tag_duration_preferred(self, temp_dir: Path, extractor: TagExtractor):
        """Test the tag duration is used without probing the stream."""
        path = write_id3(temp_dir / "a.mp3", TIT2="Song", TLEN="1000")
        with patch(
            "media_catalog.core.metadata.extractor.probe_duration"
        ) as mock_probe:
            track = extractor.extract(path, "sub")
        mock_probe.assert_not_called()
        assert track.duration == 1000

    def test_stream_read_when_tag_lacks_duration(
        self, temp_dir: Path, extractor: TagExtractor
    ):
        """Test the stream is probed when the tag has no duration."""
        path = write_id3(temp_dir / "a.mp3", TIT2="Song")
        with patch(
            "media_catalog.core.metadata.extractor.probe_duration", return_value=4321
        ) as mock_probe:
            track = extractor.extract(path)
        mock_probe.assert_called_once()
        assert track.duration == 4321

    def test_unreadable_stream_is_not_fatal(
        self, temp_dir: Path, extractor: TagExtractor
    ):
        """Test a tagged file with no decodable stream keeps its tags."""
        path = write_id3(temp_dir / "a.mp3", TIT2="Song", TPE1="Artist")
        track = extractor.extract(path, "sub")
        assert track.title == "Song"
        assert track.artist == "Artist"
        assert track.duration is None

    def test_track_identity(self, temp_dir: Path, extractor: TagExtractor):
        """Test the track id is derived from its path."""
        path = write_id3(temp_dir / "a.mp3", TIT2="Song", TLEN="1")
        track = extractor.extract(path, "")
        assert track.id == compute_id(path)
        assert track.path == str(path)
        assert track.tag_format is TagFormat.ID3V24

    def test_untagged_file_gets_bare_record(
        self, temp_dir: Path, extractor: TagExtractor
    ):
        """Test files without a parsable tag become bare records."""
        path = temp_dir / "noise.mp3"
        path.write_bytes(b"\x01\x02\x03" * 100)

        track = extractor.extract(path, "misc")

        assert track.id == compute_id(path)
        assert track.relative_parent_path == "misc"
        assert track.tag_format is None
        assert track.title is None
        assert track.duration is None
