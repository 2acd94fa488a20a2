"""Tag extraction for audio files.

Readers are tried in a fixed order (ID3, then MP4) and the first one that
parses wins. Fields are never merged across formats.
"""

import logging
import os
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Union

import mutagen
from mutagen.id3 import ID3
from mutagen.mp4 import MP4

from ...models.models import TagFormat, Track
from ...utils.errors import TagReadError
from ..identity import compute_id, path_to_str
from .duration import (
    StreamInfo,
    compute_duration_ms,
    probe_duration,
    read_gapless_info,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TagFields:
    """Fields read from one tag container."""

    tag_format: TagFormat
    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    album_artist: Optional[str] = None
    disc: Optional[int] = None
    track: Optional[int] = None
    duration: Optional[int] = None  # milliseconds, as embedded in the tag


@dataclass(frozen=True)
class ExtractionFailure:
    """No reader could parse a tag from ``path``."""

    path: Path
    errors: List[str] = dataclass_field(default_factory=list)


def parse_number(value: Any) -> Optional[int]:
    """Parse a disc/track number such as ``"3"`` or ``"3/12"``.

    Returns:
        The leading non-negative integer, or None
    """
    if value is None:
        return None
    if isinstance(value, int):
        return value if value >= 0 else None

    text = str(value).strip().split("/", 1)[0].strip()
    if not text.isdigit():
        return None
    return int(text)


class TagReader:
    """Base class for a single tag format reader."""

    name = "tag"

    def supports(self, path: Path) -> bool:
        """Cheap capability check before a full parse."""
        raise NotImplementedError

    def read(self, path: Path) -> TagFields:
        """Parse the tag of ``path``.

        Raises:
            TagReadError: If the file carries no readable tag of this format
        """
        raise NotImplementedError


class Id3TagReader(TagReader):
    """Reads ID3v2.4/2.3/2.2 tags, falling back to ID3v1."""

    name = "ID3"

    def supports(self, path: Path) -> bool:
        """Check for an ID3v2 header or an ID3v1 trailer."""
        try:
            with open(path, "rb") as f:
                if f.read(3) == b"ID3":
                    return True
                if os.fstat(f.fileno()).st_size < 128:
                    return False
                f.seek(-128, os.SEEK_END)
                return f.read(3) == b"TAG"
        except OSError:
            return False

    def read(self, path: Path) -> TagFields:
        """Read an ID3 tag."""
        try:
            tag = ID3(path)
        except (mutagen.MutagenError, OSError) as e:
            raise TagReadError(f"{self.name}: {e}") from e

        try:
            tag_format = TagFormat.from_id3_version(tag.version)
        except ValueError as e:
            raise TagReadError(f"{self.name}: {e}") from e

        def text(frame_id: str) -> Optional[str]:
            frame = tag.get(frame_id)
            if frame is None or not frame.text:
                return None
            # multiple values are stored NUL separated on disk
            return tag_format.format_text("\0".join(str(t) for t in frame.text))

        return TagFields(
            tag_format=tag_format,
            title=text("TIT2"),
            artist=text("TPE1"),
            album=text("TALB"),
            album_artist=text("TPE2"),
            disc=parse_number(text("TPOS")),
            track=parse_number(text("TRCK")),
            duration=parse_number(text("TLEN")),
        )


class Mp4TagReader(TagReader):
    """Reads iTunes-style MP4 metadata atoms."""

    name = "MP4"

    def supports(self, path: Path) -> bool:
        """Check for an ``ftyp`` box at the start of the file."""
        try:
            with open(path, "rb") as f:
                header = f.read(12)
        except OSError:
            return False
        return header[4:8] == b"ftyp"

    def read(self, path: Path) -> TagFields:
        """Read MP4 metadata."""
        try:
            audio = MP4(path)
        except (mutagen.MutagenError, OSError) as e:
            raise TagReadError(f"{self.name}: {e}") from e

        tags = audio.tags or {}
        tag_format = TagFormat.MP4

        def first(key: str) -> Any:
            values = tags.get(key)
            if not values:
                return None
            return values[0]

        def text(key: str) -> Optional[str]:
            value = first(key)
            return tag_format.format_text(None if value is None else str(value))

        def number(key: str) -> Optional[int]:
            value = first(key)
            # disk/trkn atoms hold (number, total) pairs
            if isinstance(value, tuple):
                value = value[0] if value else None
            return parse_number(value)

        duration = None
        info = audio.info
        sample_rate = int(getattr(info, "sample_rate", 0) or 0) if info else 0
        length = getattr(info, "length", 0) if info else 0
        gapless = read_gapless_info(audio)
        if gapless is not None and sample_rate > 0:
            # encoder priming and padding are not part of the track
            delay, padding, valid = gapless
            duration = compute_duration_ms(
                StreamInfo(sample_rate, valid + delay + padding, delay, padding)
            )
        elif length and length > 0:
            duration = round(length * 1000)

        return TagFields(
            tag_format=tag_format,
            title=text("\xa9nam"),
            artist=text("\xa9ART"),
            album=text("\xa9alb"),
            album_artist=text("aART"),
            disc=number("disk"),
            track=number("trkn"),
            duration=duration,
        )


DEFAULT_READERS: Tuple[TagReader, ...] = (Id3TagReader(), Mp4TagReader())


class TagExtractor:
    """Builds Track records from audio files."""

    def __init__(
        self,
        readers: Sequence[TagReader] = DEFAULT_READERS,
        max_probe_bytes: Optional[int] = None,
    ) -> None:
        """Initialize tag extractor.

        Args:
            readers: Tag readers in the order they are tried
            max_probe_bytes: Size limit for stream duration probing
        """
        self.readers = tuple(readers)
        self.max_probe_bytes = max_probe_bytes

    def read_tags(self, path: Path) -> Union[TagFields, ExtractionFailure]:
        """Read the first tag format that parses.

        Args:
            path: Audio file path

        Returns:
            Parsed fields, or an ExtractionFailure carrying the path
        """
        errors: List[str] = []
        for reader in self.readers:
            if not reader.supports(path):
                continue
            try:
                return reader.read(path)
            except TagReadError as e:
                errors.append(str(e))
        return ExtractionFailure(path=path, errors=errors)

    def try_extract(
        self, path: Path, relative_parent_path: str = ""
    ) -> Union[Track, ExtractionFailure]:
        """Extract a Track from an audio file.

        The embedded tag duration is preferred; without one the audio stream
        is probed.

        Args:
            path: Audio file path
            relative_parent_path: Containing directory relative to the scan root

        Returns:
            Track record, or an ExtractionFailure if no tag could be parsed
        """
        fields = self.read_tags(path)
        if isinstance(fields, ExtractionFailure):
            return fields

        duration = fields.duration
        if duration is None:
            duration = probe_duration(path, self.max_probe_bytes)

        return Track(
            id=compute_id(path),
            path=path_to_str(path),
            relative_parent_path=relative_parent_path,
            tag_format=fields.tag_format,
            title=fields.title,
            artist=fields.artist,
            album=fields.album,
            album_artist=fields.album_artist,
            disc=fields.disc,
            track=fields.track,
            duration=duration,
        )

    def extract(self, path: Path, relative_parent_path: str = "") -> Track:
        """Extract a Track, falling back to a bare record on tag failure."""
        result = self.try_extract(path, relative_parent_path)
        if isinstance(result, ExtractionFailure):
            logger.warning(
                "Error parsing tags for %s: %s",
                result.path,
                "; ".join(result.errors) or "no supported tag found",
            )
            return Track.without_tags(result.path, relative_parent_path)
        return result
