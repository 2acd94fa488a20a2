"""Data models for the media catalog."""

from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, NonNegativeInt

from ..core.identity import PathLike, compute_id, path_to_str


class TagFormat(str, Enum):
    """Tag container a track's metadata was read from."""

    ID3V24 = "ID3v2.4"
    ID3V23 = "ID3v2.3"
    ID3V22 = "ID3v2.2"
    ID3V1 = "ID3v1"
    MP4 = "MP4"

    @classmethod
    def from_id3_version(cls, version: Tuple[int, ...]) -> "TagFormat":
        """Map a mutagen ``ID3.version`` tuple to a tag format.

        Args:
            version: Version tuple such as ``(2, 4, 0)`` or ``(1, 1)``

        Returns:
            Matching tag format

        Raises:
            ValueError: If the version is not a known ID3 version
        """
        major = tuple(version[:2])
        if major == (2, 4):
            return cls.ID3V24
        if major == (2, 3):
            return cls.ID3V23
        if major == (2, 2):
            return cls.ID3V22
        if major[:1] == (1,):
            return cls.ID3V1
        raise ValueError(f"Unknown ID3 version: {version}")

    def format_text(self, value: Optional[str]) -> Optional[str]:
        """Normalize a text field as surfaced for this tag format.

        Some ID3v2.3 taggers separate multiple values with a NUL byte, which
        players display as a slash. Other formats pass text through.
        """
        if value is None:
            return None
        if self is TagFormat.ID3V23:
            return value.replace("\0", "/")
        return value


class Track(BaseModel):
    """Represents an audio file and the metadata read from its tag."""

    id: str
    path: str
    relative_parent_path: str = ""
    tag_format: Optional[TagFormat] = None

    title: Optional[str] = None
    # only a single artist is modeled
    artist: Optional[str] = None
    album: Optional[str] = None
    album_artist: Optional[str] = None
    disc: Optional[NonNegativeInt] = None
    track: Optional[NonNegativeInt] = None
    duration: Optional[NonNegativeInt] = None  # milliseconds
    image_ids: Tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)

    @classmethod
    def without_tags(cls, path: PathLike, relative_parent_path: str = "") -> "Track":
        """Create a bare record for a file whose tag could not be read."""
        return cls(
            id=compute_id(path),
            path=path_to_str(path),
            relative_parent_path=relative_parent_path,
        )

    @property
    def duration_formatted(self) -> str:
        """Get formatted duration string (mm:ss)."""
        if self.duration is None:
            return "Unknown"
        seconds = self.duration // 1000
        return f"{seconds // 60}:{seconds % 60:02d}"


class Image(BaseModel):
    """Represents an image file found next to audio files."""

    id: str
    path: str
    relative_parent_path: str = ""
    # set by an external thumbnailer, never by the catalog builder
    thumbnail: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_path(cls, path: PathLike, relative_parent_path: str = "") -> "Image":
        """Create an image record for a file."""
        return cls(
            id=compute_id(path),
            path=path_to_str(path),
            relative_parent_path=relative_parent_path,
        )


class Album(BaseModel):
    """An album of one artist.

    ``image_ids`` holds the images of the directory the album was first seen
    in and is not extended afterwards.
    """

    name: str
    track_ids: Tuple[str, ...] = ()
    image_ids: Tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)

    @property
    def track_count(self) -> int:
        """Get number of tracks in the album."""
        return len(self.track_ids)


class Artist(BaseModel):
    """An artist with albums and tracks that have no album tag."""

    name: str
    albums: Dict[str, Album] = {}
    track_ids: Tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)

    @property
    def track_count(self) -> int:
        """Get number of tracks across albums and untagged tracks."""
        return len(self.track_ids) + sum(a.track_count for a in self.albums.values())


class Media(BaseModel):
    """Snapshot of a library produced by one full build."""

    root: str
    tracks: Dict[str, Track] = {}
    images: Dict[str, Image] = {}
    artists: Dict[str, Artist] = {}

    model_config = ConfigDict(frozen=True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the snapshot to JSON-compatible primitives."""
        return self.model_dump(mode="json")

    def to_json(self, indent: Optional[int] = None) -> str:
        """Serialize the snapshot to a JSON string.

        Unknown optional fields are written as explicit nulls.
        """
        return self.model_dump_json(indent=indent)

    @property
    def unlinked_track_ids(self) -> Tuple[str, ...]:
        """Ids of tracks without an artist tag, missing from ``artists``."""
        return tuple(
            sorted(track.id for track in self.tracks.values() if track.artist is None)
        )
