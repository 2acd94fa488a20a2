"""Two-pass library builder.

Pass 1 walks the library, extracts every audio file and fills the flat
track/image maps plus a bucket of ids per directory. Pass 2 links tracks
into the artist/album hierarchy using those buckets, which are only complete
once the whole tree has been walked. Pass 2 never touches the flat maps; the
track/image associations it produces are applied when the snapshot is
assembled.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, TypeVar, Union

from ...config import Config, get_config
from ...models.models import Album, Artist, Image, Media, Track
from ...utils.errors import IdentityCollisionError
from ..filesystem.scanner import DirectoryScanner, FileKind, ScannedFile
from ..identity import path_to_str
from ..metadata.extractor import TagExtractor

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", Track, Image)


@dataclass
class DirectoryContent:
    """Ids found directly inside one directory during a build."""

    image_ids: List[str] = dataclass_field(default_factory=list)
    track_ids: List[str] = dataclass_field(default_factory=list)


@dataclass
class _AlbumEntry:
    name: str
    image_ids: Tuple[str, ...]
    track_ids: List[str] = dataclass_field(default_factory=list)


@dataclass
class _ArtistEntry:
    name: str
    albums: Dict[str, _AlbumEntry] = dataclass_field(default_factory=dict)
    track_ids: List[str] = dataclass_field(default_factory=list)


@dataclass
class BuildStatistics:
    """Statistics from one library build."""

    tracks: int = 0
    tracks_without_tags: int = 0
    images: int = 0
    directories: int = 0
    artists: int = 0
    albums: int = 0
    unlinked_tracks: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert statistics to dictionary format."""
        return {
            "tracks": self.tracks,
            "tracks_without_tags": self.tracks_without_tags,
            "images": self.images,
            "directories": self.directories,
            "artists": self.artists,
            "albums": self.albums,
            "unlinked_tracks": self.unlinked_tracks,
        }


class LibraryBuilder:
    """Builds an immutable Media snapshot from a directory tree."""

    def __init__(
        self,
        config: Optional[Config] = None,
        extractor: Optional[TagExtractor] = None,
    ) -> None:
        """Initialize library builder.

        Args:
            config: Application configuration (extensions, workers, probe limit)
            extractor: Tag extractor; built from the config if omitted
        """
        self.config = config or get_config()
        self.extractor = extractor or TagExtractor(
            max_probe_bytes=self.config.max_probe_bytes
        )
        self._stats = BuildStatistics()

    def build(self, root: Union[str, Path]) -> Media:
        """Run a full build of the library under ``root``.

        Args:
            root: Library root directory

        Returns:
            New Media snapshot

        Raises:
            RuntimeError: If ``root`` is not a directory
            IdentityCollisionError: If two files hash to the same id
        """
        root_path = Path(root)
        self._stats = BuildStatistics()

        tracks, images, directories = self._collect(root_path)
        artists, track_images = self._link(tracks, directories)
        media = self._assemble(root_path, tracks, images, artists, track_images)

        self._stats.directories = len(directories)
        self._log_build_summary(root_path)
        return media

    def get_build_statistics(self) -> Dict[str, Any]:
        """Get statistics of the last build."""
        return self._stats.to_dict()

    # =========================================================================
    # Pass 1: collect
    # =========================================================================

    def _collect(
        self, root: Path
    ) -> Tuple[Dict[str, Track], Dict[str, Image], Dict[str, DirectoryContent]]:
        """Walk the tree and fill the flat maps and directory buckets."""
        scanner = DirectoryScanner(
            root,
            audio_extensions=self.config.audio_extensions,
            image_extensions=self.config.image_extensions,
        )

        tracks: Dict[str, Track] = {}
        images: Dict[str, Image] = {}
        directories: Dict[str, DirectoryContent] = {}
        audio_files: List[ScannedFile] = []
        # id -> path bytes as found on disk
        raw_paths: Dict[str, bytes] = {}

        for scanned in scanner.scan():
            if scanned.kind is FileKind.AUDIO:
                audio_files.append(scanned)
            elif scanned.kind is FileKind.IMAGE:
                image = Image.from_path(scanned.path, scanned.relative_parent_path)
                self._insert(images, raw_paths, image, scanned.path)
                directories.setdefault(
                    scanned.relative_parent_path, DirectoryContent()
                ).image_ids.append(image.id)

        tracks_found = self._extract_all(audio_files)
        for scanned, track in zip(audio_files, tracks_found):
            self._insert(tracks, raw_paths, track, scanned.path)
            directories.setdefault(
                track.relative_parent_path, DirectoryContent()
            ).track_ids.append(track.id)

        for content in directories.values():
            content.image_ids.sort()
            content.track_ids.sort()

        self._stats.tracks = len(tracks)
        self._stats.tracks_without_tags = sum(
            1 for track in tracks.values() if track.tag_format is None
        )
        self._stats.images = len(images)
        return tracks, images, directories

    def _extract_all(self, audio_files: List[ScannedFile]) -> List[Track]:
        """Extract every audio file, optionally on a thread pool.

        All extraction finishes before this returns, so linking never
        overlaps with it.
        """
        workers = self.config.extract_workers
        if workers <= 1 or len(audio_files) <= 1:
            return [self._extract_one(scanned) for scanned in audio_files]

        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self._extract_one, audio_files))

    def _extract_one(self, scanned: ScannedFile) -> Track:
        return self.extractor.extract(scanned.path, scanned.relative_parent_path)

    @staticmethod
    def _insert(
        arena: Dict[str, RecordT],
        raw_paths: Dict[str, bytes],
        record: RecordT,
        path: Path,
    ) -> None:
        """Add a record to a flat map, refusing id collisions.

        Paths are compared as raw bytes: names that only differ in bytes
        which are not valid UTF-8 share their lossy text and therefore
        their id.
        """
        raw_path = os.fsencode(path)
        existing = raw_paths.get(record.id)
        if existing is not None and existing != raw_path:
            raise IdentityCollisionError(
                record.id, os.fsdecode(existing), os.fsdecode(raw_path)
            )
        raw_paths[record.id] = raw_path
        arena[record.id] = record

    # =========================================================================
    # Pass 2: link
    # =========================================================================

    def _link(
        self, tracks: Dict[str, Track], directories: Dict[str, DirectoryContent]
    ) -> Tuple[Dict[str, _ArtistEntry], Dict[str, Tuple[str, ...]]]:
        """Link tracks into the artist/album hierarchy.

        Only the track's own directory is consulted for images. Artist and
        album names are grouped by exact string equality.

        Returns:
            Artist index and the images to attach to tracks without an album
        """
        artists: Dict[str, _ArtistEntry] = {}
        track_images: Dict[str, Tuple[str, ...]] = {}
        empty = DirectoryContent()

        for track in sorted(tracks.values(), key=lambda t: t.path):
            if track.artist is None:
                self._stats.unlinked_tracks += 1
                continue

            content = directories.get(track.relative_parent_path, empty)
            associated_images = tuple(content.image_ids)

            artist = artists.get(track.artist)
            if artist is None:
                artist = artists[track.artist] = _ArtistEntry(name=track.artist)

            if track.album is not None:
                album = artist.albums.get(track.album)
                if album is None:
                    # images are fixed when the album is first seen
                    album = artist.albums[track.album] = _AlbumEntry(
                        name=track.album, image_ids=associated_images
                    )
                if track.id not in album.track_ids:
                    album.track_ids.append(track.id)
            else:
                artist.track_ids.append(track.id)
                track_images[track.id] = associated_images

        return artists, track_images

    # =========================================================================
    # Snapshot
    # =========================================================================

    def _assemble(
        self,
        root: Path,
        tracks: Dict[str, Track],
        images: Dict[str, Image],
        artists: Dict[str, _ArtistEntry],
        track_images: Dict[str, Tuple[str, ...]],
    ) -> Media:
        """Freeze the collected records and indexes into a Media snapshot."""
        final_tracks: Dict[str, Track] = {}
        for track in sorted(tracks.values(), key=lambda t: t.path):
            image_ids = track_images.get(track.id)
            if image_ids:
                track = track.model_copy(update={"image_ids": image_ids})
            final_tracks[track.id] = track

        final_artists: Dict[str, Artist] = {}
        for name in sorted(artists):
            entry = artists[name]
            final_artists[name] = Artist(
                name=entry.name,
                albums={
                    album_name: Album(
                        name=album.name,
                        track_ids=tuple(album.track_ids),
                        image_ids=album.image_ids,
                    )
                    for album_name, album in sorted(entry.albums.items())
                },
                track_ids=tuple(entry.track_ids),
            )
            self._stats.albums += len(entry.albums)
        self._stats.artists = len(final_artists)

        return Media(
            root=path_to_str(root),
            tracks=final_tracks,
            images={i.id: i for i in sorted(images.values(), key=lambda i: i.path)},
            artists=final_artists,
        )

    def _log_build_summary(self, root: Path) -> None:
        stats = self._stats
        logger.info(
            "Built library for %s: %d tracks (%d without tags), %d images, "
            "%d artists, %d albums, %d tracks without artist",
            root,
            stats.tracks,
            stats.tracks_without_tags,
            stats.images,
            stats.artists,
            stats.albums,
            stats.unlinked_tracks,
        )


def build(root: Union[str, Path], config: Optional[Config] = None) -> Media:
    """Build a Media snapshot of the library under ``root``.

    Every call is a full rebuild.
    """
    return LibraryBuilder(config).build(root)
