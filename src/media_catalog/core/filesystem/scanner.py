"""Recursive directory scanner.

Walks a library root and classifies every regular file as audio, image or
unhandled. Each file is tagged with its containing directory relative to the
root, which the library builder uses to group images with nearby tracks.
"""

import logging
import os
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from pathlib import Path, PurePath
from typing import Any, Dict, Iterable, Iterator, List, Union

from ...config import DEFAULT_AUDIO_EXTENSIONS, DEFAULT_IMAGE_EXTENSIONS
from ..identity import path_to_str

logger = logging.getLogger(__name__)


class FileKind(str, Enum):
    """Classification of a scanned file."""

    AUDIO = "audio"
    IMAGE = "image"
    UNHANDLED = "unhandled"


@dataclass(frozen=True)
class ScannedFile:
    """A classified file found during a scan."""

    path: Path
    relative_parent_path: str
    kind: FileKind


@dataclass
class ScanStatistics:
    """Statistics from a directory scan."""

    directories_scanned: int = 0
    audio_files: int = 0
    image_files: int = 0
    unhandled_files: int = 0
    errors: List[str] = dataclass_field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert statistics to dictionary format.

        Returns:
            Dictionary with statistics and limited error list
        """
        return {
            "directories_scanned": self.directories_scanned,
            "audio_files": self.audio_files,
            "image_files": self.image_files,
            "unhandled_files": self.unhandled_files,
            "error_count": len(self.errors),
            "errors": self.errors[:10],  # Limit to first 10 errors
        }


def relative_directory(
    directory: Union[str, PurePath], root: Union[str, PurePath]
) -> str:
    """Get ``directory`` relative to ``root`` as POSIX text.

    Returns:
        Relative directory, ``""`` for the root itself or anything outside it
    """
    try:
        relative = PurePath(directory).relative_to(PurePath(root))
    except ValueError:
        return ""
    if relative == PurePath("."):
        return ""
    return path_to_str(relative.as_posix())


def relative_parent_path(
    path: Union[str, PurePath], root: Union[str, PurePath]
) -> str:
    """Get the containing directory of ``path`` relative to ``root``."""
    return relative_directory(PurePath(path).parent, root)


class DirectoryScanner:
    """Walks a directory tree and classifies the files found."""

    def __init__(
        self,
        root: Union[str, Path],
        audio_extensions: Iterable[str] = DEFAULT_AUDIO_EXTENSIONS,
        image_extensions: Iterable[str] = DEFAULT_IMAGE_EXTENSIONS,
    ) -> None:
        """Initialize directory scanner.

        Args:
            root: Root directory of the library
            audio_extensions: Suffixes classified as audio
            image_extensions: Suffixes classified as images
        """
        self.root = Path(root)
        self.audio_extensions = frozenset(e.lower() for e in audio_extensions)
        self.image_extensions = frozenset(e.lower() for e in image_extensions)
        self._stats = ScanStatistics()

    def classify(self, path: Path) -> FileKind:
        """Classify a file by its extension (case-insensitive)."""
        suffix = path.suffix.lower()
        if suffix in self.audio_extensions:
            return FileKind.AUDIO
        if suffix in self.image_extensions:
            return FileKind.IMAGE
        return FileKind.UNHANDLED

    def scan(self) -> Iterator[ScannedFile]:
        """Walk the root and yield every classified file.

        Entries that cannot be read are logged and skipped; the walk itself
        never aborts on them. Directory symlinks are not followed.

        Yields:
            Scanned files, including unhandled ones

        Raises:
            RuntimeError: If the root directory does not exist
        """
        if not self.root.is_dir():
            raise RuntimeError(f"Library root is not a directory: {self.root}")

        self._stats = ScanStatistics()
        logger.info("Scanning media from: %s", self.root)

        for dirpath, dirnames, filenames in os.walk(self.root, onerror=self._on_error):
            self._stats.directories_scanned += 1
            dirnames.sort()
            relative = relative_directory(dirpath, self.root)

            for filename in sorted(filenames):
                path = Path(dirpath) / filename
                try:
                    is_regular = path.is_file()
                except OSError as e:
                    self._record_error(f"Cannot stat {path}: {e}")
                    continue
                if not is_regular:
                    # broken symlink or special file
                    self._record_error(f"Skipping non-regular file: {path}")
                    continue

                kind = self.classify(path)
                if kind is FileKind.AUDIO:
                    self._stats.audio_files += 1
                elif kind is FileKind.IMAGE:
                    self._stats.image_files += 1
                else:
                    self._stats.unhandled_files += 1
                    logger.debug("Unhandled file type: %s", path)

                yield ScannedFile(path=path, relative_parent_path=relative, kind=kind)

        self._log_scan_summary()

    def _on_error(self, error: OSError) -> None:
        """Record an error raised while listing a directory."""
        self._record_error(f"Cannot read {error.filename}: {error.strerror}")

    def _record_error(self, message: str) -> None:
        logger.warning(message)
        self._stats.errors.append(message)

    def _log_scan_summary(self) -> None:
        """Log summary of scan operation."""
        logger.info(
            "Directory scan complete: %d directories, %d audio files, "
            "%d images, %d unhandled files",
            self._stats.directories_scanned,
            self._stats.audio_files,
            self._stats.image_files,
            self._stats.unhandled_files,
        )
        if self._stats.errors:
            logger.warning("%d errors during scan", len(self._stats.errors))

    def get_scan_statistics(self) -> Dict[str, Any]:
        """Get current scan statistics.

        Returns:
            Dictionary with scan statistics
        """
        return self._stats.to_dict()
