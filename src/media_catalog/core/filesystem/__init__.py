"""Filesystem module.

Handles scanning and classifying local media files.
"""

from .scanner import (
    DirectoryScanner,
    FileKind,
    ScannedFile,
    ScanStatistics,
    relative_directory,
    relative_parent_path,
)

__all__ = [
    "DirectoryScanner",
    "FileKind",
    "ScannedFile",
    "ScanStatistics",
    "relative_directory",
    "relative_parent_path",
]
