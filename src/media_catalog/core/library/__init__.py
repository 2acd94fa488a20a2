"""Library module.

Builds the artist/album/track hierarchy from scanned files.
"""

from .builder import BuildStatistics, DirectoryContent, LibraryBuilder, build

__all__ = [
    "LibraryBuilder",
    "BuildStatistics",
    "DirectoryContent",
    "build",
]
