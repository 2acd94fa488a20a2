"""Media catalog builder.

Scans a local music folder, reads the tags of its audio files and organizes
them into an artist -> album -> track hierarchy, with cover images taken
from the same folders.
"""

__version__ = "0.1.0"
__author__ = "Anton"
__email__ = ""

from .config import Config
from .core.identity import compute_id
from .core.library import LibraryBuilder, build
from .models import Album, Artist, Image, Media, TagFormat, Track

__all__ = [
    "Config",
    "compute_id",
    "LibraryBuilder",
    "build",
    "Track",
    "Image",
    "Album",
    "Artist",
    "Media",
    "TagFormat",
]
