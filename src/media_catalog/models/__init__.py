"""Models for the media catalog."""

from .models import Album, Artist, Image, Media, TagFormat, Track

__all__ = [
    "Track",
    "Image",
    "Album",
    "Artist",
    "Media",
    "TagFormat",
]
