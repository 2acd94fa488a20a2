"""Deterministic short ids derived from file paths."""

import base64
import hashlib
import os
from pathlib import Path
from typing import Union

ID_LENGTH = 16

PathLike = Union[str, Path]


def path_to_str(path: PathLike) -> str:
    """Convert a path to text, replacing undecodable bytes with U+FFFD.

    Paths coming from ``os.walk`` may carry surrogate escapes for bytes that
    are not valid UTF-8. Those are re-encoded to the original bytes and then
    decoded lossily so the result is always printable and hashable.

    Args:
        path: Path as walked, not canonicalized

    Returns:
        Lossy text form of the path
    """
    return os.fsencode(path).decode("utf-8", errors="replace")


def compute_id(path: PathLike) -> str:
    """Compute the id of a file from its path.

    The id is the SHA-1 of the UTF-8 path text, URL-safe base64 encoded
    without padding and truncated to ``ID_LENGTH`` characters. The path is
    hashed as given, so ``music/a.mp3`` and ``/home/me/music/a.mp3`` differ.

    Args:
        path: File path

    Returns:
        Short opaque id
    """
    digest = hashlib.sha1(
        path_to_str(path).encode("utf-8"), usedforsecurity=False
    ).digest()
    encoded = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return encoded[:ID_LENGTH]
