"""Track duration probing from the raw audio stream.

Used when a tag carries no duration of its own. The stream header is decoded
with mutagen to get the sample rate, the number of frames and any gapless
priming/padding samples.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Tuple

import mutagen

from ...utils.errors import ProbeError, ProbeFailure

logger = logging.getLogger(__name__)

ITUNSMPB_KEY = "----:com.apple.iTunes:iTunSMPB"


@dataclass(frozen=True)
class StreamInfo:
    """Sample layout of a decoded audio stream."""

    sample_rate: int
    frames: int
    delay: int = 0
    padding: int = 0


def compute_duration_ms(info: StreamInfo) -> int:
    """Compute the playable duration of a stream in milliseconds.

    Args:
        info: Stream sample layout

    Returns:
        ``round((frames - delay - padding) / sample_rate * 1000)``

    Raises:
        ProbeError: If the sample rate is missing or the trimmed frame count
            is negative
    """
    if info.sample_rate <= 0:
        raise ProbeError(ProbeFailure.UNSUPPORTED, "stream has no sample rate")

    playable = info.frames - info.delay - info.padding
    if playable < 0:
        raise ProbeError(
            ProbeFailure.MALFORMED,
            f"{info.frames} frames cannot hold {info.delay} delay "
            f"and {info.padding} padding samples",
        )
    return round(playable / info.sample_rate * 1000)


def parse_itunsmpb(value: str) -> Optional[Tuple[int, int, int]]:
    """Parse an iTunes gapless info string.

    The value is a list of hex words; the second, third and fourth hold the
    priming samples, the padding samples and the number of valid samples.

    Returns:
        ``(delay, padding, valid_samples)`` or None if the value is malformed
    """
    words = value.split()
    if len(words) < 4:
        return None
    try:
        delay, padding, valid = (int(word, 16) for word in words[1:4])
    except ValueError:
        return None
    return delay, padding, valid


def read_gapless_info(audio: Any) -> Optional[Tuple[int, int, int]]:
    """Read iTunes gapless info from a mutagen file, if tagged.

    Only MP4 files carry the freeform iTunSMPB atom; other tag types just
    lack the key.
    """
    tags = getattr(audio, "tags", None)
    if not tags or not hasattr(tags, "get"):
        return None
    values = tags.get(ITUNSMPB_KEY)
    if not values:
        return None
    raw = bytes(values[0]).decode("ascii", errors="replace")
    return parse_itunsmpb(raw)


def read_stream_info(path: Path, max_bytes: Optional[int] = None) -> StreamInfo:
    """Decode the container header of an audio file.

    Args:
        path: Audio file path
        max_bytes: Refuse to probe files larger than this

    Returns:
        Stream sample layout

    Raises:
        ProbeError: If the stream cannot be probed
    """
    try:
        with open(path, "rb") as fileobj:
            size = os.fstat(fileobj.fileno()).st_size
            if max_bytes is not None and size > max_bytes:
                raise ProbeError(
                    ProbeFailure.LIMIT,
                    f"{size} bytes exceeds probe limit of {max_bytes}",
                )
            audio = mutagen.File(fileobj)
    except ProbeError:
        raise
    except OSError as e:
        raise ProbeError(ProbeFailure.IO, str(e)) from e
    except mutagen.MutagenError as e:
        cause = e.__cause__ or e.__context__
        if isinstance(cause, OSError):
            raise ProbeError(ProbeFailure.IO, str(e)) from e
        raise ProbeError(ProbeFailure.MALFORMED, str(e)) from e

    if audio is None or audio.info is None:
        raise ProbeError(ProbeFailure.UNSUPPORTED)

    sample_rate = int(getattr(audio.info, "sample_rate", 0) or 0)
    if sample_rate <= 0:
        raise ProbeError(ProbeFailure.UNSUPPORTED, "stream has no sample rate")

    gapless = read_gapless_info(audio)
    if gapless is not None:
        delay, padding, valid = gapless
        return StreamInfo(sample_rate, valid + delay + padding, delay, padding)

    # mutagen reports MPEG length with LAME encoder delay already removed
    length = float(getattr(audio.info, "length", 0.0) or 0.0)
    return StreamInfo(sample_rate, round(length * sample_rate))


def probe_duration(path: Path, max_bytes: Optional[int] = None) -> Optional[int]:
    """Probe the duration of an audio file in milliseconds.

    Failures are logged and reported as an unknown duration.

    Args:
        path: Audio file path
        max_bytes: Refuse to probe files larger than this

    Returns:
        Duration in milliseconds or None if it could not be determined
    """
    try:
        return compute_duration_ms(read_stream_info(path, max_bytes))
    except ProbeError as e:
        logger.warning("Error while reading track duration of %s: %s", path, e)
        return None
