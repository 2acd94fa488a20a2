"""Tag extraction and duration probing."""

from .duration import StreamInfo, compute_duration_ms, probe_duration
from .extractor import (
    ExtractionFailure,
    Id3TagReader,
    Mp4TagReader,
    TagExtractor,
    TagFields,
    TagReader,
    parse_number,
)

__all__ = [
    "StreamInfo",
    "compute_duration_ms",
    "probe_duration",
    "ExtractionFailure",
    "TagExtractor",
    "TagFields",
    "TagReader",
    "Id3TagReader",
    "Mp4TagReader",
    "parse_number",
]
