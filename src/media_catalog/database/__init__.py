"""Database package for storing catalog snapshots."""

from .models import Base, ImageRecord, TrackRecord
from .service import DatabaseService, image_to_record, record_to_track, track_to_record

__all__ = [
    "Base",
    "TrackRecord",
    "ImageRecord",
    "DatabaseService",
    "track_to_record",
    "record_to_track",
    "image_to_record",
]
