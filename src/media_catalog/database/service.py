"""Database service for persisting catalog snapshots."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import create_engine, delete, func, inspect, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..core.library.builder import LibraryBuilder
from ..models.models import Image, Media, TagFormat, Track
from ..utils.errors import PersistenceError
from .models import Base, ImageRecord, TrackRecord

logger = logging.getLogger(__name__)

IN_MEMORY = ":memory:"


def track_to_record(track: Track) -> TrackRecord:
    """Convert a Track model to a database row."""
    return TrackRecord(
        id=track.id,
        path=track.path,
        relative_parent_path=track.relative_parent_path,
        tag_format=track.tag_format.value if track.tag_format else None,
        title=track.title,
        artist=track.artist,
        album=track.album,
        album_artist=track.album_artist,
        disc=track.disc,
        track=track.track,
        duration=track.duration,
    )


def record_to_track(record: TrackRecord) -> Track:
    """Convert a database row back to a Track model.

    Image associations are not stored, so ``image_ids`` is empty.
    """
    return Track(
        id=record.id,
        path=record.path,
        relative_parent_path=record.relative_parent_path,
        tag_format=TagFormat(record.tag_format) if record.tag_format else None,
        title=record.title,
        artist=record.artist,
        album=record.album,
        album_artist=record.album_artist,
        disc=record.disc,
        track=record.track,
        duration=record.duration,
    )


def image_to_record(image: Image) -> ImageRecord:
    """Convert an Image model to a database row."""
    return ImageRecord(
        id=image.id,
        path=image.path,
        relative_parent_path=image.relative_parent_path,
    )


class DatabaseService:
    """Service for storing snapshots and querying the stored records."""

    def __init__(
        self,
        db_path: Optional[Union[str, Path]] = None,
        builder: Optional[LibraryBuilder] = None,
        batch_size: int = 500,
    ) -> None:
        """Initialize database service and create the schema.

        Args:
            db_path: Path to SQLite database file. None or ":memory:" keeps
                the database in memory.
            builder: Library builder used by ``populate``
            batch_size: Number of rows added between flushes
        """
        self.builder = builder or LibraryBuilder()
        self.batch_size = max(1, batch_size)
        self.last_error: Optional[PersistenceError] = None

        if db_path is None or str(db_path) == IN_MEMORY:
            self.db_path: Optional[Path] = None
            # one shared connection, otherwise every session sees an empty db
            self.engine = create_engine(
                "sqlite://",
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.db_path = Path(db_path)
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.engine = create_engine(f"sqlite:///{self.db_path}", echo=False)

        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, bind=self.engine
        )

        self.init_db()
        logger.info("Database initialized at: %s", self.db_path or IN_MEMORY)

    def init_db(self) -> None:
        """Create the track and image tables if missing."""
        Base.metadata.create_all(bind=self.engine)
        logger.debug("Database schema created successfully")

    def get_session(self) -> Session:
        """Get a new database session.

        Returns:
            SQLAlchemy Session object

        Note:
            Caller is responsible for closing the session
        """
        return self.SessionLocal()

    def is_initialized(self) -> bool:
        """Check that both tables exist."""
        inspector = inspect(self.engine)
        return inspector.has_table("tracks") and inspector.has_table("images")

    def close(self) -> None:
        """Close database connections."""
        self.engine.dispose()
        logger.debug("Database connections closed")

    # =========================================================================
    # Snapshot Operations
    # =========================================================================

    def populate(self, root: Union[str, Path]) -> Media:
        """Build the library under ``root`` and store it.

        The snapshot is returned whether or not storing it succeeded; a
        storage failure is logged and kept in ``last_error``.

        Args:
            root: Library root directory

        Returns:
            The in-memory Media snapshot
        """
        self.last_error = None
        media = self.builder.build(root)

        try:
            self.save_snapshot(media)
        except PersistenceError as e:
            self.last_error = e

        return media

    def save_snapshot(self, media: Media) -> None:
        """Replace all stored rows with the records of ``media``.

        Runs in a single transaction: either the whole snapshot is stored or
        the previous contents are left untouched.

        Args:
            media: Snapshot to store

        Raises:
            PersistenceError: If any row could not be written
        """
        session = self.get_session()
        try:
            with session.begin():
                session.execute(delete(TrackRecord))
                session.execute(delete(ImageRecord))

                pending = 0
                for track in media.tracks.values():
                    session.add(track_to_record(track))
                    pending += 1
                    if pending % self.batch_size == 0:
                        session.flush()

                for image in media.images.values():
                    session.add(image_to_record(image))
                    pending += 1
                    if pending % self.batch_size == 0:
                        session.flush()
        except Exception as e:
            logger.error(
                "Failed to store snapshot of %s, rolled back: %s", media.root, e
            )
            raise PersistenceError(f"Failed to store snapshot: {e}") from e
        finally:
            session.close()

        logger.info(
            "Stored %d tracks and %d images", len(media.tracks), len(media.images)
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_track(self, track_id: str) -> Optional[Track]:
        """Get a stored track by id.

        Args:
            track_id: Track id

        Returns:
            Track or None if not found
        """
        with self.get_session() as session:
            record = session.get(TrackRecord, track_id)
            return record_to_track(record) if record else None

    def get_image(self, image_id: str) -> Optional[Image]:
        """Get a stored image by id."""
        with self.get_session() as session:
            record = session.get(ImageRecord, image_id)
            if record is None:
                return None
            return Image(
                id=record.id,
                path=record.path,
                relative_parent_path=record.relative_parent_path,
            )

    def get_tracks_in_directory(self, relative_parent_path: str) -> List[Track]:
        """Get tracks stored directly inside a directory.

        Args:
            relative_parent_path: Directory relative to the library root

        Returns:
            Tracks ordered by path
        """
        with self.get_session() as session:
            stmt = (
                select(TrackRecord)
                .where(TrackRecord.relative_parent_path == relative_parent_path)
                .order_by(TrackRecord.path)
            )
            return [record_to_track(r) for r in session.scalars(stmt)]

    def get_tracks_by_artist(self, artist: str) -> List[Track]:
        """Get tracks with an exact artist match, ordered by album and number."""
        with self.get_session() as session:
            stmt = (
                select(TrackRecord)
                .where(TrackRecord.artist == artist)
                .order_by(
                    TrackRecord.album,
                    TrackRecord.disc,
                    TrackRecord.track,
                    TrackRecord.path,
                )
            )
            return [record_to_track(r) for r in session.scalars(stmt)]

    def get_statistics(self) -> Dict[str, Any]:
        """Get row counts of the stored snapshot.

        Returns:
            Dictionary with track, image, artist and untagged track counts
        """
        with self.get_session() as session:
            tracks = session.scalar(select(func.count()).select_from(TrackRecord))
            images = session.scalar(select(func.count()).select_from(ImageRecord))
            artists = session.scalar(
                select(func.count(func.distinct(TrackRecord.artist)))
            )
            untagged = session.scalar(
                select(func.count())
                .select_from(TrackRecord)
                .where(TrackRecord.tag_format.is_(None))
            )
        return {
            "tracks": tracks or 0,
            "images": images or 0,
            "artists": artists or 0,
            "untagged_tracks": untagged or 0,
        }
