"""SQLAlchemy database models for catalog snapshots."""

from typing import Optional

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..core.identity import ID_LENGTH


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class TrackRecord(Base):
    """A track row, the flat form of ``models.Track``."""

    __tablename__ = "tracks"

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    path: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    relative_parent_path: Mapped[str] = mapped_column(
        Text, nullable=False, index=True
    )
    tag_format: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    artist: Mapped[Optional[str]] = mapped_column(Text, nullable=True, index=True)
    album: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    album_artist: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    disc: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    track: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    duration: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True
    )  # milliseconds

    def __repr__(self) -> str:
        """String representation of TrackRecord."""
        return f"<TrackRecord(id={self.id}, path='{self.path}')>"


class ImageRecord(Base):
    """An image row."""

    __tablename__ = "images"

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    path: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    relative_parent_path: Mapped[str] = mapped_column(
        Text, nullable=False, index=True
    )

    def __repr__(self) -> str:
        """String representation of ImageRecord."""
        return f"<ImageRecord(id={self.id}, path='{self.path}')>"
