"""SQLAlchemy ORM models for Songbird.

Defines the songs and liked_songs tables using SQLAlchemy 2.x declarative
patterns. Column types are portable so the same models run on Supabase
Postgres and on SQLite in tests.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# BIGINT identity on Postgres; SQLite only autoincrements INTEGER PRIMARY KEY
SongId = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class Song(Base):
    """A track.

    Created only by the upload saga and removed only by the delete saga;
    rows are never updated in place. song_path / image_path are keys in the
    songs and images storage buckets.
    """

    __tablename__ = "songs"

    id: Mapped[int] = mapped_column(SongId, primary_key=True, autoincrement=True)
    user_id: Mapped[UUID | None] = mapped_column(Uuid(), nullable=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    artist: Mapped[str] = mapped_column(Text, nullable=False)
    song_path: Mapped[str] = mapped_column(Text, nullable=False)
    image_path: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    likes: Mapped[list["LikedSong"]] = relationship(
        "LikedSong",
        back_populates="song",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_songs_created_at", "created_at"),
        Index("idx_songs_user_id", "user_id"),
    )


class LikedSong(Base):
    """Join row between a user and a song they liked.

    The composite primary key allows at most one row per (user_id, song_id).
    """

    __tablename__ = "liked_songs"

    user_id: Mapped[UUID] = mapped_column(Uuid(), primary_key=True)
    song_id: Mapped[int] = mapped_column(
        SongId,
        ForeignKey("songs.id", ondelete="CASCADE"),
        primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    song: Mapped[Song] = relationship("Song", back_populates="likes")
