"""Record store gateway for songs.

The single authoritative create/read/delete path for song rows, plus the
list and search queries behind the browsing endpoints.

Key invariants:
- Rows are inserted only with all four text fields present
- Deletion is by primary key only and never touches storage objects
- List queries are newest first (created_at DESC, id DESC)
"""

from uuid import UUID

from sqlalchemy import Select, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from songbird.config import get_settings
from songbird.db.models import Song
from songbird.errors import ApiErrorCode, DeleteError, InsertError, NotFoundError
from songbird.logging import get_logger
from songbird.schemas.songs import SongOut
from songbird.storage.client import StorageClientBase

logger = get_logger(__name__)


def _newest_first(stmt: Select) -> Select:
    return stmt.order_by(Song.created_at.desc(), Song.id.desc())


def _contains_pattern(query: str) -> str:
    """Build an ILIKE substring pattern, escaping LIKE wildcards in the query."""
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def insert_song(
    db: Session,
    user_id: UUID | None,
    title: str,
    artist: str,
    song_path: str,
    image_path: str,
) -> Song:
    """Insert a song row and return it with its assigned id.

    Raises:
        InsertError: A required field is empty or the database rejected the row.
    """
    missing = [
        name
        for name, value in (
            ("title", title),
            ("artist", artist),
            ("song_path", song_path),
            ("image_path", image_path),
        )
        if not value
    ]
    if missing:
        raise InsertError(f"Missing required fields: {', '.join(missing)}")

    song = Song(
        user_id=user_id,
        title=title,
        artist=artist,
        song_path=song_path,
        image_path=image_path,
    )
    try:
        db.add(song)
        db.commit()
        db.refresh(song)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("song_insert_failed", error=str(e))
        raise InsertError("Failed to create song record") from e

    logger.info("song_inserted", song_id=song.id)
    return song


def get_song_by_id(db: Session, song_id: int) -> Song:
    """Point lookup by primary key.

    Raises:
        NotFoundError(E_SONG_NOT_FOUND): No such song.
    """
    song = db.get(Song, song_id)
    if song is None:
        raise NotFoundError(ApiErrorCode.E_SONG_NOT_FOUND, "Song not found")
    return song


def delete_song_by_id(db: Session, song_id: int) -> bool:
    """Delete the row with this id.

    Returns:
        True if a row was deleted, False if none matched.

    Raises:
        DeleteError: The database rejected the delete.
    """
    try:
        result = db.execute(delete(Song).where(Song.id == song_id))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("song_delete_failed", song_id=song_id, error=str(e))
        raise DeleteError("Failed to delete song") from e

    return result.rowcount > 0


def list_songs(db: Session) -> list[Song]:
    """All songs, newest first."""
    return list(db.scalars(_newest_first(select(Song))))


def list_songs_by_user(db: Session, user_id: UUID) -> list[Song]:
    """Songs uploaded by one user, newest first."""
    return list(db.scalars(_newest_first(select(Song).where(Song.user_id == user_id))))


def search_songs_by_title(db: Session, title: str) -> list[Song]:
    """Case-insensitive substring match on title. Blank query returns []."""
    query = (title or "").strip()
    if not query:
        return []
    stmt = select(Song).where(Song.title.ilike(_contains_pattern(query), escape="\\"))
    return list(db.scalars(_newest_first(stmt)))


def search_songs_by_artist(db: Session, artist: str) -> list[Song]:
    """Case-insensitive substring match on artist. Blank query returns []."""
    query = (artist or "").strip()
    if not query:
        return []
    stmt = select(Song).where(Song.artist.ilike(_contains_pattern(query), escape="\\"))
    return list(db.scalars(_newest_first(stmt)))


def song_to_out(song: Song, storage: StorageClientBase) -> SongOut:
    """Serialize a song row with public URLs for its audio and artwork."""
    settings = get_settings()
    return SongOut(
        id=song.id,
        user_id=song.user_id,
        title=song.title,
        artist=song.artist,
        song_path=song.song_path,
        image_path=song.image_path,
        song_url=storage.get_public_url(settings.songs_bucket, song.song_path),
        image_url=storage.get_public_url(settings.images_bucket, song.image_path),
        created_at=song.created_at,
    )
