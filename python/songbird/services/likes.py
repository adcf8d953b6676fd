"""Like/unlike service.

A like is a (user_id, song_id) row in liked_songs. Both like and unlike are
idempotent: liking twice leaves one row, unliking a song that was never
liked succeeds without changes. Likes disappear with their song through the
ON DELETE CASCADE foreign key.
"""

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from songbird.auth.identity import SessionContext, verify_identity
from songbird.db.models import LikedSong, Song
from songbird.db.session import transaction
from songbird.logging import get_logger
from songbird.schemas.songs import LikeStatusResponse
from songbird.services.songs import get_song_by_id

logger = get_logger(__name__)


def is_liked(db: Session, session: SessionContext | None, song_id: int) -> bool:
    """Whether the session's user likes this song. Anonymous viewers never do."""
    if session is None:
        return False
    row = db.get(LikedSong, (session.user_id, song_id))
    return row is not None


def like_song(db: Session, session: SessionContext | None, song_id: int) -> LikeStatusResponse:
    """Mark a song as liked by the session's user.

    Raises:
        AuthFailure: No valid session.
        NotFoundError(E_SONG_NOT_FOUND): No such song.
    """
    user_id = verify_identity(session, "like songs").user_id
    get_song_by_id(db, song_id)

    if db.get(LikedSong, (user_id, song_id)) is not None:
        return LikeStatusResponse(song_id=song_id, liked=True, changed=False)

    db.add(LikedSong(user_id=user_id, song_id=song_id))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        # A concurrent like of the same pair already landed
        if db.get(LikedSong, (user_id, song_id)) is not None:
            return LikeStatusResponse(song_id=song_id, liked=True, changed=False)
        # Otherwise the song was deleted underneath us
        get_song_by_id(db, song_id)
        raise

    logger.info("song_liked", song_id=song_id)
    return LikeStatusResponse(song_id=song_id, liked=True, changed=True)


def unlike_song(db: Session, session: SessionContext | None, song_id: int) -> LikeStatusResponse:
    """Remove the session user's like from a song.

    Raises:
        AuthFailure: No valid session.
    """
    user_id = verify_identity(session, "unlike songs").user_id

    with transaction(db):
        result = db.execute(
            delete(LikedSong).where(LikedSong.user_id == user_id, LikedSong.song_id == song_id)
        )

    removed = result.rowcount > 0
    if removed:
        logger.info("song_unliked", song_id=song_id)
    return LikeStatusResponse(song_id=song_id, liked=False, changed=removed)


def list_liked_songs(db: Session, session: SessionContext | None) -> list[Song]:
    """Songs the session's user liked, most recently liked first.

    Raises:
        AuthFailure: No valid session.
    """
    user_id = verify_identity(session, "view liked songs").user_id
    stmt = (
        select(Song)
        .join(LikedSong, LikedSong.song_id == Song.id)
        .where(LikedSong.user_id == user_id)
        .order_by(LikedSong.created_at.desc(), Song.id.desc())
    )
    return list(db.scalars(stmt))
