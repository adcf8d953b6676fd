"""Like routes.

GET reports the caller's like status (false for anonymous callers); PUT and
DELETE are idempotent.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from songbird.api.deps import get_db
from songbird.auth.identity import SessionContext
from songbird.auth.middleware import get_session
from songbird.responses import success_response
from songbird.schemas.songs import LikeStatusResponse
from songbird.services import likes as likes_service

router = APIRouter()


@router.get("/songs/{song_id}/like")
def get_like_status(
    song_id: int,
    session: Annotated[SessionContext | None, Depends(get_session)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    liked = likes_service.is_liked(db, session, song_id)
    return success_response(
        LikeStatusResponse(song_id=song_id, liked=liked).model_dump(mode="json")
    )


@router.put("/songs/{song_id}/like")
def like_song(
    song_id: int,
    session: Annotated[SessionContext | None, Depends(get_session)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = likes_service.like_song(db, session, song_id)
    return success_response(result.model_dump(mode="json"))


@router.delete("/songs/{song_id}/like")
def unlike_song(
    song_id: int,
    session: Annotated[SessionContext | None, Depends(get_session)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = likes_service.unlike_song(db, session, song_id)
    return success_response(result.model_dump(mode="json"))
