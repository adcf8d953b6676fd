"""Current user endpoints.

All routes here require authentication.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from songbird.api.deps import get_db, get_storage
from songbird.auth.identity import SessionContext
from songbird.auth.middleware import Viewer, get_session, get_viewer
from songbird.responses import success_response
from songbird.services import likes as likes_service
from songbird.services import songs as songs_service
from songbird.storage.client import StorageClientBase

router = APIRouter()


@router.get("/me")
async def get_me(viewer: Annotated[Viewer, Depends(get_viewer)]) -> dict:
    return success_response({"user_id": str(viewer.user_id)})


@router.get("/me/songs")
def list_my_songs(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[StorageClientBase, Depends(get_storage)],
) -> dict:
    """Songs uploaded by the viewer, newest first."""
    songs = songs_service.list_songs_by_user(db, viewer.user_id)
    return success_response(
        [songs_service.song_to_out(song, storage).model_dump(mode="json") for song in songs]
    )


@router.get("/me/liked")
def list_my_liked_songs(
    session: Annotated[SessionContext | None, Depends(get_session)],
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[StorageClientBase, Depends(get_storage)],
) -> dict:
    """Songs the viewer liked, most recently liked first."""
    songs = likes_service.list_liked_songs(db, session)
    return success_response(
        [songs_service.song_to_out(song, storage).model_dump(mode="json") for song in songs]
    )
