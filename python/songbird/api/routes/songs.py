"""Song routes.

Routes are transport-only:
- Read the caller's session from request.state (None when anonymous)
- Call exactly one service function
- Return success(...) or raise ApiError

Browsing is public; upload and delete pass the session into the saga, which
performs the auth check itself.

IMPORTANT: /songs/search must be registered BEFORE /songs/{song_id}.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from songbird.api.deps import get_db, get_storage
from songbird.auth.identity import SessionContext
from songbird.auth.middleware import get_session
from songbird.config import get_settings
from songbird.responses import success_response, unwrap
from songbird.schemas.songs import DeleteSongResponse, SearchField, UploadSongResponse
from songbird.services import deletion as deletion_service
from songbird.services import search as search_service
from songbird.services import songs as songs_service
from songbird.services import upload as upload_service
from songbird.storage.client import StorageClientBase

router = APIRouter()


def _to_uploaded_file(
    upload: UploadFile | None, max_bytes: int
) -> upload_service.UploadedFile | None:
    """Read at most max_bytes + 1 bytes, enough for the saga to reject oversized files."""
    if upload is None:
        return None
    return upload_service.UploadedFile(
        filename=upload.filename or "",
        content_type=upload.content_type,
        data=upload.file.read(max_bytes + 1),
    )


@router.get("/songs")
def list_songs(
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[StorageClientBase, Depends(get_storage)],
) -> dict:
    """List all songs, newest first."""
    songs = songs_service.list_songs(db)
    return success_response(
        [songs_service.song_to_out(song, storage).model_dump(mode="json") for song in songs]
    )


@router.get("/songs/search")
def search_songs(
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[StorageClientBase, Depends(get_storage)],
    q: Annotated[str, Query(description="Case-insensitive substring to match")] = "",
    field: Annotated[SearchField, Query(description="Which column(s) to search")] = "all",
) -> dict:
    """Search songs by title and/or artist. A blank query matches nothing."""
    songs = search_service.search_songs(db, q, field=field)
    return success_response(
        [songs_service.song_to_out(song, storage).model_dump(mode="json") for song in songs]
    )


@router.get("/songs/{song_id}")
def get_song(
    song_id: int,
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[StorageClientBase, Depends(get_storage)],
) -> dict:
    song = songs_service.get_song_by_id(db, song_id)
    return success_response(songs_service.song_to_out(song, storage).model_dump(mode="json"))


@router.post("/songs", status_code=201)
def upload_song(
    session: Annotated[SessionContext | None, Depends(get_session)],
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[StorageClientBase, Depends(get_storage)],
    title: Annotated[str, Form()] = "",
    artist: Annotated[str, Form()] = "",
    song: Annotated[UploadFile | None, File()] = None,
    image: Annotated[UploadFile | None, File()] = None,
) -> dict:
    """Upload a song (multipart: title, artist, song, image).

    Runs the upload saga; on failure any stored objects are removed before
    the error is returned.
    """
    settings = get_settings()
    upload = upload_service.SongUpload(
        title=title,
        artist=artist,
        song_file=_to_uploaded_file(song, settings.max_song_bytes),
        image_file=_to_uploaded_file(image, settings.max_image_bytes),
    )
    created = unwrap(upload_service.upload_song(db, storage, session, upload))
    response = UploadSongResponse(song=songs_service.song_to_out(created, storage))
    return success_response(response.model_dump(mode="json"))


@router.delete("/songs/{song_id}")
def delete_song(
    song_id: int,
    session: Annotated[SessionContext | None, Depends(get_session)],
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[StorageClientBase, Depends(get_storage)],
) -> dict:
    """Delete a song, its likes, and (best-effort) its storage objects."""
    data = unwrap(deletion_service.delete_song(db, storage, session, song_id))
    return success_response(DeleteSongResponse(**data).model_dump(mode="json"))
