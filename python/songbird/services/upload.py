"""Song upload saga.

Creates a song from an audio file and an artwork file:

    AUTH_CHECK -> VALIDATE_INPUT -> UPLOAD_AUDIO -> UPLOAD_IMAGE -> INSERT_RECORD

Key invariants:
- Auth and validation fail before any remote call
- The row is inserted only after both objects exist
- On failure, exactly the objects this invocation created are removed
  (image failure removes the audio; insert failure removes both)
- No step is retried; the caller may retry the whole upload
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from songbird.auth.identity import SessionContext, verify_identity
from songbird.config import get_settings
from songbird.errors import ApiErrorCode, UploadError, ValidationFailure
from songbird.logging import get_logger
from songbird.services.saga import Saga, SagaResult
from songbird.services.sanitize import (
    AUDIO_EXTENSIONS,
    DEFAULT_AUDIO_EXTENSION,
    DEFAULT_IMAGE_EXTENSION,
    IMAGE_EXTENSIONS,
    get_file_extension,
    normalize_text,
)
from songbird.services.songs import insert_song
from songbird.storage.client import StorageClientBase, StorageError
from songbird.storage.paths import build_storage_key

logger = get_logger(__name__)

DEFAULT_AUDIO_CONTENT_TYPE = "audio/mpeg"
DEFAULT_IMAGE_CONTENT_TYPE = "image/jpeg"


class UploadStep(str, Enum):
    AUTH_CHECK = "auth_check"
    VALIDATE_INPUT = "validate_input"
    UPLOAD_AUDIO = "upload_audio"
    UPLOAD_IMAGE = "upload_image"
    INSERT_RECORD = "insert_record"


@dataclass(frozen=True)
class UploadedFile:
    """A file received from the client."""

    filename: str
    content_type: str | None
    data: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class SongUpload:
    """Raw upload form: free-text title/artist plus the two files."""

    title: str
    artist: str
    song_file: UploadedFile | None
    image_file: UploadedFile | None


def _mib(size_bytes: int) -> str:
    return f"{size_bytes // (1024 * 1024)}MB"


def _validate(upload: SongUpload) -> tuple[str, str]:
    """Check files and text, returning the normalized (title, artist).

    Raises:
        ValidationFailure: With a message naming the first problem found.
    """
    settings = get_settings()

    if not upload.song_file or not upload.song_file.data:
        raise ValidationFailure(ApiErrorCode.E_FILE_MISSING, "Please select a song file")
    if not upload.image_file or not upload.image_file.data:
        raise ValidationFailure(ApiErrorCode.E_FILE_MISSING, "Please select an image")

    title = normalize_text(upload.title)
    if not title:
        raise ValidationFailure(ApiErrorCode.E_NAME_INVALID, "Song title is required")
    artist = normalize_text(upload.artist)
    if not artist:
        raise ValidationFailure(ApiErrorCode.E_NAME_INVALID, "Artist name is required")

    if upload.song_file.size_bytes > settings.max_song_bytes:
        raise ValidationFailure(
            ApiErrorCode.E_FILE_TOO_LARGE,
            f"Song file is too large. Maximum size is {_mib(settings.max_song_bytes)}",
        )
    if upload.image_file.size_bytes > settings.max_image_bytes:
        raise ValidationFailure(
            ApiErrorCode.E_FILE_TOO_LARGE,
            f"Image file is too large. Maximum size is {_mib(settings.max_image_bytes)}",
        )

    return title, artist


def _upload_steps(db: Session, storage: StorageClientBase, upload: SongUpload) -> list:
    settings = get_settings()

    def validate_input(ctx: dict[str, Any]) -> None:
        ctx["title"], ctx["artist"] = _validate(upload)

    def upload_audio(ctx: dict[str, Any]) -> None:
        song_file = upload.song_file
        ext = get_file_extension(song_file.filename, AUDIO_EXTENSIONS, DEFAULT_AUDIO_EXTENSION)
        key = build_storage_key(ctx["title"], ext)
        try:
            stored = storage.put_object(
                settings.songs_bucket,
                key,
                song_file.data,
                content_type=song_file.content_type or DEFAULT_AUDIO_CONTENT_TYPE,
            )
        except StorageError as e:
            raise UploadError(f"Failed song upload: {e.message}") from e
        ctx["song_path"] = stored.key

    def upload_image(ctx: dict[str, Any]) -> None:
        image_file = upload.image_file
        ext = get_file_extension(image_file.filename, IMAGE_EXTENSIONS, DEFAULT_IMAGE_EXTENSION)
        key = build_storage_key(ctx["title"], ext)
        try:
            stored = storage.put_object(
                settings.images_bucket,
                key,
                image_file.data,
                content_type=image_file.content_type or DEFAULT_IMAGE_CONTENT_TYPE,
            )
        except StorageError as e:
            raise UploadError(f"Failed image upload: {e.message}") from e
        ctx["image_path"] = stored.key

    def insert_record(ctx: dict[str, Any]):
        return insert_song(
            db,
            user_id=ctx.get("owner_id"),
            title=ctx["title"],
            artist=ctx["artist"],
            song_path=ctx["song_path"],
            image_path=ctx["image_path"],
        )

    return [
        (UploadStep.VALIDATE_INPUT, validate_input),
        (UploadStep.UPLOAD_AUDIO, upload_audio),
        (UploadStep.UPLOAD_IMAGE, upload_image),
        (UploadStep.INSERT_RECORD, insert_record),
    ]


def _upload_saga(storage: StorageClientBase) -> Saga:
    """Build the saga with its compensation table."""
    settings = get_settings()

    def remove(bucket: str, key: str) -> None:
        for outcome in storage.remove_objects(bucket, [key]):
            if not outcome.ok:
                raise StorageError(f"Failed to remove {bucket}/{outcome.key}: {outcome.error}")

    def remove_audio(ctx: dict[str, Any]) -> None:
        remove(settings.songs_bucket, ctx["song_path"])

    def remove_image(ctx: dict[str, Any]) -> None:
        remove(settings.images_bucket, ctx["image_path"])

    return Saga(
        "upload_song",
        compensations={
            UploadStep.UPLOAD_AUDIO: remove_audio,
            UploadStep.UPLOAD_IMAGE: remove_image,
        },
    )


def upload_song(
    db: Session,
    storage: StorageClientBase,
    session: SessionContext | None,
    upload: SongUpload,
) -> SagaResult:
    """Create a song on behalf of the session's user.

    Returns:
        SagaResult whose data is the inserted Song row on success.
    """

    def auth_check(ctx: dict[str, Any]) -> None:
        ctx["owner_id"] = verify_identity(session, "upload songs").user_id

    steps = [(UploadStep.AUTH_CHECK, auth_check), *_upload_steps(db, storage, upload)]
    result = _upload_saga(storage).run(steps)
    if result.ok:
        logger.info("song_uploaded", song_id=result.data.id)
    return result


def run_upload_pipeline(
    db: Session,
    storage: StorageClientBase,
    owner_id: UUID | None,
    upload: SongUpload,
) -> SagaResult:
    """Run the post-auth part of the upload saga for a trusted caller.

    Used by the seeding script, which inserts songs without an owner.
    """
    return _upload_saga(storage).run(
        _upload_steps(db, storage, upload), context={"owner_id": owner_id}
    )
