"""Song delete saga.

    AUTH_CHECK -> LOOKUP_SONG -> REMOVE_BLOBS -> DELETE_RECORD

Storage cleanup is best-effort: both removals run concurrently, each settles
on its own, and neither can stop the row delete. If the row delete then
fails, the objects are already gone; that inconsistency is accepted and
reported to the caller as a failure.

Any authenticated user may delete any song. Deleting someone else's song is
logged but allowed.
"""

from enum import Enum
from typing import Any

from sqlalchemy.orm import Session

from songbird.auth.identity import SessionContext, verify_identity
from songbird.config import get_settings
from songbird.logging import get_logger
from songbird.services.saga import Saga, SagaResult, settle_all
from songbird.services.songs import delete_song_by_id, get_song_by_id
from songbird.storage.client import StorageClientBase

logger = get_logger(__name__)


class DeleteStep(str, Enum):
    AUTH_CHECK = "auth_check"
    LOOKUP_SONG = "lookup_song"
    REMOVE_BLOBS = "remove_blobs"
    DELETE_RECORD = "delete_record"


def _remove_blobs(storage: StorageClientBase, song_path: str | None, image_path: str | None) -> bool:
    """Remove the song's audio and artwork concurrently.

    Returns:
        True if every requested removal succeeded. Never raises.
    """
    settings = get_settings()
    targets = [
        (settings.songs_bucket, song_path),
        (settings.images_bucket, image_path),
    ]
    tasks = [
        (bucket, key, lambda bucket=bucket, key=key: storage.remove_objects(bucket, [key]))
        for bucket, key in targets
        if key
    ]
    settled = settle_all([task for _, _, task in tasks], max_workers=settings.cleanup_workers)

    all_removed = True
    for (bucket, key, _), outcome in zip(tasks, settled):
        if not outcome.ok:
            all_removed = False
            logger.warning(
                "delete_saga_blob_cleanup_failed", bucket=bucket, key=key, error=str(outcome.error)
            )
            continue
        for removal in outcome.value:
            if not removal.ok:
                all_removed = False
                logger.warning(
                    "delete_saga_blob_cleanup_failed",
                    bucket=bucket,
                    key=removal.key,
                    error=removal.error,
                )
    return all_removed


def delete_song(
    db: Session,
    storage: StorageClientBase,
    session: SessionContext | None,
    song_id: int,
) -> SagaResult:
    """Delete a song row and its storage objects.

    Returns:
        SagaResult whose data is {"song_id", "blobs_removed"} on success.
    """

    def auth_check(ctx: dict[str, Any]) -> None:
        ctx["deleter_id"] = verify_identity(session, "delete songs").user_id

    def lookup_song(ctx: dict[str, Any]) -> None:
        song = get_song_by_id(db, song_id)
        if song.user_id is not None and song.user_id != ctx["deleter_id"]:
            logger.warning(
                "song_deleted_by_non_owner",
                song_id=song_id,
                owner_id=str(song.user_id),
                deleter_id=str(ctx["deleter_id"]),
            )
        ctx["song_path"] = song.song_path
        ctx["image_path"] = song.image_path

    def remove_blobs(ctx: dict[str, Any]) -> None:
        ctx["blobs_removed"] = _remove_blobs(storage, ctx["song_path"], ctx["image_path"])

    def delete_record(ctx: dict[str, Any]) -> dict[str, Any]:
        delete_song_by_id(db, song_id)
        return {"song_id": song_id, "blobs_removed": ctx["blobs_removed"]}

    result = Saga("delete_song").run(
        [
            (DeleteStep.AUTH_CHECK, auth_check),
            (DeleteStep.LOOKUP_SONG, lookup_song),
            (DeleteStep.REMOVE_BLOBS, remove_blobs),
            (DeleteStep.DELETE_RECORD, delete_record),
        ]
    )
    if result.ok:
        logger.info("song_deleted", song_id=song_id, blobs_removed=result.data["blobs_removed"])
    return result
