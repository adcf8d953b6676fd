"""Pydantic schemas for request/response models.

All schemas are re-exported here for convenient imports.
"""

from songbird.schemas.songs import (
    DeleteSongResponse,
    LikeStatusResponse,
    SearchField,
    SongOut,
    UploadSongResponse,
)

__all__ = [
    "DeleteSongResponse",
    "LikeStatusResponse",
    "SearchField",
    "SongOut",
    "UploadSongResponse",
]
