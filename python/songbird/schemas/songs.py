"""Song and like Pydantic schemas.

Contains response models for the songs, likes, and search endpoints.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel


class SongOut(BaseModel):
    """Response schema for a song.

    song_url / image_url are public storage URLs resolved at read time;
    song_path / image_path are the raw bucket keys.
    """

    id: int
    user_id: UUID | None
    title: str
    artist: str
    song_path: str
    image_path: str
    song_url: str
    image_url: str
    created_at: datetime


class UploadSongResponse(BaseModel):
    """Response schema for POST /songs."""

    song: SongOut


class DeleteSongResponse(BaseModel):
    """Response schema for DELETE /songs/{id}.

    blobs_removed is False when a storage cleanup request failed; the row is
    still gone in that case.
    """

    song_id: int
    blobs_removed: bool


class LikeStatusResponse(BaseModel):
    """Response schema for the like endpoints.

    changed reports whether this request actually inserted or removed a row.
    """

    song_id: int
    liked: bool
    changed: bool = False


SearchField = Literal["all", "title", "artist"]
