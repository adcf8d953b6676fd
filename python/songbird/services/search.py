"""Song search.

Matches are case-insensitive substrings. Searching "all" fields returns the
title matches first, then artist matches not already listed.
"""

from sqlalchemy.orm import Session

from songbird.db.models import Song
from songbird.errors import ApiErrorCode, InvalidRequestError
from songbird.services.songs import search_songs_by_artist, search_songs_by_title

SEARCH_FIELDS = ("all", "title", "artist")


def search_songs(db: Session, query: str, field: str = "all") -> list[Song]:
    """Search songs by title, artist, or both.

    Raises:
        InvalidRequestError: Unknown field.
    """
    if field not in SEARCH_FIELDS:
        raise InvalidRequestError(
            ApiErrorCode.E_INVALID_REQUEST,
            f"Invalid search field: {field}",
        )

    if field == "title":
        return search_songs_by_title(db, query)
    if field == "artist":
        return search_songs_by_artist(db, query)

    results = search_songs_by_title(db, query)
    seen = {song.id for song in results}
    for song in search_songs_by_artist(db, query):
        if song.id not in seen:
            seen.add(song.id)
            results.append(song)
    return results
