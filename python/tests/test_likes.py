"""Tests for like/unlike.

Tests cover:
- Like and unlike are idempotent, including a lost insert race
- A song deleted mid-like reports not found
- Likes are per user
- Anonymous callers are rejected for mutations and see "not liked"
- Liked-songs listing order
"""

import pytest
from sqlalchemy import func, select

from songbird.db.models import LikedSong
from songbird.errors import ApiErrorCode, AuthFailure, NotFoundError
from songbird.services import likes as likes_module
from songbird.services.likes import is_liked, like_song, list_liked_songs, unlike_song
from songbird.services.songs import insert_song
from tests.helpers import make_session


def _like_count(db) -> int:
    return db.scalar(select(func.count()).select_from(LikedSong))


@pytest.fixture
def song(db_session):
    return insert_song(db_session, None, "Title", "Artist", "a.mp3", "a.jpg")


class TestLikeSong:
    """Tests for like_song."""

    def test_like(self, db_session, song):
        session = make_session()

        result = like_song(db_session, session, song.id)

        assert result.liked is True
        assert result.changed is True
        assert is_liked(db_session, session, song.id) is True

    def test_like_twice_is_idempotent(self, db_session, song):
        session = make_session()
        like_song(db_session, session, song.id)

        result = like_song(db_session, session, song.id)

        assert result.liked is True
        assert result.changed is False
        assert _like_count(db_session) == 1

    def test_likes_are_per_user(self, db_session, song):
        alice, bob = make_session(), make_session()

        like_song(db_session, alice, song.id)

        assert is_liked(db_session, alice, song.id) is True
        assert is_liked(db_session, bob, song.id) is False

    def test_like_missing_song(self, db_session):
        with pytest.raises(NotFoundError) as exc_info:
            like_song(db_session, make_session(), 12345)

        assert exc_info.value.code == ApiErrorCode.E_SONG_NOT_FOUND

    def test_anonymous_like_rejected(self, db_session, song):
        with pytest.raises(AuthFailure) as exc_info:
            like_song(db_session, None, song.id)

        assert exc_info.value.message == "You must be logged in to like songs"
        assert _like_count(db_session) == 0

    def test_lost_race_with_same_pair_is_idempotent(self, db_session, song, monkeypatch):
        session = make_session()
        song_id = song.id
        db_session.add(LikedSong(user_id=session.user_id, song_id=song_id))
        db_session.commit()
        # Written by another request, so not in this session's identity map
        db_session.expunge_all()
        real_get = db_session.get
        lookups = []

        def stale_get(entity, ident, **kwargs):
            # The first pair lookup runs before the other writer committed
            if entity is LikedSong and not lookups:
                lookups.append(ident)
                return None
            return real_get(entity, ident, **kwargs)

        monkeypatch.setattr(db_session, "get", stale_get)

        result = like_song(db_session, session, song_id)

        assert result.liked is True
        assert result.changed is False
        assert _like_count(db_session) == 1

    def test_song_deleted_during_like_is_not_found(self, db_session, monkeypatch):
        real_lookup = likes_module.get_song_by_id
        calls = []

        def lookup_then_vanish(db, song_id):
            # The song exists at the precondition check, then is gone
            calls.append(song_id)
            if len(calls) == 1:
                return None
            return real_lookup(db, song_id)

        monkeypatch.setattr(likes_module, "get_song_by_id", lookup_then_vanish)

        with pytest.raises(NotFoundError) as exc_info:
            like_song(db_session, make_session(), 4242)

        assert exc_info.value.code == ApiErrorCode.E_SONG_NOT_FOUND
        assert _like_count(db_session) == 0


class TestUnlikeSong:
    """Tests for unlike_song."""

    def test_unlike(self, db_session, song):
        session = make_session()
        like_song(db_session, session, song.id)

        result = unlike_song(db_session, session, song.id)

        assert result.liked is False
        assert result.changed is True
        assert is_liked(db_session, session, song.id) is False

    def test_unlike_without_like_is_noop(self, db_session, song):
        result = unlike_song(db_session, make_session(), song.id)

        assert result.liked is False
        assert result.changed is False

    def test_unlike_only_affects_caller(self, db_session, song):
        alice, bob = make_session(), make_session()
        like_song(db_session, alice, song.id)
        like_song(db_session, bob, song.id)

        unlike_song(db_session, alice, song.id)

        assert is_liked(db_session, bob, song.id) is True
        assert _like_count(db_session) == 1

    def test_anonymous_unlike_rejected(self, db_session, song):
        with pytest.raises(AuthFailure):
            unlike_song(db_session, None, song.id)


class TestIsLiked:
    """Tests for is_liked."""

    def test_anonymous_is_never_liked(self, db_session, song):
        assert is_liked(db_session, None, song.id) is False


class TestListLikedSongs:
    """Tests for list_liked_songs."""

    def test_lists_only_callers_likes(self, db_session):
        first = insert_song(db_session, None, "First", "A", "1.mp3", "1.jpg")
        second = insert_song(db_session, None, "Second", "B", "2.mp3", "2.jpg")
        third = insert_song(db_session, None, "Third", "C", "3.mp3", "3.jpg")
        alice, bob = make_session(), make_session()
        like_song(db_session, alice, first.id)
        like_song(db_session, alice, third.id)
        like_song(db_session, bob, second.id)

        songs = list_liked_songs(db_session, alice)

        assert [s.id for s in songs] == [third.id, first.id]

    def test_empty(self, db_session):
        assert list_liked_songs(db_session, make_session()) == []

    def test_anonymous_rejected(self, db_session):
        with pytest.raises(AuthFailure):
            list_liked_songs(db_session, None)
