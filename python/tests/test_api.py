"""HTTP tests for the songs, likes, and me routes.

Runs the real app (auth + request-id middleware) against an in-memory
database and the fake storage client.
"""

import io
from uuid import uuid4

import pytest
from fastapi import UploadFile

from songbird.api.routes.songs import _to_uploaded_file
from songbird.config import clear_settings_cache
from songbird.db.models import Song
from songbird.services.songs import insert_song
from tests.helpers import auth_headers


def _files(song=b"audio-bytes", image=b"image-bytes"):
    files = {}
    if song is not None:
        files["song"] = ("track.mp3", song, "audio/mpeg")
    if image is not None:
        files["image"] = ("cover.png", image, "image/png")
    return files


def _upload(client, user_id, title="Midnight City", artist="M83", **file_kwargs):
    return client.post(
        "/songs",
        data={"title": title, "artist": artist},
        files=_files(**file_kwargs),
        headers=auth_headers(user_id),
    )


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"data": {"status": "ok"}}


class TestUploadRoute:
    """Tests for POST /songs."""

    def test_upload(self, client, fake_storage, test_user_id):
        response = _upload(client, test_user_id)

        assert response.status_code == 201
        song = response.json()["data"]["song"]
        assert song["title"] == "Midnight City"
        assert song["artist"] == "M83"
        assert song["user_id"] == str(test_user_id)
        assert song["image_path"].endswith(".png")
        assert song["song_url"].endswith(f"/object/public/songs/{song['song_path']}")
        assert fake_storage.get_object("songs", song["song_path"]) == b"audio-bytes"

    def test_anonymous_upload(self, client, fake_storage, db_session):
        response = client.post(
            "/songs", data={"title": "t", "artist": "a"}, files=_files()
        )

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "You must be logged in to upload songs"
        assert fake_storage.remote_call_count == 0
        assert db_session.query(Song).count() == 0

    def test_missing_image(self, client, fake_storage, test_user_id):
        response = _upload(client, test_user_id, image=None)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E_FILE_MISSING"
        assert fake_storage.remote_call_count == 0

    def test_oversized_song_rejected(self, client, fake_storage, monkeypatch, test_user_id):
        monkeypatch.setenv("MAX_SONG_BYTES", "10")
        clear_settings_cache()

        response = _upload(client, test_user_id, song=b"x" * 4096)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E_FILE_TOO_LARGE"
        assert fake_storage.remote_call_count == 0

    def test_upload_read_is_bounded_by_ceiling(self):
        upload = UploadFile(file=io.BytesIO(b"x" * 4096), filename="big.mp3")

        uploaded = _to_uploaded_file(upload, max_bytes=10)

        assert uploaded.size_bytes == 11
        assert uploaded.filename == "big.mp3"

    def test_blank_title(self, client, test_user_id):
        response = _upload(client, test_user_id, title="   ")

        assert response.status_code == 400
        assert response.json()["error"] == {
            "code": "E_NAME_INVALID",
            "message": "Song title is required",
            "request_id": response.headers["X-Request-ID"],
        }

    def test_storage_failure_compensates(self, client, fake_storage, db_session, test_user_id):
        fake_storage.fail_uploads_for.add("images")

        response = _upload(client, test_user_id)

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "E_UPLOAD_FAILED"
        assert fake_storage.list_objects("songs") == []
        assert db_session.query(Song).count() == 0


class TestBrowseRoutes:
    """Tests for the public read routes."""

    def test_list_songs_newest_first(self, client, test_user_id):
        first = _upload(client, test_user_id, title="First").json()["data"]["song"]
        second = _upload(client, test_user_id, title="Second").json()["data"]["song"]

        response = client.get("/songs")

        assert response.status_code == 200
        assert [s["id"] for s in response.json()["data"]] == [second["id"], first["id"]]

    def test_get_song(self, client, test_user_id):
        song = _upload(client, test_user_id).json()["data"]["song"]

        response = client.get(f"/songs/{song['id']}")

        assert response.status_code == 200
        assert response.json()["data"]["title"] == "Midnight City"

    def test_get_missing_song(self, client):
        response = client.get("/songs/987654")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "E_SONG_NOT_FOUND"

    def test_non_numeric_id(self, client):
        response = client.get("/songs/abc")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E_INVALID_REQUEST"

    def test_search(self, client, test_user_id):
        _upload(client, test_user_id, title="Purple Rain", artist="Prince")
        _upload(client, test_user_id, title="Other", artist="Rain Band")
        _upload(client, test_user_id, title="Unrelated", artist="Nobody")

        all_fields = client.get("/songs/search", params={"q": "rain"}).json()["data"]
        by_artist = client.get("/songs/search", params={"q": "rain", "field": "artist"}).json()[
            "data"
        ]

        assert [s["title"] for s in all_fields] == ["Purple Rain", "Other"]
        assert [s["title"] for s in by_artist] == ["Other"]

    def test_search_blank_query(self, client, test_user_id):
        _upload(client, test_user_id)

        response = client.get("/songs/search")

        assert response.status_code == 200
        assert response.json()["data"] == []

    def test_search_invalid_field(self, client):
        response = client.get("/songs/search", params={"q": "x", "field": "album"})

        assert response.status_code == 400


class TestDeleteRoute:
    """Tests for DELETE /songs/{id}."""

    def test_delete(self, client, fake_storage, test_user_id):
        song = _upload(client, test_user_id).json()["data"]["song"]

        response = client.delete(f"/songs/{song['id']}", headers=auth_headers(test_user_id))

        assert response.status_code == 200
        assert response.json()["data"] == {"song_id": song["id"], "blobs_removed": True}
        assert client.get(f"/songs/{song['id']}").status_code == 404
        assert fake_storage.list_objects("songs") == []

    def test_anonymous_delete(self, client, test_user_id):
        song = _upload(client, test_user_id).json()["data"]["song"]

        response = client.delete(f"/songs/{song['id']}")

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "You must be logged in to delete songs"
        assert client.get(f"/songs/{song['id']}").status_code == 200

    def test_delete_missing(self, client, test_user_id):
        response = client.delete("/songs/555", headers=auth_headers(test_user_id))

        assert response.status_code == 404

    def test_cleanup_failure_still_deletes(self, client, fake_storage, test_user_id):
        song = _upload(client, test_user_id).json()["data"]["song"]
        fake_storage.fail_removals_for.add("images")

        response = client.delete(f"/songs/{song['id']}", headers=auth_headers(test_user_id))

        assert response.status_code == 200
        assert response.json()["data"]["blobs_removed"] is False
        assert client.get(f"/songs/{song['id']}").status_code == 404


class TestLikeRoutes:
    """Tests for /songs/{id}/like."""

    @pytest.fixture
    def song_id(self, db_session):
        return insert_song(db_session, None, "Seeded", "Bensound", "s.mp3", "s.jpg").id

    def test_like_flow(self, client, song_id, test_user_id):
        headers = auth_headers(test_user_id)

        assert client.get(f"/songs/{song_id}/like", headers=headers).json()["data"]["liked"] is False

        liked = client.put(f"/songs/{song_id}/like", headers=headers)
        assert liked.status_code == 200
        assert liked.json()["data"] == {"song_id": song_id, "liked": True, "changed": True}

        again = client.put(f"/songs/{song_id}/like", headers=headers)
        assert again.json()["data"]["changed"] is False

        assert client.get(f"/songs/{song_id}/like", headers=headers).json()["data"]["liked"] is True

        unliked = client.delete(f"/songs/{song_id}/like", headers=headers)
        assert unliked.json()["data"] == {"song_id": song_id, "liked": False, "changed": True}

    def test_anonymous_status_is_not_liked(self, client, song_id):
        response = client.get(f"/songs/{song_id}/like")

        assert response.status_code == 200
        assert response.json()["data"]["liked"] is False

    def test_anonymous_like_rejected(self, client, song_id):
        response = client.put(f"/songs/{song_id}/like")

        assert response.status_code == 401

    def test_like_missing_song(self, client, test_user_id):
        response = client.put("/songs/31337/like", headers=auth_headers(test_user_id))

        assert response.status_code == 404


class TestMeRoutes:
    """Tests for /me/songs and /me/liked."""

    def test_my_songs(self, client, test_user_id):
        mine = _upload(client, test_user_id, title="Mine").json()["data"]["song"]
        _upload(client, uuid4(), title="Theirs")

        response = client.get("/me/songs", headers=auth_headers(test_user_id))

        assert [s["id"] for s in response.json()["data"]] == [mine["id"]]

    def test_my_liked(self, client, test_user_id):
        song = _upload(client, uuid4(), title="Liked").json()["data"]["song"]
        headers = auth_headers(test_user_id)
        client.put(f"/songs/{song['id']}/like", headers=headers)

        response = client.get("/me/liked", headers=headers)

        assert [s["id"] for s in response.json()["data"]] == [song["id"]]

    @pytest.mark.parametrize("path", ["/me", "/me/songs", "/me/liked"])
    def test_requires_auth(self, client, path):
        assert client.get(path).status_code == 401


class TestAnonymousApp:
    """Without auth middleware every request is anonymous."""

    def test_browse_works(self, anonymous_client):
        assert anonymous_client.get("/songs").status_code == 200

    def test_upload_rejected(self, anonymous_client, fake_storage):
        response = anonymous_client.post(
            "/songs", data={"title": "t", "artist": "a"}, files=_files()
        )

        assert response.status_code == 401
        assert fake_storage.remote_call_count == 0
