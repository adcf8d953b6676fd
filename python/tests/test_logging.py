"""Tests for request-scoped structured logging."""

import json
import logging

import pytest
import structlog

from songbird.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    get_request_id,
    set_request_context,
)


@pytest.fixture(autouse=True)
def clean_context():
    clear_request_context()
    yield
    clear_request_context()


class TestRequestContext:
    def test_set_and_get_request_id(self):
        set_request_context("req-1", path="/songs", method="POST")

        assert get_request_id() == "req-1"
        assert structlog.contextvars.get_contextvars() == {
            "request_id": "req-1",
            "path": "/songs",
            "method": "POST",
        }

    def test_user_id_added_without_dropping_other_fields(self):
        set_request_context("req-1", path="/songs", method="POST")
        set_request_context("req-1", user_id="user-9")

        assert structlog.contextvars.get_contextvars() == {
            "request_id": "req-1",
            "user_id": "user-9",
            "path": "/songs",
            "method": "POST",
        }

    def test_clear(self):
        set_request_context("req-1", user_id="user-9")

        clear_request_context()

        assert get_request_id() is None


class TestConfigureLogging:
    @pytest.fixture
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        configure_logging()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_json_lines_carry_request_context(self, capsys, restore_root_logger):
        configure_logging(json_format=True)
        set_request_context("req-42", user_id="user-1", path="/songs", method="DELETE")

        get_logger("songbird.test").warning("delete_saga_blob_cleanup_failed", bucket="images")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "delete_saga_blob_cleanup_failed"
        assert event["bucket"] == "images"
        assert event["request_id"] == "req-42"
        assert event["user_id"] == "user-1"
        assert event["level"] == "warning"
