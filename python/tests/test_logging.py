"""Tests for structured logging context helpers."""

import json
import logging

import pytest
from structlog.contextvars import get_contextvars

from medintake.logging import (
    clear_request_context,
    configure_logging,
    configure_task_logging,
    get_logger,
    get_request_id,
    set_request_context,
)


@pytest.fixture(autouse=True)
def _clean_context():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    clear_request_context()
    yield
    clear_request_context()
    root.handlers = handlers
    root.setLevel(level)


class TestRequestContext:
    def test_request_id_roundtrip(self):
        set_request_context("req-1", path="/api/documents", method="GET")

        assert get_request_id() == "req-1"
        assert get_contextvars()["path"] == "/api/documents"

    def test_later_bind_keeps_earlier_fields(self):
        set_request_context("req-1", path="/api/me", method="GET")
        set_request_context(get_request_id(), user_id="u-1")

        context = get_contextvars()
        assert context["path"] == "/api/me"
        assert context["user_id"] == "u-1"

    def test_clear(self):
        set_request_context("req-1")
        clear_request_context()

        assert get_request_id() is None


class TestTaskContext:
    def test_task_context_replaces_request_context(self):
        set_request_context("stale", user_id="u-1")

        configure_task_logging("req-9", "analyze_document", "task-1", document_id="d-1")

        assert get_contextvars() == {
            "request_id": "req-9",
            "task_name": "analyze_document",
            "task_id": "task-1",
            "document_id": "d-1",
        }


class TestConfigureLogging:
    def test_json_lines_carry_context(self, capsys):
        configure_logging(json_format=True, level="info")
        set_request_context("req-json", method="POST")

        get_logger("medintake.test").info("document_created", document_id="d-1")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "document_created"
        assert event["request_id"] == "req-json"
        assert event["method"] == "POST"
        assert event["document_id"] == "d-1"

    def test_level_name_applied(self):
        configure_logging(level="WARNING")

        assert logging.getLogger().level == logging.WARNING
