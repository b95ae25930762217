"""Tests for log formatting."""

from __future__ import annotations

import logging

import orjson

from chat_workspace.core.logging import ConsoleFormatter, JsonFormatter, log_context


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("chat_workspace.test", logging.WARNING, __file__, 1, "write %s", ("failed",), None)
    record.__dict__.update(extra)
    return record


def test_json_formatter_merges_context() -> None:
    line = JsonFormatter().format(make_record(**log_context(uid="u1", status="away")))
    payload = orjson.loads(line)
    assert payload["message"] == "write failed"
    assert payload["level"] == "WARNING"
    assert payload["uid"] == "u1" and payload["status"] == "away"
    assert "ctx_uid" not in payload


def test_console_formatter_appends_context() -> None:
    line = ConsoleFormatter().format(make_record(**log_context(category="users")))
    assert line.endswith("write failed category=users")
