"""Tests for the structured log formatter."""

import json
import logging

from brand_monitor.core.logging import JSONFormatter


def _record(**extra) -> logging.LogRecord:
    return logging.makeLogRecord(
        {"name": "brand_monitor.test", "levelname": "ERROR", "msg": "query %s failed", "args": ("q1",), **extra}
    )


def test_context_fields_emitted():
    record = _record(provider="grok", query_id="q1", run_date="2026-03-10")

    data = json.loads(JSONFormatter().format(record))

    assert data["message"] == "query q1 failed"
    assert data["level"] == "ERROR"
    assert data["provider"] == "grok"
    assert data["query_id"] == "q1"
    assert data["run_date"] == "2026-03-10"


def test_missing_context_fields_omitted():
    data = json.loads(JSONFormatter().format(_record()))

    assert "provider" not in data
    assert "query_id" not in data
