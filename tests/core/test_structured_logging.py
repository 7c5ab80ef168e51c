"""Tests for structured (JSON) logging output."""

from __future__ import annotations

import json
import sys
import logging

from docseal.core.logging import _ContainerFormatter, _JsonFormatter


def _record(msg: str = "test message", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="docseal.services.signing",
        level=logging.INFO,
        pathname="signing.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_produces_valid_json() -> None:
    parsed = json.loads(_JsonFormatter().format(_record("Letter signed")))
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "docseal.services.signing"
    assert parsed["message"] == "Letter signed"
    assert "timestamp" in parsed


def test_json_formatter_includes_request_fields() -> None:
    record = _record(request_id="abc-123", method="GET", path="/health", duration_ms=12.5)
    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["request_id"] == "abc-123"
    assert parsed["method"] == "GET"
    assert parsed["path"] == "/health"
    assert parsed["duration_ms"] == 12.5


def test_json_formatter_includes_document_fields() -> None:
    record = _record(letter_id="l-1", signer_id="s-1", claim_id="c-1")
    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["letter_id"] == "l-1"
    assert parsed["signer_id"] == "s-1"
    assert parsed["claim_id"] == "c-1"


def test_json_formatter_omits_absent_fields() -> None:
    parsed = json.loads(_JsonFormatter().format(_record()))
    assert "request_id" not in parsed
    assert "letter_id" not in parsed


def test_json_formatter_includes_exception() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = _record()
        record.exc_info = sys.exc_info()
    parsed = json.loads(_JsonFormatter().format(record))
    assert "RuntimeError: boom" in parsed["exception"]


def test_container_formatter_is_not_json() -> None:
    output = _ContainerFormatter().format(_record("plain"))
    assert not output.startswith("{")
