"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from app.core.logging import (
    JsonFormatter,
    SensitiveDataFilter,
    clear_request_id,
    get_request_id,
    set_request_id,
)


@pytest.fixture
def log_stream():
    logger = logging.getLogger("test_redaction")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    yield logger, stream
    logger.handlers.clear()


def test_redacts_client_identity_fields(log_stream):
    logger, stream = log_stream

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "identifier": "global:ip:203.0.113.9",
            "client_ip": "203.0.113.9",
            "key_hash": "abc123",
            "limit": 100,
        },
    )

    output = stream.getvalue()
    assert "203.0.113.9" not in output
    assert "[REDACTED]" in output
    payload = json.loads(output)
    assert payload["key_hash"] == "abc123"
    assert payload["limit"] == 100
    assert payload["message"] == "rate_limit.exceeded"
    assert payload["level"] == "warning"


def test_redacts_nested_proxy_headers(log_stream):
    logger, stream = log_stream

    logger.info(
        "request_headers",
        extra={
            "headers": {
                "X-Forwarded-For": "198.51.100.4",
                "Authorization": "Bearer secret-token",
                "user-agent": "pytest",
            },
        },
    )

    output = stream.getvalue()
    assert "198.51.100.4" not in output
    assert "secret-token" not in output
    assert "pytest" in output


def test_safe_fields_pass_through(log_stream):
    logger, stream = log_stream

    logger.info(
        "rate_limit.sweep",
        extra={"removed": 4, "entries": 10, "request_path": "/api/rate-limit/status"},
    )

    output = stream.getvalue()
    assert "[REDACTED]" not in output
    assert "/api/rate-limit/status" in output


def test_includes_request_id_from_context(log_stream):
    logger, stream = log_stream
    set_request_id("req-abc")
    try:
        logger.info("event")
    finally:
        clear_request_id()

    assert json.loads(stream.getvalue())["request_id"] == "req-abc"


def test_request_id_context_helpers_are_documented_and_round_trip():
    for helper in (set_request_id, get_request_id, clear_request_id):
        assert helper.__doc__

    set_request_id("req-ctx")
    try:
        assert get_request_id() == "req-ctx"
    finally:
        clear_request_id()

    assert get_request_id() is None
