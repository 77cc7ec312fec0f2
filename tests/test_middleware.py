from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.core.middleware import SECURITY_HEADERS
from app.main import app


client = TestClient(app)


def test_preserves_incoming_request_id_header():
    incoming_id = "test-request-id-123"
    resp = client.get("/api/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing():
    resp = client.get("/api/health")

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID")
    assert resp.headers.get("X-Request-Duration-ms") is not None


def test_adds_security_headers():
    resp = client.get("/api/health")

    for name, value in SECURITY_HEADERS.items():
        assert resp.headers[name] == value
    assert resp.headers["Content-Security-Policy"] == "default-src 'none'; frame-ancestors 'none'"


def test_security_headers_can_be_disabled(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings.app, "security_headers_enabled", False)

    resp = client.get("/api/health")

    assert "X-Frame-Options" not in resp.headers
    assert "Strict-Transport-Security" not in resp.headers
