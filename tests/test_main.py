from __future__ import annotations

from fastapi.testclient import TestClient

from docseal.main import app

client = TestClient(app)


def test_health_returns_ok() -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_all_routers_are_mounted() -> None:
    paths = {route.path for route in app.routes}
    for expected in (
        "/v1/letters",
        "/v1/letters/{letter_id}/sign",
        "/v1/signatures",
        "/v1/verify/{document_id}",
        "/v1/events",
        "/v1/events/{event_id}/claims",
        "/v1/users",
        "/v1/logs",
        "/v1/stats",
        "/metrics",
        "/ready",
    ):
        assert expected in paths


def test_docs_disabled_outside_dev() -> None:
    assert client.get("/docs").status_code == 404


def test_cors_exposes_retry_after() -> None:
    resp = client.get("/health", headers={"Origin": "http://localhost:3000"})
    assert resp.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert "Retry-After" in resp.headers["access-control-expose-headers"]


def test_letters_reject_missing_token() -> None:
    resp = client.get("/v1/letters")
    assert resp.status_code == 401
