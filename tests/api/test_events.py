from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from fastapi.testclient import TestClient

from tests.conftest import auth


def _event(client: TestClient, admin_token: str, **overrides) -> dict:
    now = datetime.now(UTC)
    payload = {
        "name": "Field Day",
        "date": now.isoformat(),
        "claim_deadline": (now + timedelta(days=7)).isoformat(),
        "template_url": "https://cdn.example.org/field-day.png",
        "template_config": {"name_x": 100, "name_y": 200},
    }
    payload.update(overrides)
    r = client.post("/v1/events", json=payload, headers=auth(admin_token))
    assert r.status_code == 201, r.text
    return r.json()


def test_create_and_fetch_event(client: TestClient, admin_token: str) -> None:
    event = _event(client, admin_token)
    assert event["template_config"]["name_x"] == 100
    assert event["template_config"]["qr_size"] == 120

    # Event details are public so the claim page can render them.
    r = client.get(f"/v1/events/{event['id']}")
    assert r.status_code == 200
    assert r.json()["name"] == "Field Day"


def test_list_events_requires_admin(client: TestClient, admin_token: str, token: str) -> None:
    _event(client, admin_token)
    assert client.get("/v1/events", headers=auth(token)).status_code == 403
    r = client.get("/v1/events", headers=auth(admin_token))
    assert r.status_code == 200
    assert len(r.json()) == 1


def test_update_event(client: TestClient, admin_token: str) -> None:
    event = _event(client, admin_token)
    r = client.put(
        f"/v1/events/{event['id']}",
        json={"name": "Field Day 2024"},
        headers=auth(admin_token),
    )
    assert r.status_code == 200
    assert r.json()["name"] == "Field Day 2024"
    assert r.json()["template_url"] == event["template_url"]


def test_unknown_event_is_404(client: TestClient) -> None:
    assert client.get(f"/v1/events/{uuid4()}").status_code == 404


# ---- claims ----


def test_public_claim_before_deadline(client: TestClient, admin_token: str) -> None:
    event = _event(client, admin_token)
    r = client.post(
        f"/v1/events/{event['id']}/claims",
        json={"recipient_name": "Budi Santoso", "call_sign": "YB0ABC"},
    )
    assert r.status_code == 201, r.text
    claim = r.json()
    assert claim["certificate_number"].startswith("CERT/")
    payload = json.loads(claim["qr_payload"])
    assert payload["type"] == "certificate"
    assert payload["claimId"] == claim["id"]
    assert payload["valid"] is True


def test_claim_after_deadline_is_410(client: TestClient, admin_token: str) -> None:
    past = datetime.now(UTC) - timedelta(days=1)
    event = _event(client, admin_token, claim_deadline=past.isoformat())
    r = client.post(f"/v1/events/{event['id']}/claims", json={"recipient_name": "Budi"})
    assert r.status_code == 410


def test_claim_blank_name_is_rejected(client: TestClient, admin_token: str) -> None:
    event = _event(client, admin_token)
    r = client.post(f"/v1/events/{event['id']}/claims", json={"recipient_name": "  "})
    assert r.status_code == 422


def test_claim_unknown_event_is_404(client: TestClient) -> None:
    r = client.post(f"/v1/events/{uuid4()}/claims", json={"recipient_name": "Budi"})
    assert r.status_code == 404


def test_list_claims_is_admin_only(client: TestClient, admin_token: str, token: str) -> None:
    event = _event(client, admin_token)
    client.post(f"/v1/events/{event['id']}/claims", json={"recipient_name": "A"})
    client.post(f"/v1/events/{event['id']}/claims", json={"recipient_name": "A"})

    assert client.get(f"/v1/events/{event['id']}/claims").status_code == 401
    r = client.get(f"/v1/events/{event['id']}/claims", headers=auth(admin_token))
    assert r.status_code == 200
    assert len(r.json()) == 2


def test_claim_qr_is_png(client: TestClient, admin_token: str) -> None:
    event = _event(client, admin_token)
    claim = client.post(
        f"/v1/events/{event['id']}/claims", json={"recipient_name": "Budi"}
    ).json()
    r = client.get(f"/v1/events/{event['id']}/claims/{claim['id']}/qr")
    assert r.status_code == 200
    assert r.content.startswith(b"\x89PNG")


def test_delete_event_removes_claims(client: TestClient, admin_token: str) -> None:
    event = _event(client, admin_token)
    claim = client.post(
        f"/v1/events/{event['id']}/claims", json={"recipient_name": "Budi"}
    ).json()

    r = client.delete(f"/v1/events/{event['id']}", headers=auth(admin_token))
    assert r.status_code == 204
    assert client.get(f"/v1/verify/{claim['id']}").status_code == 404
