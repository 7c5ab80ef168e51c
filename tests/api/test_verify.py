from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

from fastapi.testclient import TestClient

from docseal.api import dependencies
from docseal.models.user import IssuedSecretKey
from tests.conftest import auth

LETTER = {
    "letter_number": "001/A/2024",
    "letter_date": "2024-01-10T00:00:00Z",
    "subject": "Invitation",
    "attachment": "-",
    "content": "Body",
}


def _signed_letter(
    client: TestClient, admin_token: str, signer: IssuedSecretKey, signer_token: str
) -> str:
    letter_id = client.post("/v1/letters", json=LETTER, headers=auth(admin_token)).json()["id"]
    r = client.post(
        f"/v1/letters/{letter_id}/sign",
        json={"secret_key": signer.secret_key},
        headers=auth(signer_token),
    )
    assert r.status_code == 201, r.text
    return letter_id


def test_verify_signed_letter_is_public_and_valid(
    client: TestClient, admin_token: str, signer: IssuedSecretKey, signer_token: str
) -> None:
    letter_id = _signed_letter(client, admin_token, signer, signer_token)
    r = client.get(f"/v1/verify/{letter_id}")
    assert r.status_code == 200
    body = r.json()
    assert body["type"] == "letter"
    assert body["is_valid"] is True
    assert body["is_integrity_valid"] is True
    assert body["signature"]["signer_name"] == "Alice"
    assert body["letter"]["letter_number"] == "001/A/2024"


def test_verify_draft_letter(client: TestClient, admin_token: str) -> None:
    letter_id = client.post("/v1/letters", json=LETTER, headers=auth(admin_token)).json()["id"]
    body = client.get(f"/v1/verify/{letter_id}").json()
    assert body["is_valid"] is False
    assert body["is_integrity_valid"] is False
    assert body["signature"] is None


def test_verify_detects_tampering(
    client: TestClient, admin_token: str, signer: IssuedSecretKey, signer_token: str
) -> None:
    letter_id = _signed_letter(client, admin_token, signer, signer_token)
    repo = dependencies.letter_repo
    stored = repo._letters[UUID(letter_id)]
    repo._letters[stored.id] = replace(stored, content="Body (edited)")

    body = client.get(f"/v1/verify/{letter_id}").json()
    assert body["is_valid"] is False
    assert body["is_integrity_valid"] is False
    assert body["signature"] is not None


def test_verify_certificate(client: TestClient, admin_token: str) -> None:
    now = datetime.now(UTC)
    event = client.post(
        "/v1/events",
        json={
            "name": "Field Day",
            "date": now.isoformat(),
            "claim_deadline": (now + timedelta(days=1)).isoformat(),
        },
        headers=auth(admin_token),
    ).json()
    claim = client.post(
        f"/v1/events/{event['id']}/claims", json={"recipient_name": "Budi"}
    ).json()

    body = client.get(f"/v1/verify/{claim['id']}").json()
    assert body["type"] == "certificate"
    assert body["is_valid"] is True
    assert body["claim"]["recipient_name"] == "Budi"
    assert body["event"]["name"] == "Field Day"


def test_verify_unknown_document_is_404(client: TestClient) -> None:
    assert client.get(f"/v1/verify/{uuid4()}").status_code == 404


def test_verify_malformed_id_is_404(client: TestClient) -> None:
    assert client.get("/v1/verify/not-a-uuid").status_code == 404
