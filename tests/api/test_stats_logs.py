from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime

from fastapi.testclient import TestClient

from docseal.api import dependencies
from docseal.models.letter import Letter, LetterStatus
from docseal.models.user import IssuedSecretKey
from tests.conftest import auth


def _letter(client: TestClient, admin_token: str, number: str) -> str:
    r = client.post(
        "/v1/letters",
        json={
            "letter_number": number,
            "letter_date": "2024-01-10T00:00:00Z",
            "subject": "S",
            "attachment": "-",
        },
        headers=auth(admin_token),
    )
    return r.json()["id"]


def test_stats_counts_letters_by_status(
    client: TestClient,
    admin_token: str,
    signer: IssuedSecretKey,
    signer_token: str,
) -> None:
    first = _letter(client, admin_token, "001")
    _letter(client, admin_token, "002")
    client.post(
        f"/v1/letters/{first}/sign",
        json={"secret_key": signer.secret_key},
        headers=auth(signer_token),
    )

    r = client.get("/v1/stats", headers=auth(signer_token))
    assert r.status_code == 200
    assert r.json() == {
        "total_letters": 2,
        "draft_letters": 1,
        "signed_letters": 1,
        "invalid_letters": 0,
        "total_users": 1,
        "active_users": 1,
        "total_events": 0,
        "total_claims": 0,
    }


def test_stats_counts_stored_invalid_letters(client: TestClient, admin_token: str) -> None:
    # No workflow writes INVALID; rows carrying it are still read and counted.
    letter = Letter.new(
        letter_number="OLD/1",
        letter_date=datetime(2023, 5, 1, tzinfo=UTC),
        subject="Withdrawn",
        attachment="-",
    )
    dependencies.letter_repo._letters[letter.id] = replace(
        letter, status=LetterStatus.INVALID
    )

    r = client.get("/v1/stats", headers=auth(admin_token))
    assert r.status_code == 200
    body = r.json()
    assert body["invalid_letters"] == 1
    assert body["draft_letters"] == 0
    assert body["total_letters"] == 1


def test_logs_newest_first_with_actor(client: TestClient, admin_token: str) -> None:
    _letter(client, admin_token, "001")
    _letter(client, admin_token, "002")

    r = client.get("/v1/logs", headers=auth(admin_token))
    assert r.status_code == 200
    entries = r.json()
    assert [e["action"] for e in entries] == ["create_letter", "create_letter"]
    assert entries[0]["description"] == "Created letter 002"
    assert entries[0]["user_name"] == "Test Admin"
    assert entries[0]["ip_address"] == "testclient"


def test_logs_limit(client: TestClient, admin_token: str) -> None:
    for n in range(3):
        _letter(client, admin_token, f"00{n}")
    r = client.get("/v1/logs?limit=2", headers=auth(admin_token))
    assert len(r.json()) == 2


def test_logs_limit_out_of_range_is_422(client: TestClient, admin_token: str) -> None:
    assert client.get("/v1/logs?limit=0", headers=auth(admin_token)).status_code == 422
