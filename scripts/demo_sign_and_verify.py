"""Demo: create a signer, draft a letter, sign it, verify it, tamper with it.

Runs entirely in-process against the in-memory stores (leave DATABASE_URL
unset).

Run with:
    python scripts/demo_sign_and_verify.py
"""

from __future__ import annotations

from dataclasses import replace
from uuid import UUID, uuid4

from fastapi.testclient import TestClient

from docseal.api import dependencies
from docseal.main import app
from docseal.services import token_service


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def main() -> None:
    client = TestClient(app)
    admin = token_service.create_access_token(
        sub=str(uuid4()), roles=["super_admin"], name="Demo Admin"
    )

    # ── Step 1: create a signer; the secret key is shown once ───────
    r = client.post(
        "/v1/users",
        json={"name": "Alice", "email": "alice@example.com"},
        headers=_bearer(admin),
    )
    print(f"1. POST /v1/users              → {r.status_code}")
    alice = r.json()["user"]
    secret_key = r.json()["secret_key"]
    alice_token = token_service.create_access_token(
        sub=alice["id"], roles=["user"], name=alice["name"]
    )

    # ── Step 2: draft a letter ──────────────────────────────────────
    r = client.post(
        "/v1/letters",
        json={
            "letter_number": "001/A/2024",
            "letter_date": "2024-01-10T00:00:00Z",
            "subject": "Invitation",
            "attachment": "-",
            "content": "Body",
        },
        headers=_bearer(admin),
    )
    letter_id = r.json()["id"]
    print(f"2. POST /v1/letters            → {r.status_code}  status={r.json()['status']}")

    # ── Step 3: sign with a wrong key, then the right one ───────────
    r = client.post(
        f"/v1/letters/{letter_id}/sign",
        json={"secret_key": "SK-00000000-0000000000000000"},
        headers=_bearer(alice_token),
    )
    print(f"3. POST .../sign (wrong key)   → {r.status_code}  {r.json()['detail']}")

    r = client.post(
        f"/v1/letters/{letter_id}/sign",
        json={"secret_key": secret_key},
        headers=_bearer(alice_token),
    )
    print(f"4. POST .../sign (right key)   → {r.status_code}  hash={r.json()['content_hash'][:16]}…")

    # ── Step 4: verify ──────────────────────────────────────────────
    r = client.get(f"/v1/verify/{letter_id}")
    body = r.json()
    print(
        f"5. GET  /v1/verify/{{id}}        → {r.status_code}  "
        f"is_valid={body['is_valid']} integrity={body['is_integrity_valid']}"
    )

    # ── Step 5: tamper with the stored subject, verify again ────────
    repo = dependencies.letter_repo
    stored = repo._letters[UUID(letter_id)]
    repo._letters[stored.id] = replace(stored, subject="Invitation (edited)")
    r = client.get(f"/v1/verify/{letter_id}")
    body = r.json()
    print(
        f"6. GET  /v1/verify/{{id}}        → {r.status_code}  "
        f"is_valid={body['is_valid']} integrity={body['is_integrity_valid']}  (tampered)"
    )


if __name__ == "__main__":
    main()
