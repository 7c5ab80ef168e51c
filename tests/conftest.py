from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path
from uuid import uuid4

# Settings are read once at import; pin them before docseal is imported.
os.environ["APP_ENV"] = "test"
os.environ["SECRET_KEY_HASH_TIME_COST"] = "1"
os.environ.pop("DATABASE_URL", None)
os.environ.pop("REDIS_URL", None)

# Ensure repo root is on sys.path so `import docseal` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from docseal.api import dependencies  # noqa: E402
from docseal.api.ratelimit import attempt_limiter  # noqa: E402
from docseal.main import app  # noqa: E402
from docseal.models.user import IssuedSecretKey, UserRole  # noqa: E402
from docseal.services import token_service  # noqa: E402
from docseal.services.users_service import UsersService  # noqa: E402


@pytest.fixture(autouse=True)
def reset_letter_state() -> None:
    """Clear letters and signatures between tests."""
    dependencies.letter_repo._letters.clear()
    dependencies.letter_repo._signatures.clear()


@pytest.fixture(autouse=True)
def reset_event_state() -> None:
    dependencies.event_repo._events.clear()
    dependencies.event_repo._claims.clear()


@pytest.fixture(autouse=True)
def reset_user_state() -> None:
    dependencies.user_repo._by_email.clear()
    dependencies.user_repo._by_id.clear()


@pytest.fixture(autouse=True)
def reset_activity_log() -> None:
    dependencies.activity_repo._entries.clear()


@pytest.fixture(autouse=True)
def reset_attempt_limiter() -> None:
    """Clear failed-attempt counters so blocks don't bleed between tests."""
    if hasattr(attempt_limiter, "_entries"):
        attempt_limiter._entries.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    sub: str | None = None,
    roles: list[str] | None = None,
    name: str = "",
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(
        sub=sub or str(uuid4()), roles=roles, name=name
    )


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def token() -> str:
    """Token with default role (user) and no matching account."""
    return mint_token()


@pytest.fixture
def admin_token() -> str:
    return mint_token(roles=["admin"], name="Test Admin")


@pytest.fixture
def super_admin_token() -> str:
    return mint_token(roles=["super_admin"], name="Test Super Admin")


def seed_signer(
    name: str = "Alice",
    email: str = "alice@example.com",
    role: UserRole = UserRole.USER,
) -> IssuedSecretKey:
    """Create a user in the in-memory store; returns the one-time key."""
    service = UsersService(dependencies.user_repo, dependencies.activity_repo)
    return asyncio.run(service.create_user(name=name, email=email, role=role))


@pytest.fixture
def signer() -> IssuedSecretKey:
    return seed_signer()


@pytest.fixture
def signer_token(signer: IssuedSecretKey) -> str:
    return mint_token(sub=str(signer.user.id), roles=["user"], name=signer.user.name)
