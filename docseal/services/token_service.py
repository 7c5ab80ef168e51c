"""JWT access token creation and validation (ES256).

Issuing tokens belongs to whatever login front end sits before this
service; create_access_token exists for tooling and tests.  Validation is
what dependencies.require_user relies on.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives.asymmetric import ec

# ---------------------------------------------------------------------------
# Key management
# ---------------------------------------------------------------------------
# Ephemeral EC key pair generated on import; tokens do not survive a restart.
_private_key = ec.generate_private_key(ec.SECP256R1())
_public_key = _private_key.public_key()

ALGORITHM = "ES256"
ISSUER = "docseal"
AUDIENCE = "docseal-api"
ACCESS_TOKEN_TTL_MIN = 60


def create_access_token(
    *,
    sub: str,
    roles: list[str] | None = None,
    name: str = "",
    ttl: timedelta | None = None,
) -> str:
    """Build and sign a JWT access token carrying sub, name and roles."""
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + (ttl or timedelta(minutes=ACCESS_TOKEN_TTL_MIN)),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "name": name,
        "roles": roles or ["user"],
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins the algorithm to ES256.  Raises jwt.ExpiredSignatureError or
    jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )
