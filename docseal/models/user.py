from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID, uuid4


class UserRole(StrEnum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    USER = "user"  # signer


@dataclass(frozen=True, slots=True)
class User:
    """A signer or administrator.

    Only the one-way hash of the secret key is held here; there is no field
    for the raw key.
    """

    id: UUID
    name: str
    email: str
    role: UserRole
    secret_key_hash: str
    created_at: datetime
    updated_at: datetime
    is_active: bool = True

    @staticmethod
    def new(
        *,
        name: str,
        email: str,
        secret_key_hash: str,
        role: UserRole = UserRole.USER,
        is_active: bool = True,
    ) -> User:
        now = datetime.now(UTC)
        return User(
            id=uuid4(),
            name=name,
            email=email,
            role=role,
            secret_key_hash=secret_key_hash,
            created_at=now,
            updated_at=now,
            is_active=is_active,
        )


@dataclass(frozen=True, slots=True)
class IssuedSecretKey:
    """Result of creating a user or resetting their key.

    The only place a raw secret key ever exists.  It is handed to the caller
    once and cannot be read back later.
    """

    user: User
    secret_key: str

    def __repr__(self) -> str:
        return f"IssuedSecretKey(user={self.user.id}, secret_key=<redacted>)"
