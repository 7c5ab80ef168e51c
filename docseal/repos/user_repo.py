from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from docseal.models.user import User


class UserRepo(Protocol):
    async def get_by_id(self, user_id: UUID) -> User | None: ...
    async def get_by_email(self, email: str) -> User | None: ...
    async def add(self, user: User) -> None: ...
    async def list_all(self) -> list[User]: ...
    async def update(self, user: User) -> User | None: ...
    async def update_secret_key_hash(self, user_id: UUID, secret_key_hash: str) -> None: ...
    async def delete(self, user_id: UUID) -> bool: ...


class InMemoryUserRepo:
    def __init__(self) -> None:
        self._by_email: dict[str, User] = {}
        self._by_id: dict[UUID, User] = {}

    async def get_by_id(self, user_id: UUID) -> User | None:
        return self._by_id.get(user_id)

    async def get_by_email(self, email: str) -> User | None:
        return self._by_email.get(email)

    async def add(self, user: User) -> None:
        if user.email in self._by_email:
            raise ValueError("email already exists")
        self._by_email[user.email] = user
        self._by_id[user.id] = user

    async def list_all(self) -> list[User]:
        return sorted(self._by_id.values(), key=lambda u: u.created_at, reverse=True)

    async def update(self, user: User) -> User | None:
        existing = self._by_id.get(user.id)
        if existing is None:
            return None
        if user.email != existing.email:
            if user.email in self._by_email:
                raise ValueError("email already exists")
            del self._by_email[existing.email]
        self._by_id[user.id] = user
        self._by_email[user.email] = user
        return user

    async def update_secret_key_hash(self, user_id: UUID, secret_key_hash: str) -> None:
        u = self._by_id.get(user_id)
        if u is None:
            raise KeyError("user not found")

        updated = replace(u, secret_key_hash=secret_key_hash, updated_at=datetime.now(UTC))
        self._by_id[user_id] = updated
        self._by_email[updated.email] = updated

    async def delete(self, user_id: UUID) -> bool:
        u = self._by_id.pop(user_id, None)
        if u is None:
            return False
        self._by_email.pop(u.email, None)
        return True
