"""Signer and administrator accounts.

Creating a user and resetting their secret key are the only two places a
raw key is produced.  Both return an IssuedSecretKey; the raw key is not
stored, not logged, and cannot be fetched again.  A reset replaces the
hash, which invalidates the previous key at once.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from uuid import UUID

from docseal.core.errors import ConflictError, NotFoundError, ValidationError
from docseal.core.timeutil import utcnow
from docseal.models.activity import ANONYMOUS, ActivityAction, Actor
from docseal.models.user import IssuedSecretKey, User, UserRole
from docseal.repos.activity_repo import ActivityRepo
from docseal.repos.user_repo import UserRepo
from docseal.services import audit as audit_log
from docseal.services.credentials import generate_secret_key, hash_secret_key

logger = logging.getLogger(__name__)


class UserValidationError(ValidationError):
    pass


class UserAlreadyExistsError(ConflictError):
    pass


def _normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    if not email:
        logger.warning("Rejected blank email")
        raise UserValidationError("email must be non-empty")
    if "@" not in email:
        raise UserValidationError("email must contain '@'")
    return email


def _normalize_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise UserValidationError("name must be non-empty")
    return name


async def _new_secret() -> tuple[str, str]:
    secret_key = generate_secret_key()
    return secret_key, await asyncio.to_thread(hash_secret_key, secret_key)


class UsersService:
    def __init__(self, users: UserRepo, audit: ActivityRepo) -> None:
        self._users = users
        self._audit = audit

    async def list_users(self) -> list[User]:
        return await self._users.list_all()

    async def get_user(self, user_id: UUID) -> User:
        user = await self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return user

    async def create_user(
        self,
        *,
        name: str,
        email: str,
        role: UserRole = UserRole.USER,
        actor: Actor = ANONYMOUS,
    ) -> IssuedSecretKey:
        name = _normalize_name(name)
        email = _normalize_email(email)
        if await self._users.get_by_email(email) is not None:
            logger.warning("Rejected duplicate email=%s", email)
            raise UserAlreadyExistsError(email)

        secret_key, secret_hash = await _new_secret()
        user = User.new(name=name, email=email, role=role, secret_key_hash=secret_hash)
        try:
            await self._users.add(user)
        except ValueError:
            raise UserAlreadyExistsError(email) from None

        logger.info("Created user id=%s email=%s role=%s", user.id, user.email, user.role)
        await audit_log.record(
            self._audit,
            actor,
            ActivityAction.CREATE_USER,
            f"Created user {user.name}",
            target_user_id=str(user.id),
            role=str(user.role),
        )
        await audit_log.record(
            self._audit,
            actor,
            ActivityAction.GENERATE_SECRET_KEY,
            f"Generated secret key for {user.name}",
            target_user_id=str(user.id),
        )
        return IssuedSecretKey(user=user, secret_key=secret_key)

    async def update_user(
        self,
        user_id: UUID,
        *,
        name: str | None = None,
        email: str | None = None,
        role: UserRole | None = None,
        is_active: bool | None = None,
        actor: Actor = ANONYMOUS,
    ) -> User:
        user = await self.get_user(user_id)
        changes: dict[str, object] = {}
        if name is not None:
            changes["name"] = _normalize_name(name)
        if email is not None:
            normalized = _normalize_email(email)
            if normalized != user.email:
                if await self._users.get_by_email(normalized) is not None:
                    raise UserAlreadyExistsError(normalized)
                changes["email"] = normalized
        if role is not None:
            changes["role"] = role
        if is_active is not None:
            changes["is_active"] = is_active

        if not changes:
            return user

        updated = replace(user, updated_at=utcnow(), **changes)
        try:
            stored = await self._users.update(updated)
        except ValueError:
            raise UserAlreadyExistsError(updated.email) from None
        if stored is None:
            raise NotFoundError("user", user_id)

        logger.info("Updated user id=%s fields=%s", user_id, sorted(changes))
        await audit_log.record(
            self._audit,
            actor,
            ActivityAction.UPDATE_USER,
            f"Updated user {stored.name}",
            target_user_id=str(user_id),
            fields=sorted(changes),
        )
        return stored

    async def delete_user(self, user_id: UUID, *, actor: Actor = ANONYMOUS) -> None:
        user = await self.get_user(user_id)
        if not await self._users.delete(user_id):
            raise NotFoundError("user", user_id)
        logger.info("Deleted user id=%s", user_id)
        await audit_log.record(
            self._audit,
            actor,
            ActivityAction.DELETE_USER,
            f"Deleted user {user.name}",
            target_user_id=str(user_id),
        )

    async def reset_secret_key(
        self, user_id: UUID, *, actor: Actor = ANONYMOUS
    ) -> IssuedSecretKey:
        user = await self.get_user(user_id)
        secret_key, secret_hash = await _new_secret()
        try:
            await self._users.update_secret_key_hash(user_id, secret_hash)
        except KeyError:
            raise NotFoundError("user", user_id) from None

        logger.info("Secret key reset for user id=%s", user_id)
        await audit_log.record(
            self._audit,
            actor,
            ActivityAction.RESET_SECRET_KEY,
            f"Reset secret key for {user.name}",
            target_user_id=str(user_id),
        )
        return IssuedSecretKey(
            user=replace(user, secret_key_hash=secret_hash), secret_key=secret_key
        )
