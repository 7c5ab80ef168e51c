"""PostgreSQL implementation of UserRepo."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from docseal.db.tables import UserRow
from docseal.models.user import User, UserRole


class PgUserRepo:
    """Satisfies the UserRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: UUID) -> User | None:
        stmt = select(UserRow).where(UserRow.id == user_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_user(row)

    async def get_by_email(self, email: str) -> User | None:
        stmt = select(UserRow).where(UserRow.email == email)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_user(row)

    async def add(self, user: User) -> None:
        row = UserRow(
            id=user.id,
            name=user.name,
            email=user.email,
            role=str(user.role),
            secret_key_hash=user.secret_key_hash,
            is_active=user.is_active,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
        self._session.add(row)
        await self._session.flush()

    async def list_all(self) -> list[User]:
        stmt = select(UserRow).order_by(UserRow.created_at.desc())
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_user(r) for r in rows]

    async def update(self, user: User) -> User | None:
        stmt = (
            update(UserRow)
            .where(UserRow.id == user.id)
            .values(
                name=user.name,
                email=user.email,
                role=str(user.role),
                is_active=user.is_active,
                updated_at=user.updated_at,
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return user

    async def update_secret_key_hash(self, user_id: UUID, secret_key_hash: str) -> None:
        stmt = (
            update(UserRow)
            .where(UserRow.id == user_id)
            .values(secret_key_hash=secret_key_hash, updated_at=datetime.now(UTC))
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise KeyError("user not found")

    async def delete(self, user_id: UUID) -> bool:
        result = await self._session.execute(delete(UserRow).where(UserRow.id == user_id))
        return result.rowcount > 0


def _row_to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        role=UserRole(row.role),
        secret_key_hash=row.secret_key_hash,
        created_at=row.created_at,
        updated_at=row.updated_at,
        is_active=row.is_active,
    )
