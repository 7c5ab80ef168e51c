"""PostgreSQL implementation of ActivityRepo.

Unlike the other Pg repos this one does not share the request session.
Each append runs in its own short transaction, so an entry such as a
failed secret-key attempt is kept even when the request that produced it
ends in an error and its session rolls back.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docseal.db.tables import ActivityLogRow
from docseal.models.activity import ActivityAction, ActivityLog


class PgActivityRepo:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def append(self, entry: ActivityLog) -> None:
        async with self._session_factory() as session, session.begin():
            session.add(
                ActivityLogRow(
                    id=entry.id,
                    user_id=entry.user_id,
                    user_name=entry.user_name,
                    action=str(entry.action),
                    description=entry.description,
                    metadata_json=entry.metadata,
                    ip_address=entry.ip_address,
                    created_at=entry.created_at,
                )
            )

    async def list_recent(self, limit: int = 100) -> list[ActivityLog]:
        stmt = (
            select(ActivityLogRow)
            .order_by(ActivityLogRow.created_at.desc())
            .limit(limit)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [
            ActivityLog(
                id=r.id,
                action=ActivityAction(r.action),
                description=r.description,
                created_at=r.created_at,
                user_id=r.user_id,
                user_name=r.user_name,
                metadata=dict(r.metadata_json or {}),
                ip_address=r.ip_address,
            )
            for r in rows
        ]
