"""PostgreSQL implementation of EventRepo."""

from __future__ import annotations

from dataclasses import asdict
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from docseal.core.errors import NotFoundError
from docseal.db.tables import CertificateClaimRow, EventRow
from docseal.models.event import CertificateClaim, Event, TemplateConfig


class PgEventRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_event(self, event_id: UUID) -> Event | None:
        stmt = select(EventRow).where(EventRow.id == event_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_event(row)

    async def add_event(self, event: Event) -> None:
        self._session.add(
            EventRow(
                id=event.id,
                name=event.name,
                date=event.date,
                claim_deadline=event.claim_deadline,
                template_url=event.template_url,
                template_config=asdict(event.template_config),
                created_by=event.created_by,
                created_at=event.created_at,
                updated_at=event.updated_at,
            )
        )
        await self._session.flush()

    async def update_event(self, event: Event) -> Event:
        stmt = (
            update(EventRow)
            .where(EventRow.id == event.id)
            .values(
                name=event.name,
                date=event.date,
                claim_deadline=event.claim_deadline,
                template_url=event.template_url,
                template_config=asdict(event.template_config),
                updated_at=event.updated_at,
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise NotFoundError("event", event.id)
        return event

    async def delete_event(self, event_id: UUID) -> None:
        await self._session.execute(
            delete(CertificateClaimRow).where(CertificateClaimRow.event_id == event_id)
        )
        result = await self._session.execute(delete(EventRow).where(EventRow.id == event_id))
        if result.rowcount == 0:
            raise NotFoundError("event", event_id)

    async def list_events(self) -> list[Event]:
        stmt = select(EventRow).order_by(EventRow.date.desc())
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_event(r) for r in rows]

    async def add_claim(self, claim: CertificateClaim) -> None:
        self._session.add(
            CertificateClaimRow(
                id=claim.id,
                event_id=claim.event_id,
                user_id=claim.user_id,
                recipient_name=claim.recipient_name,
                call_sign=claim.call_sign,
                certificate_number=claim.certificate_number,
                qr_payload=claim.qr_payload,
                claimed_at=claim.claimed_at,
            )
        )
        await self._session.flush()

    async def get_claim(self, claim_id: UUID) -> CertificateClaim | None:
        stmt = select(CertificateClaimRow).where(CertificateClaimRow.id == claim_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_claim(row)

    async def list_claims(self, event_id: UUID) -> list[CertificateClaim]:
        stmt = (
            select(CertificateClaimRow)
            .where(CertificateClaimRow.event_id == event_id)
            .order_by(CertificateClaimRow.claimed_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_claim(r) for r in rows]

    async def count_claims(self) -> int:
        stmt = select(func.count()).select_from(CertificateClaimRow)
        return int((await self._session.execute(stmt)).scalar_one())


def _row_to_event(row: EventRow) -> Event:
    return Event(
        id=row.id,
        name=row.name,
        date=row.date,
        claim_deadline=row.claim_deadline,
        created_at=row.created_at,
        updated_at=row.updated_at,
        template_url=row.template_url,
        template_config=TemplateConfig(**(row.template_config or {})),
        created_by=row.created_by,
    )


def _row_to_claim(row: CertificateClaimRow) -> CertificateClaim:
    return CertificateClaim(
        id=row.id,
        event_id=row.event_id,
        recipient_name=row.recipient_name,
        certificate_number=row.certificate_number,
        qr_payload=row.qr_payload,
        claimed_at=row.claimed_at,
        call_sign=row.call_sign,
        user_id=row.user_id,
    )
