from __future__ import annotations

from typing import Protocol
from uuid import UUID

from docseal.core.errors import NotFoundError
from docseal.models.event import CertificateClaim, Event


class EventRepo(Protocol):
    async def get_event(self, event_id: UUID) -> Event | None: ...
    async def add_event(self, event: Event) -> None: ...
    async def update_event(self, event: Event) -> Event: ...
    async def delete_event(self, event_id: UUID) -> None: ...
    async def list_events(self) -> list[Event]: ...
    async def add_claim(self, claim: CertificateClaim) -> None: ...
    async def get_claim(self, claim_id: UUID) -> CertificateClaim | None: ...
    async def list_claims(self, event_id: UUID) -> list[CertificateClaim]: ...
    async def count_claims(self) -> int: ...


class InMemoryEventRepo:
    def __init__(self) -> None:
        self._events: dict[UUID, Event] = {}
        self._claims: dict[UUID, CertificateClaim] = {}

    async def get_event(self, event_id: UUID) -> Event | None:
        return self._events.get(event_id)

    async def add_event(self, event: Event) -> None:
        if event.id in self._events:
            raise ValueError("event id already exists")
        self._events[event.id] = event

    async def update_event(self, event: Event) -> Event:
        if event.id not in self._events:
            raise NotFoundError("event", event.id)
        self._events[event.id] = event
        return event

    async def delete_event(self, event_id: UUID) -> None:
        if self._events.pop(event_id, None) is None:
            raise NotFoundError("event", event_id)
        for claim_id in [c.id for c in self._claims.values() if c.event_id == event_id]:
            del self._claims[claim_id]

    async def list_events(self) -> list[Event]:
        return sorted(self._events.values(), key=lambda e: e.date, reverse=True)

    async def add_claim(self, claim: CertificateClaim) -> None:
        if claim.event_id not in self._events:
            raise NotFoundError("event", claim.event_id)
        if claim.id in self._claims:
            raise ValueError("claim id already exists")
        self._claims[claim.id] = claim

    async def get_claim(self, claim_id: UUID) -> CertificateClaim | None:
        return self._claims.get(claim_id)

    async def list_claims(self, event_id: UUID) -> list[CertificateClaim]:
        claims = [c for c in self._claims.values() if c.event_id == event_id]
        return sorted(claims, key=lambda c: c.claimed_at, reverse=True)

    async def count_claims(self) -> int:
        return len(self._claims)
