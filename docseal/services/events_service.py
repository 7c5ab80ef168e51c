from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any
from uuid import UUID

from docseal.core.errors import NotFoundError, ValidationError
from docseal.core.timeutil import as_utc, utcnow
from docseal.models.activity import ANONYMOUS, ActivityAction, Actor
from docseal.models.event import Event, TemplateConfig
from docseal.repos.activity_repo import ActivityRepo
from docseal.repos.event_repo import EventRepo
from docseal.services import audit as audit_log

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = frozenset(
    {"name", "date", "claim_deadline", "template_url", "template_config"}
)


class EventsService:
    """Event administration.  Deleting an event deletes its claims."""

    def __init__(self, events: EventRepo, audit: ActivityRepo) -> None:
        self._events = events
        self._audit = audit

    async def list_events(self) -> list[Event]:
        return await self._events.list_events()

    async def get_event(self, event_id: UUID) -> Event:
        event = await self._events.get_event(event_id)
        if event is None:
            raise NotFoundError("event", event_id)
        return event

    async def create_event(
        self,
        *,
        name: str,
        date: datetime,
        claim_deadline: datetime,
        template_url: str | None = None,
        template_config: TemplateConfig | None = None,
        actor: Actor = ANONYMOUS,
    ) -> Event:
        name = (name or "").strip()
        if not name:
            raise ValidationError("name must be non-empty")

        event = Event.new(
            name=name,
            date=as_utc(date),
            claim_deadline=as_utc(claim_deadline),
            template_url=template_url,
            template_config=template_config,
            created_by=actor.user_id,
        )
        await self._events.add_event(event)
        logger.info("Event created name=%s", event.name, extra={"event_id": str(event.id)})
        await audit_log.record(
            self._audit,
            actor,
            ActivityAction.CREATE_EVENT,
            f"Created event {event.name}",
            event_id=str(event.id),
        )
        return event

    async def update_event(
        self, event_id: UUID, *, actor: Actor = ANONYMOUS, **fields: Any
    ) -> Event:
        unknown = set(fields) - _EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"unknown event fields: {', '.join(sorted(unknown))}")
        if "name" in fields:
            fields["name"] = (fields["name"] or "").strip()
            if not fields["name"]:
                raise ValidationError("name must be non-empty")
        for key in ("date", "claim_deadline"):
            if key in fields:
                if fields[key] is None:
                    raise ValidationError(f"{key} is required")
                fields[key] = as_utc(fields[key])
        if "template_config" in fields and fields["template_config"] is None:
            fields["template_config"] = TemplateConfig()

        event = await self.get_event(event_id)
        updated = await self._events.update_event(
            replace(event, updated_at=utcnow(), **fields)
        )
        await audit_log.record(
            self._audit,
            actor,
            ActivityAction.UPDATE_EVENT,
            f"Updated event {updated.name}",
            event_id=str(event_id),
            fields=sorted(fields),
        )
        return updated

    async def delete_event(self, event_id: UUID, *, actor: Actor = ANONYMOUS) -> None:
        event = await self.get_event(event_id)
        await self._events.delete_event(event_id)
        logger.info("Event deleted with its claims", extra={"event_id": str(event_id)})
        await audit_log.record(
            self._audit,
            actor,
            ActivityAction.DELETE_EVENT,
            f"Deleted event {event.name}",
            event_id=str(event_id),
        )
