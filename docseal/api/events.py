"""Event administration and certificate claims.

Claiming is public: anyone with the event link may claim until the
deadline.  Everything else requires an admin token.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel, Field

from docseal.api.dependencies import (
    actor_for,
    get_claim_workflow,
    get_events_service,
    require_admin,
)
from docseal.api.errors import to_http_exception
from docseal.core.errors import DocsealError
from docseal.models.event import CertificateClaim, Event, TemplateConfig
from docseal.models.principal import Principal
from docseal.services.claims import ClaimWorkflow
from docseal.services.events_service import EventsService
from docseal.services.qr import QrOptions, qr_encoder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/events", tags=["events"])

Events = Annotated[EventsService, Depends(get_events_service)]
Claims = Annotated[ClaimWorkflow, Depends(get_claim_workflow)]
Admin = Annotated[Principal, Depends(require_admin)]


class TemplateConfigModel(BaseModel):
    name_x: float = 0
    name_y: float = 0
    name_font_size: float = 32
    qr_x: float = 0
    qr_y: float = 0
    qr_size: float = 120

    def to_config(self) -> TemplateConfig:
        return TemplateConfig(**self.model_dump())


class EventIn(BaseModel):
    name: str = Field(min_length=1)
    date: datetime
    claim_deadline: datetime
    template_url: str | None = None
    template_config: TemplateConfigModel | None = None


class EventUpdateIn(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    date: datetime | None = None
    claim_deadline: datetime | None = None
    template_url: str | None = None
    template_config: TemplateConfigModel | None = None


class EventOut(BaseModel):
    id: UUID
    name: str
    date: datetime
    claim_deadline: datetime
    template_url: str | None
    template_config: TemplateConfigModel
    created_by: UUID | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_event(cls, event: Event) -> EventOut:
        tc = event.template_config
        return cls(
            id=event.id,
            name=event.name,
            date=event.date,
            claim_deadline=event.claim_deadline,
            template_url=event.template_url,
            template_config=TemplateConfigModel(
                name_x=tc.name_x,
                name_y=tc.name_y,
                name_font_size=tc.name_font_size,
                qr_x=tc.qr_x,
                qr_y=tc.qr_y,
                qr_size=tc.qr_size,
            ),
            created_by=event.created_by,
            created_at=event.created_at,
            updated_at=event.updated_at,
        )


class ClaimIn(BaseModel):
    recipient_name: str = Field(min_length=1, max_length=255)
    call_sign: str | None = Field(default=None, max_length=64)


class ClaimOut(BaseModel):
    id: UUID
    event_id: UUID
    recipient_name: str
    call_sign: str | None
    certificate_number: str
    qr_payload: str
    claimed_at: datetime

    @classmethod
    def from_claim(cls, claim: CertificateClaim) -> ClaimOut:
        return cls(
            id=claim.id,
            event_id=claim.event_id,
            recipient_name=claim.recipient_name,
            call_sign=claim.call_sign,
            certificate_number=claim.certificate_number,
            qr_payload=claim.qr_payload,
            claimed_at=claim.claimed_at,
        )


@router.post("", response_model=EventOut, status_code=status.HTTP_201_CREATED)
async def create_event(
    payload: EventIn, request: Request, principal: Admin, events: Events
) -> EventOut:
    try:
        event = await events.create_event(
            name=payload.name,
            date=payload.date,
            claim_deadline=payload.claim_deadline,
            template_url=payload.template_url,
            template_config=(
                payload.template_config.to_config() if payload.template_config else None
            ),
            actor=actor_for(principal, request),
        )
    except DocsealError as e:
        raise to_http_exception(e) from None
    return EventOut.from_event(event)


@router.get("", response_model=list[EventOut])
async def list_events(_principal: Admin, events: Events) -> list[EventOut]:
    return [EventOut.from_event(e) for e in await events.list_events()]


@router.get("/{event_id}", response_model=EventOut)
async def get_event(event_id: UUID, events: Events) -> EventOut:
    # Public: the claim page shows the event name and deadline.
    try:
        event = await events.get_event(event_id)
    except DocsealError as e:
        raise to_http_exception(e) from None
    return EventOut.from_event(event)


@router.put("/{event_id}", response_model=EventOut)
async def update_event(
    event_id: UUID,
    payload: EventUpdateIn,
    request: Request,
    principal: Admin,
    events: Events,
) -> EventOut:
    fields = payload.model_dump(exclude_unset=True)
    if "template_config" in fields:
        fields["template_config"] = (
            payload.template_config.to_config() if payload.template_config else None
        )
    try:
        event = await events.update_event(
            event_id, actor=actor_for(principal, request), **fields
        )
    except DocsealError as e:
        raise to_http_exception(e) from None
    return EventOut.from_event(event)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: UUID, request: Request, principal: Admin, events: Events
) -> Response:
    try:
        await events.delete_event(event_id, actor=actor_for(principal, request))
    except DocsealError as e:
        raise to_http_exception(e) from None
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{event_id}/claims", response_model=ClaimOut, status_code=status.HTTP_201_CREATED
)
async def claim_certificate(
    event_id: UUID, payload: ClaimIn, request: Request, claims: Claims
) -> ClaimOut:
    try:
        claim = await claims.claim(
            event_id,
            payload.recipient_name,
            payload.call_sign,
            actor=actor_for(None, request),
        )
    except DocsealError as e:
        logger.info("Claim rejected: %s", e, extra={"event_id": str(event_id)})
        raise to_http_exception(e) from None
    return ClaimOut.from_claim(claim)


@router.get("/{event_id}/claims", response_model=list[ClaimOut])
async def list_claims(event_id: UUID, _principal: Admin, claims: Claims) -> list[ClaimOut]:
    try:
        items = await claims.list_claims(event_id)
    except DocsealError as e:
        raise to_http_exception(e) from None
    return [ClaimOut.from_claim(c) for c in items]


@router.get(
    "/{event_id}/claims/{claim_id}/qr",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
)
async def claim_qr(
    event_id: UUID, claim_id: UUID, claims: Claims, size: int = 256
) -> Response:
    try:
        claim = await claims.get_claim(event_id, claim_id)
    except DocsealError as e:
        raise to_http_exception(e) from None
    png = qr_encoder.encode_as_image(claim.qr_payload, QrOptions(size=max(64, min(size, 1024))))
    return Response(content=png, media_type="image/png")
