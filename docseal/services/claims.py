"""Self-service certificate claims.

Anyone holding an event link may claim a certificate under any name until
the event's claim deadline (inclusive).  Claims are never deduplicated:
two claims under the same name are two certificates.

certificate_number is a short human label, CERT/<event4>/<claim4>, built
from truncated ids.  It is not unique; the claim id is the identity and is
what the QR payload carries.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from uuid import UUID, uuid4

from docseal.core.errors import DeadlinePassedError, NotFoundError, ValidationError
from docseal.core.metrics import CERTIFICATE_CLAIMS
from docseal.core.timeutil import utcnow
from docseal.models.activity import ANONYMOUS, ActivityAction, Actor
from docseal.models.event import CertificateClaim
from docseal.repos.activity_repo import ActivityRepo
from docseal.repos.event_repo import EventRepo
from docseal.services import audit as audit_log
from docseal.services.qr import certificate_payload

logger = logging.getLogger(__name__)


def certificate_number(event_id: UUID, claim_id: UUID) -> str:
    return f"CERT/{str(event_id)[:4]}/{str(claim_id)[:4]}".upper()


class ClaimWorkflow:
    def __init__(
        self,
        events: EventRepo,
        audit: ActivityRepo,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._events = events
        self._audit = audit
        self._clock = clock

    async def claim(
        self,
        event_id: UUID,
        recipient_name: str,
        call_sign: str | None = None,
        user_id: UUID | None = None,
        *,
        actor: Actor = ANONYMOUS,
    ) -> CertificateClaim:
        recipient_name = (recipient_name or "").strip()
        if not recipient_name:
            raise ValidationError("recipient_name must be non-empty")
        call_sign = (call_sign or "").strip() or None

        event = await self._events.get_event(event_id)
        if event is None:
            CERTIFICATE_CLAIMS.labels(outcome="not_found").inc()
            raise NotFoundError("event", event_id)

        now = self._clock()
        if not event.accepts_claims_at(now):
            CERTIFICATE_CLAIMS.labels(outcome="deadline_passed").inc()
            logger.info(
                "Claim rejected after deadline %s",
                event.claim_deadline.isoformat(),
                extra={"event_id": str(event_id)},
            )
            raise DeadlinePassedError(event_id)

        claim_id = uuid4()
        claim = CertificateClaim(
            id=claim_id,
            event_id=event.id,
            recipient_name=recipient_name,
            certificate_number=certificate_number(event.id, claim_id),
            qr_payload=certificate_payload(
                event_id=event.id,
                claim_id=claim_id,
                recipient_name=recipient_name,
                call_sign=call_sign,
            ),
            claimed_at=now,
            call_sign=call_sign,
            user_id=user_id,
        )
        await self._events.add_claim(claim)
        CERTIFICATE_CLAIMS.labels(outcome="claimed").inc()
        logger.info(
            "Certificate claimed number=%s",
            claim.certificate_number,
            extra={"event_id": str(event.id), "claim_id": str(claim.id)},
        )

        claimant = actor if actor.name else replace(actor, user_id=user_id, name=recipient_name)
        await audit_log.record(
            self._audit,
            claimant,
            ActivityAction.CLAIM_CERTIFICATE,
            f"Claimed certificate {claim.certificate_number} for {event.name}",
            event_id=str(event.id),
            claim_id=str(claim.id),
        )
        return claim

    async def list_claims(self, event_id: UUID) -> list[CertificateClaim]:
        if await self._events.get_event(event_id) is None:
            raise NotFoundError("event", event_id)
        return await self._events.list_claims(event_id)

    async def get_claim(self, event_id: UUID, claim_id: UUID) -> CertificateClaim:
        claim = await self._events.get_claim(claim_id)
        if claim is None or claim.event_id != event_id:
            raise NotFoundError("claim", claim_id)
        return claim
