from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class TemplateConfig:
    """Overlay positions for the certificate renderer (not used here)."""

    name_x: float = 0
    name_y: float = 0
    name_font_size: float = 32
    qr_x: float = 0
    qr_y: float = 0
    qr_size: float = 120


@dataclass(frozen=True, slots=True)
class Event:
    id: UUID
    name: str
    date: datetime
    claim_deadline: datetime
    created_at: datetime
    updated_at: datetime
    template_url: str | None = None
    template_config: TemplateConfig = field(default_factory=TemplateConfig)
    created_by: UUID | None = None

    def accepts_claims_at(self, now: datetime) -> bool:
        return now <= self.claim_deadline

    @staticmethod
    def new(
        *,
        name: str,
        date: datetime,
        claim_deadline: datetime,
        template_url: str | None = None,
        template_config: TemplateConfig | None = None,
        created_by: UUID | None = None,
    ) -> Event:
        now = datetime.now(UTC)
        return Event(
            id=uuid4(),
            name=name,
            date=date,
            claim_deadline=claim_deadline,
            created_at=now,
            updated_at=now,
            template_url=template_url,
            template_config=template_config or TemplateConfig(),
            created_by=created_by,
        )


@dataclass(frozen=True, slots=True)
class CertificateClaim:
    """A participant's certificate for an event.  Immutable once created.

    ``certificate_number`` is a display label derived from truncated ids;
    ``id`` is the identity.
    """

    id: UUID
    event_id: UUID
    recipient_name: str
    certificate_number: str
    qr_payload: str
    claimed_at: datetime
    call_sign: str | None = None
    user_id: UUID | None = None
