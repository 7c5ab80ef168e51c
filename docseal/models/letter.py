from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID, uuid4


class LetterStatus(StrEnum):
    """Stored letter status.

    Only DRAFT and SIGNED are ever written.  INVALID is reserved: it is
    accepted when reading rows and counted by /v1/stats, but no workflow
    moves a letter into it.
    """

    DRAFT = "draft"
    SIGNED = "signed"
    INVALID = "invalid"


@dataclass(frozen=True, slots=True)
class Letter:
    """An outgoing letter.

    ``content_hash`` and ``qr_payload`` are present only once the letter is
    signed; from then on the five canonical fields never change.
    """

    id: UUID
    letter_number: str
    letter_date: datetime
    subject: str
    attachment: str
    content: str | None
    status: LetterStatus
    created_at: datetime
    updated_at: datetime
    created_by: UUID | None = None
    content_hash: str | None = None
    qr_payload: str | None = None

    @property
    def is_signed(self) -> bool:
        return self.status == LetterStatus.SIGNED

    @staticmethod
    def new(
        *,
        letter_number: str,
        letter_date: datetime,
        subject: str,
        attachment: str,
        content: str | None = None,
        created_by: UUID | None = None,
    ) -> Letter:
        now = datetime.now(UTC)
        return Letter(
            id=uuid4(),
            letter_number=letter_number,
            letter_date=letter_date,
            subject=subject,
            attachment=attachment,
            content=content,
            status=LetterStatus.DRAFT,
            created_at=now,
            updated_at=now,
            created_by=created_by,
        )

    def sealed(self, *, content_hash: str, qr_payload: str, at: datetime) -> Letter:
        return replace(
            self,
            status=LetterStatus.SIGNED,
            content_hash=content_hash,
            qr_payload=qr_payload,
            updated_at=at,
        )


@dataclass(frozen=True, slots=True)
class SignatureMetadata:
    timestamp: datetime
    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True, slots=True)
class Signature:
    """Recorded attestation: who signed which fingerprint, and when."""

    id: UUID
    letter_id: UUID
    signer_id: UUID
    signer_name: str
    signed_at: datetime
    content_hash: str
    metadata: SignatureMetadata = field(
        default_factory=lambda: SignatureMetadata(timestamp=datetime.now(UTC))
    )

    @staticmethod
    def new(
        *,
        letter_id: UUID,
        signer_id: UUID,
        signer_name: str,
        content_hash: str,
        signed_at: datetime,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> Signature:
        return Signature(
            id=uuid4(),
            letter_id=letter_id,
            signer_id=signer_id,
            signer_name=signer_name,
            signed_at=signed_at,
            content_hash=content_hash,
            metadata=SignatureMetadata(
                timestamp=signed_at,
                ip_address=ip_address,
                user_agent=user_agent,
            ),
        )
