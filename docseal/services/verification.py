"""Public verification of letters and certificates.

A document id from a QR code is either a letter id or a certificate claim
id.  Letters are looked up first.  For a letter the stored fingerprint is
recomputed from the current canonical fields and compared; a mismatch is
reported, not raised.  A claim is valid simply by existing.

This is a read-only path: nothing here writes to any store.
"""

from __future__ import annotations

import logging
from uuid import UUID

from docseal.core.errors import NotFoundError
from docseal.core.metrics import VERIFICATION_RESULTS
from docseal.models.verification import (
    CertificateVerification,
    LetterVerification,
    VerificationResult,
)
from docseal.repos.event_repo import EventRepo
from docseal.repos.letter_repo import LetterRepo
from docseal.services.fingerprint import verify_letter_integrity

logger = logging.getLogger(__name__)


def _parse_document_id(document_id: UUID | str) -> UUID | None:
    if isinstance(document_id, UUID):
        return document_id
    try:
        return UUID(str(document_id).strip())
    except ValueError:
        return None


class VerificationService:
    def __init__(self, letters: LetterRepo, events: EventRepo) -> None:
        self._letters = letters
        self._events = events

    async def verify(self, document_id: UUID | str) -> VerificationResult:
        doc_id = _parse_document_id(document_id)
        if doc_id is None:
            VERIFICATION_RESULTS.labels(document_type="unknown", result="not_found").inc()
            raise NotFoundError("document", document_id)

        letter = await self._letters.get_letter(doc_id)
        if letter is not None:
            signature = await self._letters.get_signature_by_letter(letter.id)
            integrity_ok = verify_letter_integrity(letter)
            is_valid = letter.is_signed and signature is not None and integrity_ok

            if is_valid:
                outcome = "valid"
            elif not letter.is_signed:
                outcome = "unsigned"
            else:
                outcome = "tampered"
            VERIFICATION_RESULTS.labels(document_type="letter", result=outcome).inc()
            if outcome == "tampered":
                logger.warning(
                    "Integrity check failed for signed letter",
                    extra={"letter_id": str(letter.id)},
                )
            return LetterVerification(
                letter=letter,
                signature=signature,
                is_valid=is_valid,
                is_integrity_valid=integrity_ok,
            )

        claim = await self._events.get_claim(doc_id)
        if claim is not None:
            event = await self._events.get_event(claim.event_id)
            VERIFICATION_RESULTS.labels(document_type="certificate", result="valid").inc()
            return CertificateVerification(claim=claim, event=event)

        VERIFICATION_RESULTS.labels(document_type="unknown", result="not_found").inc()
        logger.info("Verification for unknown document", extra={"document_id": str(doc_id)})
        raise NotFoundError("document", doc_id)
