"""Public verification endpoint behind every printed QR code.

GET /v1/verify/{document_id} needs no token.  The response is tagged by
``type``: "letter" carries the letter, its signature and both validity
flags; "certificate" carries the claim and its event.
"""

from __future__ import annotations

from typing import Annotated, Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from docseal.api.dependencies import get_verification_service
from docseal.api.errors import to_http_exception
from docseal.api.events import ClaimOut, EventOut
from docseal.api.letters import LetterOut, SignatureOut
from docseal.core.errors import DocsealError
from docseal.models.verification import LetterVerification
from docseal.services.verification import VerificationService

router = APIRouter(tags=["verify"])


class LetterVerificationOut(BaseModel):
    type: Literal["letter"] = "letter"
    is_valid: bool
    is_integrity_valid: bool
    letter: LetterOut
    signature: SignatureOut | None


class CertificateVerificationOut(BaseModel):
    type: Literal["certificate"] = "certificate"
    is_valid: bool
    claim: ClaimOut
    event: EventOut | None


@router.get(
    "/v1/verify/{document_id}",
    response_model=LetterVerificationOut | CertificateVerificationOut,
)
async def verify_document(
    document_id: str,
    service: Annotated[VerificationService, Depends(get_verification_service)],
) -> LetterVerificationOut | CertificateVerificationOut:
    try:
        result = await service.verify(document_id)
    except DocsealError as e:
        raise to_http_exception(e) from None

    if isinstance(result, LetterVerification):
        return LetterVerificationOut(
            is_valid=result.is_valid,
            is_integrity_valid=result.is_integrity_valid,
            letter=LetterOut.from_letter(result.letter),
            signature=(
                SignatureOut.from_signature(result.signature) if result.signature else None
            ),
        )
    return CertificateVerificationOut(
        is_valid=result.is_valid,
        claim=ClaimOut.from_claim(result.claim),
        event=EventOut.from_event(result.event) if result.event else None,
    )
