"""Letter endpoints: draft CRUD, signing, QR image, signature list.

  POST   /v1/letters               admin      create draft
  GET    /v1/letters               signed-in  list (newest first)
  GET    /v1/letters/{id}          signed-in  one letter
  PUT    /v1/letters/{id}          admin      edit draft      (409 once signed)
  DELETE /v1/letters/{id}          admin      delete draft    (409 once signed)
  POST   /v1/letters/{id}/sign     signed-in  sign with own secret key
  GET    /v1/letters/{id}/qr       signed-in  PNG of the verification URL
  GET    /v1/signatures            signed-in  every signature
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, Field

from docseal.api.dependencies import (
    actor_for,
    client_info,
    get_signing_workflow,
    require_admin,
    require_user,
)
from docseal.api.errors import to_http_exception
from docseal.core.errors import DocsealError
from docseal.models.letter import Letter, Signature
from docseal.models.principal import Principal
from docseal.services.qr import QrOptions, qr_encoder
from docseal.services.signing import SigningWorkflow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["letters"])

Workflow = Annotated[SigningWorkflow, Depends(get_signing_workflow)]


class LetterIn(BaseModel):
    letter_number: str = Field(min_length=1)
    letter_date: datetime
    subject: str = Field(min_length=1)
    attachment: str = Field(min_length=1)
    content: str | None = None


class LetterUpdateIn(BaseModel):
    letter_number: str | None = Field(default=None, min_length=1)
    letter_date: datetime | None = None
    subject: str | None = Field(default=None, min_length=1)
    attachment: str | None = Field(default=None, min_length=1)
    content: str | None = None


class LetterOut(BaseModel):
    id: UUID
    letter_number: str
    letter_date: datetime
    subject: str
    attachment: str
    content: str | None
    status: str
    content_hash: str | None
    qr_payload: str | None
    created_by: UUID | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_letter(cls, letter: Letter) -> LetterOut:
        return cls(
            id=letter.id,
            letter_number=letter.letter_number,
            letter_date=letter.letter_date,
            subject=letter.subject,
            attachment=letter.attachment,
            content=letter.content,
            status=str(letter.status),
            content_hash=letter.content_hash,
            qr_payload=letter.qr_payload,
            created_by=letter.created_by,
            created_at=letter.created_at,
            updated_at=letter.updated_at,
        )


class SignIn(BaseModel):
    secret_key: str = Field(min_length=1)


class SignatureOut(BaseModel):
    id: UUID
    letter_id: UUID
    signer_id: UUID
    signer_name: str
    signed_at: datetime
    content_hash: str
    ip_address: str | None
    user_agent: str | None

    @classmethod
    def from_signature(cls, sig: Signature) -> SignatureOut:
        return cls(
            id=sig.id,
            letter_id=sig.letter_id,
            signer_id=sig.signer_id,
            signer_name=sig.signer_name,
            signed_at=sig.signed_at,
            content_hash=sig.content_hash,
            ip_address=sig.metadata.ip_address,
            user_agent=sig.metadata.user_agent,
        )


@router.post(
    "/v1/letters", response_model=LetterOut, status_code=status.HTTP_201_CREATED
)
async def create_letter(
    payload: LetterIn,
    request: Request,
    principal: Annotated[Principal, Depends(require_admin)],
    workflow: Workflow,
) -> LetterOut:
    try:
        letter = await workflow.create_letter(
            letter_number=payload.letter_number,
            letter_date=payload.letter_date,
            subject=payload.subject,
            attachment=payload.attachment,
            content=payload.content,
            actor=actor_for(principal, request),
        )
    except DocsealError as e:
        logger.warning("Letter create rejected: %s", e)
        raise to_http_exception(e) from None
    return LetterOut.from_letter(letter)


@router.get("/v1/letters", response_model=list[LetterOut])
async def list_letters(
    _principal: Annotated[Principal, Depends(require_user)],
    workflow: Workflow,
) -> list[LetterOut]:
    return [LetterOut.from_letter(letter) for letter in await workflow.list_letters()]


@router.get("/v1/letters/{letter_id}", response_model=LetterOut)
async def get_letter(
    letter_id: UUID,
    _principal: Annotated[Principal, Depends(require_user)],
    workflow: Workflow,
) -> LetterOut:
    try:
        letter = await workflow.get_letter(letter_id)
    except DocsealError as e:
        raise to_http_exception(e) from None
    return LetterOut.from_letter(letter)


@router.put("/v1/letters/{letter_id}", response_model=LetterOut)
async def update_letter(
    letter_id: UUID,
    payload: LetterUpdateIn,
    request: Request,
    principal: Annotated[Principal, Depends(require_admin)],
    workflow: Workflow,
) -> LetterOut:
    try:
        letter = await workflow.update_letter(
            letter_id,
            actor=actor_for(principal, request),
            **payload.model_dump(exclude_unset=True),
        )
    except DocsealError as e:
        logger.warning("Letter update rejected: %s", e, extra={"letter_id": str(letter_id)})
        raise to_http_exception(e) from None
    return LetterOut.from_letter(letter)


@router.delete("/v1/letters/{letter_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_letter(
    letter_id: UUID,
    request: Request,
    principal: Annotated[Principal, Depends(require_admin)],
    workflow: Workflow,
) -> Response:
    try:
        await workflow.delete_letter(letter_id, actor=actor_for(principal, request))
    except DocsealError as e:
        raise to_http_exception(e) from None
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/v1/letters/{letter_id}/sign",
    response_model=SignatureOut,
    status_code=status.HTTP_201_CREATED,
)
async def sign_letter(
    letter_id: UUID,
    payload: SignIn,
    request: Request,
    principal: Annotated[Principal, Depends(require_user)],
    workflow: Workflow,
) -> SignatureOut:
    signer_id = principal.user_uuid()
    if signer_id is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Token subject is not a signer account",
        )
    try:
        signature = await workflow.sign_with_secret_key(
            letter_id, signer_id, payload.secret_key, client_info(request)
        )
    except DocsealError as e:
        raise to_http_exception(e) from None
    return SignatureOut.from_signature(signature)


@router.get(
    "/v1/letters/{letter_id}/qr",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
)
async def letter_qr(
    letter_id: UUID,
    _principal: Annotated[Principal, Depends(require_user)],
    workflow: Workflow,
    size: int = 256,
) -> Response:
    try:
        letter = await workflow.get_letter(letter_id)
    except DocsealError as e:
        raise to_http_exception(e) from None
    if not letter.qr_payload:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="letter has no QR code until it is signed",
        )
    png = qr_encoder.encode_as_image(letter.qr_payload, QrOptions(size=max(64, min(size, 1024))))
    return Response(content=png, media_type="image/png")


@router.get("/v1/signatures", response_model=list[SignatureOut])
async def list_signatures(
    _principal: Annotated[Principal, Depends(require_user)],
    workflow: Workflow,
) -> list[SignatureOut]:
    return [SignatureOut.from_signature(s) for s in await workflow.list_signatures()]
