"""Letter lifecycle and the sign transition.

LIFECYCLE
----------
  create ──▶ DRAFT ──update/delete──▶ DRAFT | gone
             DRAFT ──sign──▶ SIGNED   (terminal: no update, no delete)

sign() is the only way out of DRAFT.  It writes three things as a unit:
the letter's status, its content_hash + qr_payload, and the Signature
record.  The unit runs inside LetterRepo.run_atomic and re-reads the
letter under lock before writing, so when two signers race exactly one
gets a Signature and the other gets AlreadySignedError.

SECRET-KEY GATE
----------------
sign_with_secret_key() is what the HTTP route calls.  Before signing it
checks the signer's secret key, counting failures per signer in the
AttemptLimiter:

  blocked?              → RateLimitedError(remaining_seconds)
  unknown / inactive    → NotFoundError / InvalidStateError
  reserve attempt       → counts a failure up front; refused if a
                          concurrent guess blocked the signer meanwhile
  wrong key             → audit it, then
                          RateLimitedError if that failure blocked,
                          else InvalidSecretKeyError(remaining_attempts)
  right key             → clear failures, upgrade hash if stale, sign

The key itself is never logged or stored; only its Argon2 hash is read.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any
from uuid import UUID

from docseal.core.errors import (
    AlreadySignedError,
    ConflictError,
    InvalidSecretKeyError,
    InvalidStateError,
    NotFoundError,
    RateLimitedError,
    ValidationError,
)
from docseal.core.metrics import SIGNING_OUTCOMES
from docseal.core.timeutil import as_utc, utcnow
from docseal.models.activity import ANONYMOUS, ActivityAction, Actor
from docseal.models.letter import Letter, LetterStatus, Signature
from docseal.repos.activity_repo import ActivityRepo
from docseal.repos.letter_repo import LetterRepo
from docseal.repos.user_repo import UserRepo
from docseal.services import audit as audit_log
from docseal.services.credentials import hash_secret_key, needs_rehash, verify_secret_key
from docseal.services.fingerprint import fingerprint_letter, signature_fingerprint
from docseal.services.qr import letter_verification_url
from docseal.services.rate_limiter import AttemptLimiter

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = frozenset(
    {"letter_number", "letter_date", "subject", "attachment", "content"}
)
_REQUIRED_TEXT_FIELDS = ("letter_number", "subject", "attachment")


@dataclass(frozen=True, slots=True)
class ClientInfo:
    """Where a sign request came from; stored on the Signature."""

    ip_address: str | None = None
    user_agent: str | None = None


def _validate_letter_fields(fields: dict[str, Any]) -> None:
    for name in _REQUIRED_TEXT_FIELDS:
        if name in fields and not (fields[name] or "").strip():
            raise ValidationError(f"{name} must be non-empty")
    if "letter_date" in fields and fields["letter_date"] is None:
        raise ValidationError("letter_date is required")


def signer_attempt_key(signer_id: UUID) -> str:
    return f"sign:{signer_id}"


class SigningWorkflow:
    def __init__(
        self,
        letters: LetterRepo,
        users: UserRepo,
        audit: ActivityRepo,
        limiter: AttemptLimiter,
        *,
        base_url: str | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._letters = letters
        self._users = users
        self._audit = audit
        self._limiter = limiter
        self._base_url = base_url
        self._clock = clock

    # ------------------------------------------------------------------
    # Drafts
    # ------------------------------------------------------------------

    async def create_letter(
        self,
        *,
        letter_number: str,
        letter_date: datetime | date,
        subject: str,
        attachment: str,
        content: str | None = None,
        actor: Actor = ANONYMOUS,
    ) -> Letter:
        _validate_letter_fields(
            {
                "letter_number": letter_number,
                "letter_date": letter_date,
                "subject": subject,
                "attachment": attachment,
            }
        )
        letter_number = letter_number.strip()
        if await self._letters.get_letter_by_number(letter_number) is not None:
            raise ConflictError(f"letter number {letter_number!r} already exists")

        letter = Letter.new(
            letter_number=letter_number,
            letter_date=as_utc(letter_date),
            subject=subject,
            attachment=attachment,
            content=content,
            created_by=actor.user_id,
        )
        await self._letters.add_letter(letter)
        logger.info(
            "Letter created number=%s",
            letter.letter_number,
            extra={"letter_id": str(letter.id)},
        )
        await audit_log.record(
            self._audit,
            actor,
            ActivityAction.CREATE_LETTER,
            f"Created letter {letter.letter_number}",
            letter_id=str(letter.id),
        )
        return letter

    async def get_letter(self, letter_id: UUID) -> Letter:
        letter = await self._letters.get_letter(letter_id)
        if letter is None:
            raise NotFoundError("letter", letter_id)
        return letter

    async def list_letters(self) -> list[Letter]:
        return await self._letters.list_letters()

    async def list_signatures(self) -> list[Signature]:
        return await self._letters.list_signatures()

    async def update_letter(
        self, letter_id: UUID, *, actor: Actor = ANONYMOUS, **fields: Any
    ) -> Letter:
        """Apply *fields* to a draft.  Signed letters reject every update."""
        unknown = set(fields) - _EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"unknown letter fields: {', '.join(sorted(unknown))}")
        _validate_letter_fields(fields)
        if "letter_date" in fields:
            fields["letter_date"] = as_utc(fields["letter_date"])
        if "letter_number" in fields:
            fields["letter_number"] = fields["letter_number"].strip()

        async def _apply(repo: LetterRepo) -> Letter:
            current = await repo.get_letter(letter_id, for_update=True)
            if current is None:
                raise NotFoundError("letter", letter_id)
            if current.is_signed:
                raise InvalidStateError("signed letters cannot be modified")
            number = fields.get("letter_number")
            if number is not None and number != current.letter_number:
                clash = await repo.get_letter_by_number(number)
                if clash is not None:
                    raise ConflictError(f"letter number {number!r} already exists")
            return await repo.update_letter(
                replace(current, updated_at=self._clock(), **fields)
            )

        updated = await self._letters.run_atomic(_apply)
        await audit_log.record(
            self._audit,
            actor,
            ActivityAction.UPDATE_LETTER,
            f"Updated letter {updated.letter_number}",
            letter_id=str(letter_id),
            fields=sorted(fields),
        )
        return updated

    async def delete_letter(self, letter_id: UUID, *, actor: Actor = ANONYMOUS) -> None:
        async def _remove(repo: LetterRepo) -> Letter:
            current = await repo.get_letter(letter_id, for_update=True)
            if current is None:
                raise NotFoundError("letter", letter_id)
            if current.is_signed:
                raise InvalidStateError("signed letters cannot be deleted")
            await repo.delete_letter(letter_id)
            return current

        removed = await self._letters.run_atomic(_remove)
        logger.info("Letter deleted", extra={"letter_id": str(letter_id)})
        await audit_log.record(
            self._audit,
            actor,
            ActivityAction.DELETE_LETTER,
            f"Deleted letter {removed.letter_number}",
            letter_id=str(letter_id),
        )

    # ------------------------------------------------------------------
    # Signing
    # ------------------------------------------------------------------

    async def sign(
        self,
        letter_id: UUID,
        signer_id: UUID,
        signer_name: str,
        metadata: ClientInfo | None = None,
    ) -> Signature:
        """Seal a draft and record who signed it.  At most once per letter."""
        info = metadata or ClientInfo()
        letter = await self._letters.get_letter(letter_id)
        if letter is None:
            SIGNING_OUTCOMES.labels(outcome="not_found").inc()
            raise NotFoundError("letter", letter_id)
        if letter.status != LetterStatus.DRAFT:
            SIGNING_OUTCOMES.labels(outcome="already_signed").inc()
            raise AlreadySignedError(letter_id)

        qr_payload = letter_verification_url(letter.id, self._base_url)

        async def _seal(repo: LetterRepo) -> Signature:
            # Re-read under lock: another signer may have won since the check above.
            current = await repo.get_letter(letter_id, for_update=True)
            if current is None:
                raise NotFoundError("letter", letter_id)
            if current.status != LetterStatus.DRAFT:
                raise AlreadySignedError(letter_id)

            digest = fingerprint_letter(current)
            now = self._clock()
            await repo.update_letter(
                current.sealed(content_hash=digest, qr_payload=qr_payload, at=now)
            )
            signature = Signature.new(
                letter_id=letter_id,
                signer_id=signer_id,
                signer_name=signer_name,
                content_hash=digest,
                signed_at=now,
                ip_address=info.ip_address,
                user_agent=info.user_agent,
            )
            await repo.add_signature(signature)
            return signature

        try:
            signature = await self._letters.run_atomic(_seal)
        except AlreadySignedError:
            SIGNING_OUTCOMES.labels(outcome="already_signed").inc()
            logger.info(
                "Sign lost race: letter already signed",
                extra={"letter_id": str(letter_id), "signer_id": str(signer_id)},
            )
            raise

        SIGNING_OUTCOMES.labels(outcome="signed").inc()
        logger.info(
            "Letter signed",
            extra={"letter_id": str(letter_id), "signer_id": str(signer_id)},
        )
        return signature

    async def sign_with_secret_key(
        self,
        letter_id: UUID,
        signer_id: UUID,
        secret_key: str,
        metadata: ClientInfo | None = None,
    ) -> Signature:
        info = metadata or ClientInfo()
        key = signer_attempt_key(signer_id)

        block = await self._limiter.is_blocked(key)
        if block.blocked:
            SIGNING_OUTCOMES.labels(outcome="rate_limited").inc()
            raise RateLimitedError(block.remaining_seconds or 0)

        signer = await self._users.get_by_id(signer_id)
        if signer is None:
            SIGNING_OUTCOMES.labels(outcome="not_found").inc()
            raise NotFoundError("user", signer_id)
        if not signer.is_active:
            SIGNING_OUTCOMES.labels(outcome="inactive_signer").inc()
            raise InvalidStateError("signer account is inactive")

        actor = Actor(
            user_id=signer.id,
            name=signer.name,
            ip_address=info.ip_address,
            user_agent=info.user_agent,
        )

        # Counted as a failure until the key checks out.
        reservation = await self._limiter.reserve_attempt(key)
        if not reservation.granted:
            SIGNING_OUTCOMES.labels(outcome="rate_limited").inc()
            raise RateLimitedError(reservation.remaining_seconds or 0)

        # Argon2 verify runs in a worker thread.
        if not await asyncio.to_thread(verify_secret_key, secret_key, signer.secret_key_hash):
            await audit_log.record(
                self._audit,
                actor,
                ActivityAction.FAILED_SECRET_KEY_ATTEMPT,
                "Failed secret key attempt while signing",
                letter_id=str(letter_id),
                attempts=reservation.attempts,
                blocked=reservation.blocked,
            )
            logger.warning(
                "Secret key rejected attempts=%s blocked=%s",
                reservation.attempts,
                reservation.blocked,
                extra={"letter_id": str(letter_id), "signer_id": str(signer_id)},
            )
            if reservation.blocked:
                SIGNING_OUTCOMES.labels(outcome="rate_limited").inc()
                raise RateLimitedError(
                    reservation.remaining_seconds or self._limiter.config.block_seconds
                )
            SIGNING_OUTCOMES.labels(outcome="bad_secret_key").inc()
            raise InvalidSecretKeyError(
                max(0, self._limiter.config.max_attempts - reservation.attempts)
            )

        await self._limiter.record_attempt(key, success=True)

        if needs_rehash(signer.secret_key_hash):
            new_hash = await asyncio.to_thread(hash_secret_key, secret_key)
            await self._users.update_secret_key_hash(signer.id, new_hash)
            logger.info("Rehashed secret key", extra={"signer_id": str(signer.id)})

        signature = await self.sign(letter_id, signer.id, signer.name, info)

        letter = await self._letters.get_letter(letter_id)
        await audit_log.record(
            self._audit,
            actor,
            ActivityAction.SIGN_LETTER,
            f"Signed letter {letter.letter_number if letter else letter_id}",
            letter_id=str(letter_id),
            content_hash=signature.content_hash,
            signature_hash=signature_fingerprint(
                signature.content_hash, signer.id, signature.signed_at
            ),
        )
        return signature
