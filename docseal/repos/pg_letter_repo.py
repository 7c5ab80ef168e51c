"""PostgreSQL implementation of LetterRepo."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TypeVar
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from docseal.core.errors import AlreadySignedError, InvalidStateError, NotFoundError
from docseal.db.tables import LetterRow, SignatureRow
from docseal.models.letter import Letter, LetterStatus, Signature, SignatureMetadata

T = TypeVar("T")


class PgLetterRepo:
    """Satisfies the LetterRepo Protocol using PostgreSQL via SQLAlchemy.

    run_atomic wraps fn in a SAVEPOINT.  Inside it, get_letter(for_update=True)
    takes a row lock, so a second signer waits until the first commits and
    then sees the letter as signed.  The unique index on
    signatures.letter_id backs this up at the schema level.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_letter(
        self, letter_id: UUID, *, for_update: bool = False
    ) -> Letter | None:
        stmt = select(LetterRow).where(LetterRow.id == letter_id)
        if for_update:
            # Refresh the identity map; an earlier plain read may hold a stale row.
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_letter(row)

    async def get_letter_by_number(self, letter_number: str) -> Letter | None:
        stmt = select(LetterRow).where(LetterRow.letter_number == letter_number)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_letter(row)

    async def add_letter(self, letter: Letter) -> None:
        self._session.add(
            LetterRow(
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
        )
        await self._session.flush()

    async def update_letter(self, letter: Letter) -> Letter:
        stmt = (
            update(LetterRow)
            .where(
                LetterRow.id == letter.id,
                LetterRow.status != LetterStatus.SIGNED.value,
            )
            .values(
                letter_number=letter.letter_number,
                letter_date=letter.letter_date,
                subject=letter.subject,
                attachment=letter.attachment,
                content=letter.content,
                status=str(letter.status),
                content_hash=letter.content_hash,
                qr_payload=letter.qr_payload,
                updated_at=letter.updated_at,
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            if letter.status == LetterStatus.SIGNED:
                # A seal that lost the race.
                await self._raise_for_missing_or_signed(
                    letter.id, AlreadySignedError(letter.id)
                )
            await self._raise_for_missing_or_signed(
                letter.id, InvalidStateError("signed letters cannot be modified")
            )
        return letter

    async def delete_letter(self, letter_id: UUID) -> None:
        stmt = delete(LetterRow).where(
            LetterRow.id == letter_id,
            LetterRow.status != LetterStatus.SIGNED.value,
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            await self._raise_for_missing_or_signed(
                letter_id, InvalidStateError("signed letters cannot be deleted")
            )

    async def list_letters(self) -> list[Letter]:
        stmt = select(LetterRow).order_by(LetterRow.created_at.desc())
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_letter(r) for r in rows]

    async def add_signature(self, signature: Signature) -> None:
        self._session.add(
            SignatureRow(
                id=signature.id,
                letter_id=signature.letter_id,
                signer_id=signature.signer_id,
                signer_name=signature.signer_name,
                signed_at=signature.signed_at,
                content_hash=signature.content_hash,
                ip_address=signature.metadata.ip_address,
                user_agent=signature.metadata.user_agent,
            )
        )
        try:
            await self._session.flush()
        except IntegrityError:
            raise AlreadySignedError(signature.letter_id) from None

    async def get_signature_by_letter(self, letter_id: UUID) -> Signature | None:
        stmt = select(SignatureRow).where(SignatureRow.letter_id == letter_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_signature(row)

    async def list_signatures(self) -> list[Signature]:
        stmt = select(SignatureRow).order_by(SignatureRow.signed_at.desc())
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_signature(r) for r in rows]

    async def run_atomic(self, fn: Callable[[PgLetterRepo], Awaitable[T]]) -> T:
        async with self._session.begin_nested():
            return await fn(self)

    async def _raise_for_missing_or_signed(
        self, letter_id: UUID, signed_error: Exception
    ) -> None:
        if await self.get_letter(letter_id) is None:
            raise NotFoundError("letter", letter_id)
        raise signed_error


def _row_to_letter(row: LetterRow) -> Letter:
    return Letter(
        id=row.id,
        letter_number=row.letter_number,
        letter_date=row.letter_date,
        subject=row.subject,
        attachment=row.attachment,
        content=row.content,
        status=LetterStatus(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
        created_by=row.created_by,
        content_hash=row.content_hash,
        qr_payload=row.qr_payload,
    )


def _row_to_signature(row: SignatureRow) -> Signature:
    return Signature(
        id=row.id,
        letter_id=row.letter_id,
        signer_id=row.signer_id,
        signer_name=row.signer_name,
        signed_at=row.signed_at,
        content_hash=row.content_hash,
        metadata=SignatureMetadata(
            timestamp=row.signed_at,
            ip_address=row.ip_address,
            user_agent=row.user_agent,
        ),
    )
