from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Protocol, TypeVar
from uuid import UUID

from docseal.core.errors import AlreadySignedError, InvalidStateError, NotFoundError
from docseal.models.letter import Letter, Signature

T = TypeVar("T")


class LetterRepo(Protocol):
    """Letters and their signatures.

    update_letter/delete_letter refuse to touch a letter whose STORED status
    is signed.  run_atomic(fn) executes fn(repo) as one all-or-nothing unit:
    if fn raises, none of its writes remain visible.
    """

    async def get_letter(
        self, letter_id: UUID, *, for_update: bool = False
    ) -> Letter | None: ...
    async def get_letter_by_number(self, letter_number: str) -> Letter | None: ...
    async def add_letter(self, letter: Letter) -> None: ...
    async def update_letter(self, letter: Letter) -> Letter: ...
    async def delete_letter(self, letter_id: UUID) -> None: ...
    async def list_letters(self) -> list[Letter]: ...
    async def add_signature(self, signature: Signature) -> None: ...
    async def get_signature_by_letter(self, letter_id: UUID) -> Signature | None: ...
    async def list_signatures(self) -> list[Signature]: ...
    async def run_atomic(self, fn: Callable[[LetterRepo], Awaitable[T]]) -> T: ...


class InMemoryLetterRepo:
    def __init__(self) -> None:
        self._letters: dict[UUID, Letter] = {}
        self._signatures: dict[UUID, Signature] = {}  # keyed by letter_id
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None

    def _atomic_lock(self) -> asyncio.Lock:
        # TestClient runs each request on its own event loop; an asyncio.Lock
        # must not be shared across loops.
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def get_letter(
        self, letter_id: UUID, *, for_update: bool = False
    ) -> Letter | None:
        return self._letters.get(letter_id)

    async def get_letter_by_number(self, letter_number: str) -> Letter | None:
        for letter in self._letters.values():
            if letter.letter_number == letter_number:
                return letter
        return None

    async def add_letter(self, letter: Letter) -> None:
        if letter.id in self._letters:
            raise ValueError("letter id already exists")
        self._letters[letter.id] = letter

    async def update_letter(self, letter: Letter) -> Letter:
        existing = self._letters.get(letter.id)
        if existing is None:
            raise NotFoundError("letter", letter.id)
        if existing.is_signed:
            if letter.is_signed:
                raise AlreadySignedError(letter.id)
            raise InvalidStateError("signed letters cannot be modified")
        self._letters[letter.id] = letter
        return letter

    async def delete_letter(self, letter_id: UUID) -> None:
        existing = self._letters.get(letter_id)
        if existing is None:
            raise NotFoundError("letter", letter_id)
        if existing.is_signed:
            raise InvalidStateError("signed letters cannot be deleted")
        del self._letters[letter_id]
        self._signatures.pop(letter_id, None)

    async def list_letters(self) -> list[Letter]:
        return sorted(self._letters.values(), key=lambda letter: letter.created_at, reverse=True)

    async def add_signature(self, signature: Signature) -> None:
        if signature.letter_id not in self._letters:
            raise NotFoundError("letter", signature.letter_id)
        if signature.letter_id in self._signatures:
            raise AlreadySignedError(signature.letter_id)
        self._signatures[signature.letter_id] = signature

    async def get_signature_by_letter(self, letter_id: UUID) -> Signature | None:
        return self._signatures.get(letter_id)

    async def list_signatures(self) -> list[Signature]:
        return sorted(self._signatures.values(), key=lambda s: s.signed_at, reverse=True)

    async def run_atomic(self, fn: Callable[[LetterRepo], Awaitable[T]]) -> T:
        async with self._atomic_lock():
            letters = dict(self._letters)
            signatures = dict(self._signatures)
            try:
                return await fn(self)
            except BaseException:
                self._letters.clear()
                self._letters.update(letters)
                self._signatures.clear()
                self._signatures.update(signatures)
                raise
