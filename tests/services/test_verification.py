from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from docseal.core.errors import NotFoundError
from docseal.models.event import Event
from docseal.models.letter import Letter
from docseal.models.verification import CertificateVerification, LetterVerification
from docseal.repos.activity_repo import InMemoryActivityRepo
from docseal.repos.event_repo import InMemoryEventRepo
from docseal.repos.letter_repo import InMemoryLetterRepo
from docseal.services.claims import ClaimWorkflow
from docseal.services.verification import VerificationService


@pytest.fixture
def repos() -> tuple[InMemoryLetterRepo, InMemoryEventRepo]:
    return InMemoryLetterRepo(), InMemoryEventRepo()


def _verify(repos, document_id):
    letters, events = repos
    return asyncio.run(VerificationService(letters, events).verify(document_id))


def test_draft_letter_is_neither_valid_nor_intact(repos) -> None:
    letters, _ = repos
    letter = Letter.new(
        letter_number="1",
        letter_date=datetime(2024, 1, 10, tzinfo=UTC),
        subject="S",
        attachment="-",
    )
    asyncio.run(letters.add_letter(letter))

    result = _verify(repos, letter.id)
    assert isinstance(result, LetterVerification)
    assert result.type == "letter"
    assert result.is_valid is False
    assert result.is_integrity_valid is False
    assert result.signature is None


def test_claim_id_verifies_as_certificate(repos) -> None:
    _, events = repos
    now = datetime.now(UTC)
    event = Event.new(name="Field Day", date=now, claim_deadline=now + timedelta(days=1))
    asyncio.run(events.add_event(event))
    claim = asyncio.run(
        ClaimWorkflow(events, InMemoryActivityRepo()).claim(event.id, "Budi", "YB0ABC")
    )

    result = _verify(repos, str(claim.id))
    assert isinstance(result, CertificateVerification)
    assert result.type == "certificate"
    assert result.is_valid is True
    assert result.claim.recipient_name == "Budi"
    assert result.event.name == "Field Day"


def test_unknown_id_is_not_found(repos) -> None:
    with pytest.raises(NotFoundError):
        _verify(repos, uuid4())


def test_malformed_id_is_not_found(repos) -> None:
    with pytest.raises(NotFoundError):
        _verify(repos, "not-a-uuid")


def test_verification_writes_nothing(repos) -> None:
    letters, events = repos
    letter = Letter.new(
        letter_number="1",
        letter_date=datetime(2024, 1, 10, tzinfo=UTC),
        subject="S",
        attachment="-",
    )
    asyncio.run(letters.add_letter(letter))
    _verify(repos, letter.id)
    assert letters._letters[letter.id] == letter
    assert letters._signatures == {}
