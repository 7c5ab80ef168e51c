from __future__ import annotations

import asyncio
import json
import re
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from docseal.core.errors import DeadlinePassedError, NotFoundError, ValidationError
from docseal.models.activity import ActivityAction
from docseal.models.event import Event
from docseal.repos.activity_repo import InMemoryActivityRepo
from docseal.repos.event_repo import InMemoryEventRepo
from docseal.services.claims import ClaimWorkflow, certificate_number

DEADLINE = datetime(2024, 3, 1, 23, 59, tzinfo=UTC)


class Setup:
    def __init__(self, now: datetime) -> None:
        self.now = now
        self.events = InMemoryEventRepo()
        self.audit = InMemoryActivityRepo()
        self.workflow = ClaimWorkflow(self.events, self.audit, clock=lambda: self.now)
        self.event = Event.new(
            name="Field Day",
            date=datetime(2024, 2, 20, tzinfo=UTC),
            claim_deadline=DEADLINE,
        )
        asyncio.run(self.events.add_event(self.event))

    def claim(self, name: str = "Budi", call_sign: str | None = None):
        return asyncio.run(self.workflow.claim(self.event.id, name, call_sign))


def test_certificate_number_format() -> None:
    event_id = UUID("abcd1234-0000-0000-0000-000000000000")
    claim_id = UUID("9f8e7d6c-0000-0000-0000-000000000000")
    assert certificate_number(event_id, claim_id) == "CERT/ABCD/9F8E"


def test_claim_before_deadline_succeeds() -> None:
    s = Setup(DEADLINE - timedelta(hours=1))
    claim = s.claim(call_sign="YB0ABC")

    assert claim.event_id == s.event.id
    assert claim.recipient_name == "Budi"
    assert claim.claimed_at == s.now
    assert re.fullmatch(r"CERT/[0-9A-F]{4}/[0-9A-F]{4}", claim.certificate_number)

    payload = json.loads(claim.qr_payload)
    assert payload["claimId"] == str(claim.id)
    assert payload["callSign"] == "YB0ABC"


def test_claim_exactly_at_deadline_succeeds() -> None:
    s = Setup(DEADLINE)
    assert s.claim().recipient_name == "Budi"


def test_claim_after_deadline_is_rejected() -> None:
    s = Setup(DEADLINE + timedelta(seconds=1))
    with pytest.raises(DeadlinePassedError):
        s.claim()
    assert s.events._claims == {}


def test_claim_for_unknown_event_is_not_found() -> None:
    s = Setup(DEADLINE)
    with pytest.raises(NotFoundError):
        asyncio.run(s.workflow.claim(uuid4(), "Budi"))


def test_blank_recipient_name_is_rejected() -> None:
    s = Setup(DEADLINE)
    with pytest.raises(ValidationError):
        s.claim("   ")


def test_same_name_claims_twice_yields_two_certificates() -> None:
    s = Setup(DEADLINE)
    first, second = s.claim(), s.claim()
    assert first.id != second.id
    assert len(asyncio.run(s.workflow.list_claims(s.event.id))) == 2


def test_blank_call_sign_is_dropped() -> None:
    s = Setup(DEADLINE)
    claim = s.claim(call_sign="  ")
    assert claim.call_sign is None
    assert "callSign" not in json.loads(claim.qr_payload)


def test_claim_is_audited_under_recipient_name() -> None:
    s = Setup(DEADLINE)
    claim = s.claim()
    entry = s.audit._entries[-1]
    assert entry.action == ActivityAction.CLAIM_CERTIFICATE
    assert entry.user_name == "Budi"
    assert entry.metadata["claim_id"] == str(claim.id)


def test_get_claim_checks_event_membership() -> None:
    s = Setup(DEADLINE)
    claim = s.claim()
    assert asyncio.run(s.workflow.get_claim(s.event.id, claim.id)) == claim
    with pytest.raises(NotFoundError):
        asyncio.run(s.workflow.get_claim(uuid4(), claim.id))
