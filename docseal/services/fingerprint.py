"""Deterministic content fingerprints for letters.

CANONICAL SERIALIZATION
------------------------
A letter fingerprint is SHA-256 (lowercase hex) over compact JSON with the
keys in exactly this order::

    {"letterNumber":…,"letterDate":…,"subject":…,"attachment":…,"content":…}

  - separators are "," and ":" with no whitespace
  - non-ASCII characters are emitted as UTF-8, not \\uXXXX escapes
  - letterDate is ISO-8601 UTC with milliseconds and a "Z" suffix,
    e.g. 2024-01-10T00:00:00.000Z.  Naive datetimes are read as UTC and a
    bare date is midnight UTC.  Sub-millisecond precision is dropped.
  - content that is None and content that is "" both serialize as ""

Every fingerprint already issued depends on these rules.  Changing any of
them makes every signed letter fail verification.

JSON string encoding keeps field boundaries explicit, so ("ab", "c") and
("a", "bc") serialize differently.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID

from docseal.models.letter import Letter


def hash_content(data: bytes | str) -> str:
    """SHA-256 of *data* as 64 lowercase hex characters."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def iso_utc(value: datetime | date) -> str:
    """Render a timestamp as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day, tzinfo=UTC)
    elif value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    else:
        value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%S") + f".{value.microsecond // 1000:03d}Z"


def _canonical_json(fields: dict[str, Any]) -> str:
    # Insertion order is the canonical key order; do not sort.
    return json.dumps(fields, separators=(",", ":"), ensure_ascii=False)


def letter_fingerprint(
    letter_number: str,
    letter_date: datetime | date,
    subject: str,
    attachment: str,
    content: str | None = None,
) -> str:
    return hash_content(
        _canonical_json(
            {
                "letterNumber": letter_number,
                "letterDate": iso_utc(letter_date),
                "subject": subject,
                "attachment": attachment,
                "content": content or "",
            }
        )
    )


def signature_fingerprint(
    letter_digest: str, signer_id: UUID | str, timestamp: datetime
) -> str:
    """Bind a letter fingerprint to a signer and a moment."""
    return hash_content(
        _canonical_json(
            {
                "letterHash": letter_digest,
                "signerId": str(signer_id),
                "timestamp": iso_utc(timestamp),
            }
        )
    )


def verify_integrity(
    letter_number: str,
    letter_date: datetime | date,
    subject: str,
    attachment: str,
    content: str | None,
    stored_digest: str | None,
) -> bool:
    """Recompute the fingerprint and compare it to *stored_digest* exactly."""
    if not stored_digest:
        return False
    current = letter_fingerprint(letter_number, letter_date, subject, attachment, content)
    return hmac.compare_digest(current.encode("ascii"), stored_digest.encode("utf-8"))


def fingerprint_letter(letter: Letter) -> str:
    return letter_fingerprint(
        letter.letter_number,
        letter.letter_date,
        letter.subject,
        letter.attachment,
        letter.content,
    )


def verify_letter_integrity(letter: Letter) -> bool:
    return verify_integrity(
        letter.letter_number,
        letter.letter_date,
        letter.subject,
        letter.attachment,
        letter.content,
        letter.content_hash,
    )
