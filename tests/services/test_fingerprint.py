from __future__ import annotations

import hashlib
from dataclasses import replace
from datetime import UTC, date, datetime, timedelta, timezone
from uuid import UUID

from docseal.models.letter import Letter
from docseal.services.fingerprint import (
    fingerprint_letter,
    hash_content,
    iso_utc,
    letter_fingerprint,
    signature_fingerprint,
    verify_integrity,
    verify_letter_integrity,
)

LETTER_DATE = datetime(2024, 1, 10, tzinfo=UTC)


def _fields(**overrides):
    fields = {
        "letter_number": "001/A/2024",
        "letter_date": LETTER_DATE,
        "subject": "Invitation",
        "attachment": "-",
        "content": "Body",
    }
    fields.update(overrides)
    return fields


# ---- hash_content ----


def test_hash_content_is_lowercase_sha256_hex() -> None:
    digest = hash_content("abc")
    assert digest == hashlib.sha256(b"abc").hexdigest()
    assert len(digest) == 64
    assert digest == digest.lower()


def test_hash_content_accepts_bytes_and_str_alike() -> None:
    assert hash_content("héllo") == hash_content("héllo".encode())


# ---- canonical form ----


def test_letter_fingerprint_matches_canonical_json() -> None:
    canonical = (
        '{"letterNumber":"001/A/2024","letterDate":"2024-01-10T00:00:00.000Z",'
        '"subject":"Invitation","attachment":"-","content":"Body"}'
    )
    assert letter_fingerprint(**_fields()) == hashlib.sha256(canonical.encode()).hexdigest()


def test_non_ascii_is_hashed_as_utf8_not_escaped() -> None:
    canonical = (
        '{"letterNumber":"1","letterDate":"2024-01-10T00:00:00.000Z",'
        '"subject":"Undangan Rapat – Ü","attachment":"-","content":""}'
    )
    digest = letter_fingerprint("1", LETTER_DATE, "Undangan Rapat – Ü", "-")
    assert digest == hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def test_iso_utc_renders_milliseconds_and_z() -> None:
    assert iso_utc(datetime(2024, 1, 10, 8, 30, 5, 123456, tzinfo=UTC)) == (
        "2024-01-10T08:30:05.123Z"
    )


def test_iso_utc_converts_offsets_to_utc() -> None:
    jakarta = timezone(timedelta(hours=7))
    assert iso_utc(datetime(2024, 1, 10, 7, 0, tzinfo=jakarta)) == "2024-01-10T00:00:00.000Z"


def test_iso_utc_treats_naive_as_utc_and_date_as_midnight() -> None:
    assert iso_utc(datetime(2024, 1, 10)) == "2024-01-10T00:00:00.000Z"
    assert iso_utc(date(2024, 1, 10)) == "2024-01-10T00:00:00.000Z"


# ---- determinism and sensitivity ----


def test_fingerprint_is_deterministic() -> None:
    assert letter_fingerprint(**_fields()) == letter_fingerprint(**_fields())


def test_each_field_changes_the_fingerprint() -> None:
    base = letter_fingerprint(**_fields())
    assert letter_fingerprint(**_fields(letter_number="002/A/2024")) != base
    assert letter_fingerprint(**_fields(letter_date=LETTER_DATE + timedelta(days=1))) != base
    assert letter_fingerprint(**_fields(subject="Invitation!")) != base
    assert letter_fingerprint(**_fields(attachment="1 sheet")) != base
    assert letter_fingerprint(**_fields(content="Body.")) != base


def test_field_boundaries_are_unambiguous() -> None:
    a = letter_fingerprint(**_fields(subject="ab", attachment="c"))
    b = letter_fingerprint(**_fields(subject="a", attachment="bc"))
    assert a != b


def test_absent_and_empty_content_fingerprint_the_same() -> None:
    assert letter_fingerprint(**_fields(content=None)) == letter_fingerprint(
        **_fields(content="")
    )


# ---- verify_integrity ----


def test_verify_integrity_round_trip() -> None:
    digest = letter_fingerprint(**_fields())
    assert verify_integrity(**_fields(), stored_digest=digest) is True


def test_verify_integrity_detects_change() -> None:
    digest = letter_fingerprint(**_fields())
    assert verify_integrity(**_fields(subject="Changed"), stored_digest=digest) is False


def test_verify_integrity_false_without_stored_digest() -> None:
    assert verify_integrity(**_fields(), stored_digest=None) is False
    assert verify_integrity(**_fields(), stored_digest="") is False


def test_verify_integrity_rejects_uppercased_digest() -> None:
    digest = letter_fingerprint(**_fields())
    assert verify_integrity(**_fields(), stored_digest=digest.upper()) is False


def test_verify_integrity_handles_non_ascii_stored_value() -> None:
    assert verify_integrity(**_fields(), stored_digest="ü" * 64) is False


# ---- Letter helpers ----


def test_letter_helpers_agree_with_field_functions() -> None:
    letter = Letter.new(**_fields())
    digest = fingerprint_letter(letter)
    assert digest == letter_fingerprint(**_fields())

    sealed = letter.sealed(content_hash=digest, qr_payload="x", at=LETTER_DATE)
    assert verify_letter_integrity(sealed) is True
    assert verify_letter_integrity(replace(sealed, subject="Tampered")) is False


def test_signature_fingerprint_binds_signer_and_time() -> None:
    signer = UUID("00000000-0000-0000-0000-00000000000a")
    other = UUID("00000000-0000-0000-0000-00000000000b")
    base = signature_fingerprint("f" * 64, signer, LETTER_DATE)
    assert base == signature_fingerprint("f" * 64, str(signer), LETTER_DATE)
    assert base != signature_fingerprint("f" * 64, other, LETTER_DATE)
    assert base != signature_fingerprint("f" * 64, signer, LETTER_DATE + timedelta(seconds=1))
