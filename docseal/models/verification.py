from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from docseal.models.event import CertificateClaim, Event
from docseal.models.letter import Letter, Signature


@dataclass(frozen=True, slots=True)
class LetterVerification:
    """Outcome of verifying a letter.

    ``is_integrity_valid`` alone answers "does the stored content still match
    its fingerprint"; ``is_valid`` additionally requires the letter to be
    signed with a signature on record.  A draft reports both False; a signed
    but tampered letter reports both False with a signature present.
    """

    letter: Letter
    signature: Signature | None
    is_valid: bool
    is_integrity_valid: bool
    type: Literal["letter"] = "letter"


@dataclass(frozen=True, slots=True)
class CertificateVerification:
    """A certificate claim is valid by existing."""

    claim: CertificateClaim
    event: Event | None
    is_valid: bool = True
    type: Literal["certificate"] = "certificate"


VerificationResult = LetterVerification | CertificateVerification
