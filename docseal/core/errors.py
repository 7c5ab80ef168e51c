"""Domain error taxonomy.

Lifecycle and validation errors are expected, user-facing outcomes: the
routers turn each one into an HTTP status with a readable ``detail``.
Anything that is not a ``DocsealError`` (storage, transport) propagates as
a generic 500 so callers can tell "you can't do this" from "try again".
"""

from __future__ import annotations


class DocsealError(Exception):
    """Base class for every expected domain failure."""


class NotFoundError(DocsealError):
    """A referenced letter, event, claim, user or document does not exist."""

    def __init__(self, kind: str, identifier: object) -> None:
        super().__init__(f"{kind} not found")
        self.kind = kind
        self.identifier = identifier


class InvalidStateError(DocsealError):
    """The operation is forbidden by the entity's current lifecycle state."""


class AlreadySignedError(InvalidStateError):
    """The letter has already left the draft state."""

    def __init__(self, letter_id: object) -> None:
        super().__init__("letter is already signed")
        self.letter_id = letter_id


class DeadlinePassedError(DocsealError):
    def __init__(self, event_id: object) -> None:
        super().__init__("claim deadline has passed")
        self.event_id = event_id


class RateLimitedError(DocsealError):
    """Too many failed attempts; carries the remaining block time."""

    def __init__(self, remaining_seconds: int) -> None:
        super().__init__(
            f"too many failed attempts, try again in {remaining_seconds} seconds"
        )
        self.remaining_seconds = remaining_seconds


class InvalidSecretKeyError(DocsealError):
    def __init__(self, remaining_attempts: int) -> None:
        super().__init__(
            f"invalid secret key, {remaining_attempts} attempt(s) remaining"
        )
        self.remaining_attempts = remaining_attempts


class ValidationError(DocsealError, ValueError):
    """Required input is missing or malformed."""


class ConflictError(DocsealError):
    """A unique attribute (letter number, email) is already taken."""
