"""Signer secret keys: generation, one-way storage, verification.

A secret key is a bearer credential shown to its owner exactly once, when
it is generated or reset.  Only an Argon2id hash is stored.  Argon2 hash
strings embed their own salt and cost parameters, so hashing the same key
twice yields two different strings and verification must go through
``PasswordHasher.verify``.
"""

from __future__ import annotations

import logging
import secrets

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from docseal.core.config import SETTINGS

logger = logging.getLogger(__name__)

SECRET_KEY_PREFIX = "SK"

_ph = PasswordHasher(time_cost=SETTINGS.secret_key_hash_time_cost)


def generate_secret_key() -> str:
    """Return a fresh key like ``SK-1F2E3D4C-0A1B2C3D4E5F6071``.

    96 bits from the OS CSPRNG, upper-case hex, grouped for reading aloud.
    """
    head = secrets.token_hex(4).upper()
    tail = secrets.token_hex(8).upper()
    return f"{SECRET_KEY_PREFIX}-{head}-{tail}"


def hash_secret_key(secret_key: str) -> str:
    if not secret_key:
        raise ValueError("secret key must be non-empty")
    return _ph.hash(secret_key)


def verify_secret_key(secret_key: str, stored_hash: str) -> bool:
    if not secret_key or not stored_hash:
        return False
    try:
        return _ph.verify(stored_hash, secret_key)
    except (VerifyMismatchError, VerificationError, InvalidHash):
        return False


def needs_rehash(stored_hash: str) -> bool:
    """True when *stored_hash* was produced with different cost parameters."""
    try:
        return _ph.check_needs_rehash(stored_hash)
    except InvalidHash:
        logger.warning("Stored secret key hash is not a valid Argon2 hash")
        return False
