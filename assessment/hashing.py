"""Salt generation and password digests for stored user credentials."""
from __future__ import annotations

import secrets

from passlib.hash import hex_sha256
from passlib.utils import MAX_PASSWORD_SIZE

from .errors import ValidationError

SALT_BYTES = 16


def generate_salt() -> str:
    """Return 32 random hexadecimal characters."""

    return secrets.token_hex(SALT_BYTES)


def compute_hash(secret: str, salt: str = "") -> str:
    """Return the 64 character SHA-256 hex digest of ``secret`` followed by ``salt``.

    The digest matches hashes written by earlier deployments, so the scheme
    must not change without migrating stored credentials. Raises
    :class:`ValidationError` when the salted secret exceeds passlib's
    ``MAX_PASSWORD_SIZE``.
    """

    salted = secret + salt
    if len(salted) > MAX_PASSWORD_SIZE:
        raise ValidationError(f"Password exceeds the maximum size of {MAX_PASSWORD_SIZE - len(salt)} characters")
    return hex_sha256.hash(salted)


def verify(secret: str, salt: str, expected_hash: str) -> bool:
    """Return ``True`` if ``secret`` salted with ``salt`` reproduces ``expected_hash``."""

    if not expected_hash or len(secret + salt) > MAX_PASSWORD_SIZE:
        return False
    try:
        return hex_sha256.verify(secret + salt, expected_hash)
    except ValueError:
        return False


__all__ = ["SALT_BYTES", "compute_hash", "generate_salt", "verify"]
