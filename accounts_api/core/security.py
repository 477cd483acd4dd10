"""Security helpers (hashing, verification and token generation)."""

from __future__ import annotations

import hashlib
import secrets
import uuid

from argon2 import PasswordHasher, exceptions as argon_exc

_PREFIX = "argon2$"


class Argon2Hasher:
    """Password hasher collaborator; stored digests carry a prefix for detection."""

    def __init__(self, hasher: PasswordHasher | None = None) -> None:
        self._ph = hasher or PasswordHasher()

    def hash(self, plaintext: str) -> str:
        return f"{_PREFIX}{self._ph.hash(plaintext)}"

    def verify(self, plaintext: str, digest: str | None) -> bool:
        stored = digest or ""
        if not stored.startswith(_PREFIX):
            return False
        try:
            return self._ph.verify(stored[len(_PREFIX) :], plaintext or "")
        except (argon_exc.VerifyMismatchError, argon_exc.VerificationError, argon_exc.InvalidHashError):
            return False


def new_verification_token() -> str:
    """sha256 over a random uuid4, hex encoded (64 chars)."""
    return hashlib.sha256(uuid.uuid4().bytes).hexdigest()


def new_session_token() -> str:
    return secrets.token_urlsafe(32)
