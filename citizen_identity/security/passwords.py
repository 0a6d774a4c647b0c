"""Salted, cost-parameterised password hashing backed by bcrypt."""

from __future__ import annotations

from pwdlib import PasswordHash
from pwdlib.hashers.bcrypt import BcryptHasher

DEFAULT_ROUNDS = 10

# bcrypt only reads the first 72 bytes of a password; newer releases raise past it.
BCRYPT_MAX_BYTES = 72


def _bcrypt_input(plaintext: str) -> bytes:
    return plaintext.encode("utf-8")[:BCRYPT_MAX_BYTES]


class BcryptPasswordHasher:
    """One-way bcrypt hashing with a tunable work factor.

    Passwords longer than 72 bytes are truncated before hashing and verifying,
    so any length is accepted and only the first 72 bytes are significant.
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self._context = PasswordHash((BcryptHasher(rounds=rounds),))

    def hash(self, plaintext: str) -> str:
        """Return a new salted digest; two calls never yield the same string."""
        return self._context.hash(_bcrypt_input(plaintext))

    def verify(self, plaintext: str, digest: str) -> bool:
        """Return ``True`` when ``plaintext`` matches ``digest`` (constant-time)."""
        return self._context.verify(_bcrypt_input(plaintext), digest)
