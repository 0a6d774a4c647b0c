"""Domain-level request contracts and the collaborator interfaces the service consumes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Mapping, Protocol

from .account import DEFAULT_ROLE, Account


@dataclass(slots=True)
class RegisterAccountInput:
    """Shape-validated registration fields, before normalization."""

    email: str
    username: str
    password: str
    first_name: str
    last_name: str


@dataclass(slots=True)
class LoginInput:
    email: str
    password: str


@dataclass(slots=True)
class AccountCandidate:
    """Normalized values handed to the store for insertion."""

    email: str
    username: str
    first_name: str
    last_name: str
    password_hash: str
    role: str = DEFAULT_ROLE


class AccountStore(Protocol):
    """Persistence capabilities required by :class:`AccountService`.

    Lookups only ever match live (not soft-deleted) records and compare
    email/username case-insensitively.
    """

    def create(self, candidate: AccountCandidate) -> Account:
        """Insert a record; raise ``ConstraintViolation`` on a unique index clash."""
        ...

    def find_by_email(self, email: str, *, include_secret: bool = False) -> Account | None:
        ...

    def find_by_username(self, username: str) -> Account | None:
        ...

    def find_by_id(self, account_id: int) -> Account | None:
        ...

    def update(self, account_id: int, fields: Mapping[str, Any]) -> None:
        """Merge ``fields`` into the record without returning it."""
        ...


class PasswordHasher(Protocol):
    def hash(self, plaintext: str) -> str:
        ...

    def verify(self, plaintext: str, digest: str) -> bool:
        ...


class TokenIssuer(Protocol):
    def issue(self, claims: Mapping[str, Any], ttl: timedelta) -> str:
        ...
