from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

DEFAULT_ROLE = "citizen"


@dataclass(slots=True)
class Account:
    """Persisted citizen identity record."""

    account_id: int
    email: str
    username: str
    first_name: str
    last_name: str
    created_at: datetime
    role: str = DEFAULT_ROLE
    failed_login_attempts: int = 0
    last_login_at: datetime | None = None
    deleted_at: datetime | None = None
    # Only populated when the store is asked for the secret.
    password_hash: str | None = None

    def to_public(self) -> "PublicAccount":
        return PublicAccount(
            account_id=self.account_id,
            email=self.email,
            username=self.username,
            first_name=self.first_name,
            last_name=self.last_name,
            role=self.role,
            created_at=self.created_at,
        )


@dataclass(frozen=True, slots=True)
class PublicAccount:
    """Projection of an account that is safe to return to callers."""

    account_id: int
    email: str
    username: str
    first_name: str
    last_name: str
    role: str
    created_at: datetime
