from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Mapping

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from citizen_identity.api import routes
from citizen_identity.api.errors import install_error_handlers
from citizen_identity.domain.account import Account
from citizen_identity.domain.contracts import AccountCandidate
from citizen_identity.domain.errors import ConstraintViolation
from citizen_identity.domain.service import AccountService
from citizen_identity.security.passwords import BcryptPasswordHasher
from citizen_identity.security.tokens import JwtTokenIssuer

TEST_SECRET = "test-secret"
TEST_ISSUER = "citizen.identity.test"


class FakeRepository:
    """In-memory store mimicking the Postgres repository's behaviors."""

    def __init__(self) -> None:
        self._accounts: dict[int, Account] = {}
        self._seq = 0
        self.created: list[AccountCandidate] = []
        self.updates: list[tuple[int, dict[str, Any]]] = []
        # Simulates a concurrent insert that slipped past the service's pre-checks.
        self.fail_next_create_on: str | None = None

    def create(self, candidate: AccountCandidate) -> Account:
        if self.fail_next_create_on:
            field, self.fail_next_create_on = self.fail_next_create_on, None
            raise ConstraintViolation(field)
        for account in self._live():
            if account.email.lower() == candidate.email.lower():
                raise ConstraintViolation("email")
            if account.username.lower() == candidate.username.lower():
                raise ConstraintViolation("username")

        self._seq += 1
        account = Account(
            account_id=self._seq,
            email=candidate.email,
            username=candidate.username,
            first_name=candidate.first_name,
            last_name=candidate.last_name,
            role=candidate.role,
            created_at=datetime.now(timezone.utc),
            password_hash=candidate.password_hash,
        )
        self._accounts[account.account_id] = account
        self.created.append(candidate)
        return self._copy(account, include_secret=False)

    def find_by_email(self, email: str, *, include_secret: bool = False) -> Account | None:
        for account in self._live():
            if account.email.lower() == email.lower():
                return self._copy(account, include_secret=include_secret)
        return None

    def find_by_username(self, username: str) -> Account | None:
        for account in self._live():
            if account.username.lower() == username.lower():
                return self._copy(account, include_secret=False)
        return None

    def find_by_id(self, account_id: int) -> Account | None:
        account = self._accounts.get(account_id)
        if account is None or account.deleted_at is not None:
            return None
        return self._copy(account, include_secret=False)

    def update(self, account_id: int, fields: Mapping[str, Any]) -> None:
        self.updates.append((account_id, dict(fields)))
        account = self._accounts[account_id]
        for key, value in fields.items():
            setattr(account, key, value)

    def stored(self, account_id: int) -> Account:
        """Return the raw stored record, secret included."""
        return self._accounts[account_id]

    def soft_delete(self, account_id: int) -> None:
        self._accounts[account_id].deleted_at = datetime.now(timezone.utc)

    def _live(self) -> list[Account]:
        return [account for account in self._accounts.values() if account.deleted_at is None]

    @staticmethod
    def _copy(account: Account, *, include_secret: bool) -> Account:
        return replace(account, password_hash=account.password_hash if include_secret else None)


class SpyHasher:
    """Wraps the real hasher and counts calls."""

    def __init__(self) -> None:
        self._inner = BcryptPasswordHasher(rounds=4)
        self.hash_calls = 0
        self.verify_calls = 0

    def hash(self, plaintext: str) -> str:
        self.hash_calls += 1
        return self._inner.hash(plaintext)

    def verify(self, plaintext: str, digest: str) -> bool:
        self.verify_calls += 1
        return self._inner.verify(plaintext, digest)


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def hasher() -> SpyHasher:
    return SpyHasher()


@pytest.fixture
def service(repository: FakeRepository, hasher: SpyHasher) -> AccountService:
    return AccountService(repository, hasher, JwtTokenIssuer(TEST_SECRET, TEST_ISSUER))


@pytest.fixture
def api_client(service: AccountService):
    """Provide a FastAPI test client with isolated state."""
    app = FastAPI()
    install_error_handlers(app)
    app.include_router(routes.router)
    app.state.account_service = service
    app.state.jwt_secret = TEST_SECRET
    app.state.jwt_issuer = TEST_ISSUER

    with TestClient(app) as client:
        yield client
