"""Account service orchestrating credential storage, hashing, and token issuance."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
from typing import Callable

from .account import PublicAccount
from .contracts import (
    AccountCandidate,
    AccountStore,
    LoginInput,
    PasswordHasher,
    RegisterAccountInput,
    TokenIssuer,
)
from .errors import (
    ConstraintViolation,
    DuplicateEmail,
    DuplicateUsername,
    InvalidCredentials,
    StoreFailure,
)

logger = logging.getLogger(__name__)

TOKEN_TTL = timedelta(hours=1)


def normalize_identifier(value: str) -> str:
    """Trim whitespace and lower-case a value used as a uniqueness key."""
    return value.strip().lower()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class LoginResult:
    """Bearer token and public account returned after a successful login."""

    token: str
    account: PublicAccount


class AccountService:
    """Registration and login workflows over the store, hasher, and issuer interfaces."""

    def __init__(
        self,
        store: AccountStore,
        hasher: PasswordHasher,
        issuer: TokenIssuer,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Store the collaborators; the service never builds its own defaults."""
        self._store = store
        self._hasher = hasher
        self._issuer = issuer
        self._clock = clock

    def register(self, payload: RegisterAccountInput) -> PublicAccount:
        """Create an account after enforcing email then username uniqueness.

        Raises
        ------
        DuplicateEmail
            When a live account already uses the normalized email.
        DuplicateUsername
            When a live account already uses the normalized username.
        """
        email = normalize_identifier(payload.email)
        username = normalize_identifier(payload.username)

        if self._store.find_by_email(email) is not None:
            raise DuplicateEmail()
        if self._store.find_by_username(username) is not None:
            raise DuplicateUsername()

        password_hash = self._hasher.hash(payload.password)
        try:
            account = self._store.create(
                AccountCandidate(
                    email=email,
                    username=username,
                    first_name=payload.first_name,
                    last_name=payload.last_name,
                    password_hash=password_hash,
                )
            )
        except ConstraintViolation as exc:
            # A concurrent registration won the race between the checks and the insert.
            logger.info("registration lost uniqueness race on %s", exc.field)
            if exc.field == "username":
                raise DuplicateUsername() from exc
            raise DuplicateEmail() from exc

        logger.info("account %s registered as %s", account.account_id, account.username)
        return account.to_public()

    def login(self, payload: LoginInput) -> LoginResult:
        """Verify credentials, track failed attempts, and issue a bearer token.

        The email is looked up as given; it is not normalized here.
        """
        account = self._store.find_by_email(payload.email, include_secret=True)
        if account is None:
            raise InvalidCredentials()
        if account.password_hash is None:
            raise StoreFailure(f"store returned account {account.account_id} without its password hash")

        if not self._hasher.verify(payload.password, account.password_hash):
            attempts = (account.failed_login_attempts or 0) + 1
            self._store.update(account.account_id, {"failed_login_attempts": attempts})
            logger.info("failed login for account %s (%d attempts)", account.account_id, attempts)
            raise InvalidCredentials()

        now = self._clock()
        self._store.update(
            account.account_id,
            {"failed_login_attempts": 0, "last_login_at": now},
        )
        account.failed_login_attempts = 0
        account.last_login_at = now

        token = self._issuer.issue(
            {"id": account.account_id, "email": account.email, "role": account.role},
            TOKEN_TTL,
        )
        logger.info("account %s logged in", account.account_id)
        return LoginResult(token=token, account=account.to_public())

    def get_account(self, account_id: int) -> PublicAccount | None:
        """Return the live account projection for an identifier, if any."""
        account = self._store.find_by_id(account_id)
        if account is None:
            return None
        return account.to_public()
