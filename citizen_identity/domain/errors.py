"""Typed failures raised by the account workflows."""

from __future__ import annotations


class AccountError(Exception):
    """Base class for expected business failures with a user-facing message."""

    message = "Account error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.message
        super().__init__(self.message)


class DuplicateEmail(AccountError):
    message = "User with this email already exists"


class DuplicateUsername(AccountError):
    message = "User with this username already exists"


class InvalidCredentials(AccountError):
    """Login failure; deliberately identical for unknown email and wrong password."""

    message = "Invalid credentials"


class ConstraintViolation(Exception):
    """Raised by a store when its unique index rejects an insert."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"unique constraint violated on {field}")


class ConfigurationError(RuntimeError):
    """Fatal misconfiguration detected while starting the service."""


class StoreFailure(RuntimeError):
    """The store returned data that breaks its contract."""
