"""Database repository for citizen account credentials."""

from __future__ import annotations

from typing import Any, Mapping

from psycopg import errors, sql
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.account import Account
from .domain.contracts import AccountCandidate
from .domain.errors import ConstraintViolation

EMAIL_INDEX = "accounts_email_live_key"
USERNAME_INDEX = "accounts_username_live_key"

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS accounts (
        account_id BIGINT GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
        email TEXT NOT NULL,
        username TEXT NOT NULL,
        first_name TEXT NOT NULL,
        last_name TEXT NOT NULL,
        password_hash TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'citizen',
        failed_login_attempts INTEGER NOT NULL DEFAULT 0 CHECK (failed_login_attempts >= 0),
        last_login_at TIMESTAMPTZ,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        deleted_at TIMESTAMPTZ
    )
    """,
    f"""
    CREATE UNIQUE INDEX IF NOT EXISTS {EMAIL_INDEX}
    ON accounts (lower(email)) WHERE deleted_at IS NULL
    """,
    f"""
    CREATE UNIQUE INDEX IF NOT EXISTS {USERNAME_INDEX}
    ON accounts (lower(username)) WHERE deleted_at IS NULL
    """,
)

_PUBLIC_COLUMNS = (
    "account_id",
    "email",
    "username",
    "first_name",
    "last_name",
    "created_at",
    "role",
    "failed_login_attempts",
    "last_login_at",
    "deleted_at",
)

UPDATABLE_COLUMNS = frozenset(
    {
        "email",
        "username",
        "first_name",
        "last_name",
        "password_hash",
        "role",
        "failed_login_attempts",
        "last_login_at",
        "deleted_at",
    }
)


def _select(include_secret: bool = False) -> sql.Composed:
    columns = list(_PUBLIC_COLUMNS)
    if include_secret:
        columns.append("password_hash")
    return sql.SQL("SELECT {} FROM accounts").format(
        sql.SQL(", ").join(sql.Identifier(column) for column in columns)
    )


class AccountRepository:
    """Postgres-backed implementation of the account store contract."""

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    def ensure_schema(self) -> None:
        """Create the accounts table and its live-record unique indexes if missing."""
        with self._pool.connection() as conn:
            with conn.cursor() as cur:
                for statement in SCHEMA_STATEMENTS:
                    cur.execute(statement)
            conn.commit()

    def create(self, candidate: AccountCandidate) -> Account:
        """Insert a new account, translating unique index clashes into ``ConstraintViolation``."""
        query = sql.SQL(
            """
            INSERT INTO accounts (email, username, first_name, last_name, password_hash, role)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING {}
            """
        ).format(sql.SQL(", ").join(sql.Identifier(column) for column in _PUBLIC_COLUMNS))
        params = (
            candidate.email,
            candidate.username,
            candidate.first_name,
            candidate.last_name,
            candidate.password_hash,
            candidate.role,
        )
        with self._pool.connection() as conn:
            try:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(query, params)
                    row = cur.fetchone()
                conn.commit()
            except errors.UniqueViolation as exc:
                conn.rollback()
                raise ConstraintViolation(self._violated_field(exc)) from exc
        return self._map_record(row)

    def find_by_email(self, email: str, *, include_secret: bool = False) -> Account | None:
        """Case-insensitive lookup among live accounts; the hash is opt-in."""
        query = _select(include_secret) + sql.SQL(
            " WHERE lower(email) = lower(%s) AND deleted_at IS NULL"
        )
        return self._fetch_one(query, (email,), include_secret=include_secret)

    def find_by_username(self, username: str) -> Account | None:
        query = _select() + sql.SQL(" WHERE lower(username) = lower(%s) AND deleted_at IS NULL")
        return self._fetch_one(query, (username,))

    def find_by_id(self, account_id: int) -> Account | None:
        query = _select() + sql.SQL(" WHERE account_id = %s AND deleted_at IS NULL")
        return self._fetch_one(query, (account_id,))

    def update(self, account_id: int, fields: Mapping[str, Any]) -> None:
        """Merge the given columns into the account row."""
        unknown = set(fields) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"cannot update columns: {', '.join(sorted(unknown))}")
        if not fields:
            return

        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in fields
        )
        query = sql.SQL("UPDATE accounts SET {} WHERE account_id = %s").format(assignments)
        with self._pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, (*fields.values(), account_id))
            conn.commit()

    def _fetch_one(
        self, query: sql.Composable, params: tuple, *, include_secret: bool = False
    ) -> Account | None:
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(query, params)
                row = cur.fetchone()
        if not row:
            return None
        return self._map_record(row, include_secret=include_secret)

    @staticmethod
    def _violated_field(exc: errors.UniqueViolation) -> str:
        constraint = exc.diag.constraint_name or ""
        if constraint == USERNAME_INDEX or "username" in constraint:
            return "username"
        return "email"

    def _map_record(self, row: tuple, *, include_secret: bool = False) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        return Account(
            account_id=row[0],
            email=row[1],
            username=row[2],
            first_name=row[3],
            last_name=row[4],
            created_at=row[5],
            role=row[6],
            failed_login_attempts=row[7],
            last_login_at=row[8],
            deleted_at=row[9],
            password_hash=row[10] if include_secret else None,
        )
