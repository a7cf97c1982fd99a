"""PostgreSQL access for the booking flow (psycopg2, raw SQL).

Domain operations never open connections themselves. A route opens one
transaction with txn() and passes the cursor down:

    with txn() as cur:
        booking = create_booking(cur, new_booking)

Helpers:
- get_conn(): new connection from DATABASE_URL (+ DB_PASSWORD fallback)
- txn(): commit on success, rollback and re-raise on error
- fetchone / fetchall: execute and fetch in one call
- for_update(): row lock for read-modify-write sequences
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Any, Iterator, Sequence
from urllib.parse import urlparse

import psycopg2
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor
from psycopg2.extensions import parse_dsn

Params = Sequence[Any] | None


def _dsn_has_password(dsn: str) -> bool:
    # DATABASE_URL may be a URL or a libpq "key=value" string
    if "://" in dsn:
        return bool(urlparse(dsn).password)
    try:
        return bool(parse_dsn(dsn).get("password"))
    except psycopg2.ProgrammingError:
        return False


def _connect_kwargs(dsn: str) -> dict[str, Any]:
    password = os.environ.get("DB_PASSWORD")
    if password and not _dsn_has_password(dsn):
        return {"password": password}
    return {}


def get_conn() -> PgConnection:
    """Open a connection to DATABASE_URL.

    DB_PASSWORD is used only when the DSN itself carries no password, so
    secrets can be mounted separately from the connection string.

    Raises:
        RuntimeError: DATABASE_URL is not set.
        psycopg2.OperationalError: The server is unreachable.
    """
    dsn = os.environ.get("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL environment variable not set")
    return psycopg2.connect(dsn, **_connect_kwargs(dsn))


@contextmanager
def txn(conn: PgConnection | None = None) -> Iterator[PgCursor]:
    """Run the enclosed block as one transaction and yield its cursor.

    Args:
        conn: Connection to reuse. When omitted a fresh one is opened and
            closed again on exit.
    """
    owns_conn = conn is None
    if owns_conn:
        conn = get_conn()

    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        if owns_conn:
            conn.close()


def fetchone(cur: PgCursor, query: str, params: Params = None) -> tuple[Any, ...] | None:
    cur.execute(query, params)
    return cur.fetchone()


def fetchall(cur: PgCursor, query: str, params: Params = None) -> list[tuple[Any, ...]]:
    cur.execute(query, params)
    return cur.fetchall()


def for_update(cur: PgCursor, query: str, params: Params = None) -> tuple[Any, ...] | None:
    """Fetch one row and hold a row lock on it until the transaction ends.

    The query is a plain SELECT; the locking clause is appended here.
    """
    cur.execute(query.rstrip().rstrip(";") + " FOR UPDATE", params)
    return cur.fetchone()
