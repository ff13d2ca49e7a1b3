"""
Database connection factory utilities for the collection audit.

Provides DSN composition from settings, a retrying connect for transient
connection failures (tenacity), and a scoped connection context manager.

Only *establishing* a connection is retried. Queries and inserts issued on
an open connection are never retried: the group insert is not idempotent.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator, Optional

import psycopg
from psycopg import Connection, sql
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from collection_audit.config import get_settings
from collection_audit.errors import ExternalCollaboratorFailure
from collection_audit.utils.logging import get_logger

log = get_logger(__name__)


def build_dsn() -> str:
    """Compose a DSN string from settings."""
    settings = get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(dsn: Optional[str] = None) -> Connection:
    """
    Acquire a dedicated synchronous connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection errors.

    Parameters
    ----------
    dsn : str | None
        Explicit DSN; defaults to the one built from settings.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return psycopg.connect(dsn or build_dsn())


def apply_statement_timeout(cursor: psycopg.Cursor, timeout_ms: int) -> None:
    """
    Apply a per-session statement timeout; 0 leaves the server default.
    """
    if timeout_ms <= 0:
        return
    cursor.execute(
        sql.SQL("SET statement_timeout = {}").format(sql.Literal(f"{int(timeout_ms)}ms"))
    )


@contextmanager
def connection_scope(dsn: Optional[str] = None) -> Generator[Connection, None, None]:
    """
    Open one connection for the duration of an audit run.

    Commits on success, rolls back on error, and always closes. A connection
    that cannot be established after retries raises ExternalCollaboratorFailure.

    Example
    -------
        with connection_scope() as conn:
            fetcher = PostgresQueryEngine(conn, collection="paintings")
    """
    try:
        conn = get_sync_connection(dsn)
    except psycopg.Error as exc:
        raise ExternalCollaboratorFailure(
            f"Could not connect to the database: {exc}", collaborator="database"
        ) from exc
    try:
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()
        log.debug("Database connection closed")


__all__ = [
    "build_dsn",
    "get_sync_connection",
    "apply_statement_timeout",
    "connection_scope",
]
