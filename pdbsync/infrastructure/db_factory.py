"""
Database connection utilities for pdbsync.

A synchronization run uses exactly one connection, opened non-autocommit so
the driver controls the single transaction. Connection attempts retry on
transient failures using tenacity.
"""

from __future__ import annotations

from importlib import resources
from typing import Optional

import psycopg
from psycopg import Connection
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from pdbsync.config import get_settings
from pdbsync.utils.logging import get_logger

log = get_logger(__name__)

SCHEMA_RESOURCE = "init.sql"


def get_sync_connection(dsn: Optional[str] = None, attempts: Optional[int] = None) -> Connection:
    """
    Open a dedicated synchronous connection with automatic retry.

    Retries with exponential backoff for transient connection errors.

    Parameters
    ----------
    dsn : str | None
        Connection string. Defaults to the configured store.
    attempts : int | None
        Total connection attempts. Defaults to ``DB_CONNECT_RETRIES``.

    Returns
    -------
    Connection
        A new psycopg connection, autocommit disabled.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    settings = get_settings()
    target = dsn or settings.dsn
    retrying = Retrying(
        stop=stop_after_attempt(attempts or settings.db_connect_retries),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
        reraise=True,
    )
    for attempt in retrying:
        with attempt:
            if attempt.retry_state.attempt_number > 1:
                log.warning(
                    "Retrying database connection",
                    extra={"attempt": attempt.retry_state.attempt_number},
                )
            return psycopg.connect(target, autocommit=False)
    raise AssertionError("unreachable")  # pragma: no cover


def load_schema_sql() -> str:
    """DDL for the mirrored tables, shipped with the package."""
    return resources.files("pdbsync.sql").joinpath(SCHEMA_RESOURCE).read_text(encoding="utf-8")


def init_schema(conn: Connection) -> None:
    """Create the mirror tables if missing and commit."""
    with conn.transaction():
        conn.execute(load_schema_sql())
    log.info("Database schema initialized")


__all__ = [
    "get_sync_connection",
    "init_schema",
    "load_schema_sql",
]
