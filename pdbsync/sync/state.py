"""
Bookkeeping of the last successful synchronization.

Stores the remote snapshot time (``meta.generated``) of the last committed
run in a single-row ``sync_state`` table, so the next run can ask only for
records changed since then. The driver does not use this module; callers
read the timestamp before a run and store the report's
``earliest_generated`` after it commits.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import psycopg

from pdbsync.utils.logging import get_logger

log = get_logger(__name__)

_CREATE = """
CREATE TABLE IF NOT EXISTS sync_state (
    id              SMALLINT PRIMARY KEY DEFAULT 1 CHECK (id = 1),
    last_generated  TIMESTAMPTZ NOT NULL,
    updated_at      TIMESTAMPTZ NOT NULL DEFAULT now()
)
"""

_SELECT = "SELECT last_generated FROM sync_state WHERE id = 1"

_UPSERT = """
INSERT INTO sync_state (id, last_generated, updated_at)
VALUES (1, %s, now())
ON CONFLICT (id) DO UPDATE
SET last_generated = EXCLUDED.last_generated, updated_at = EXCLUDED.updated_at
"""


def ensure_state_table(conn: psycopg.Connection) -> None:
    with conn.cursor() as cur:
        cur.execute(_CREATE)


def load_last_sync(conn: psycopg.Connection) -> Optional[datetime]:
    """Snapshot time of the last committed run, or None if there never was one."""
    with conn.cursor() as cur:
        cur.execute(_SELECT)
        row = cur.fetchone()
    if not row or row[0] is None:
        return None
    value: datetime = row[0]
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def store_last_sync(conn: psycopg.Connection, generated: datetime) -> None:
    """Record ``generated`` as the last sync time, in its own transaction."""
    with conn.transaction():
        ensure_state_table(conn)
        with conn.cursor() as cur:
            cur.execute(_UPSERT, (generated,))
    log.info("Stored last sync time", extra={"last_generated": generated.isoformat()})


__all__ = ["ensure_state_table", "load_last_sync", "store_last_sync"]
