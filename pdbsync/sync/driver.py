"""
Synchronization driver: one fetch -> decode -> apply pass over every
configured record type, inside a single transaction.

State machine::

    idle -> fetching(type) -> applying(type) -> [next type | committing] -> done
                    \\_______________ any error _______________/-> aborted

The transaction commits exactly once, after the last type is applied. Any
error rolls it back, so nothing from an aborted run is visible afterwards.
The ``since`` timestamp is supplied by the caller; the driver never stores it.

Usage:
    with build_http_client(settings) as client, connect(settings.dsn) as conn:
        driver = SyncDriver(CollectionFetcher(client, settings.pdb_base_url), conn)
        report = driver.run(since=None)
"""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Type

import psycopg

from pdbsync.domain.models import RECORD_TYPES, PeeringDBObject
from pdbsync.errors import SyncError, SyncRunError
from pdbsync.sync.applier import ConflictPolicy, apply_records
from pdbsync.sync.fetcher import CollectionFetcher, Since
from pdbsync.utils.logging import get_logger

log = get_logger(__name__)


class RunState(str, enum.Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    APPLYING = "applying"
    COMMITTING = "committing"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class CollectionReport:
    collection: str
    table: str
    records: int = 0
    inserted: int = 0
    deleted: int = 0
    generated: Optional[datetime] = None
    duration_seconds: float = 0.0


@dataclass
class SyncReport:
    since: Since = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    collections: List[CollectionReport] = field(default_factory=list)

    @property
    def inserted(self) -> int:
        return sum(c.inserted for c in self.collections)

    @property
    def deleted(self) -> int:
        return sum(c.deleted for c in self.collections)

    @property
    def earliest_generated(self) -> Optional[datetime]:
        """Oldest remote snapshot time seen in the run; safe as the next ``since``."""
        stamps = [c.generated for c in self.collections if c.generated is not None]
        return min(stamps) if stamps else None


class SyncDriver:
    """
    Runs synchronization passes for a fixed, ordered list of record types.

    The driver borrows ``conn`` and ``fetcher``; it owns only the transaction
    it opens on ``conn`` for the duration of ``run``.
    """

    def __init__(
        self,
        fetcher: CollectionFetcher,
        conn: psycopg.Connection,
        record_types: Sequence[Type[PeeringDBObject]] = RECORD_TYPES,
        conflict_policy: ConflictPolicy = ConflictPolicy.UPSERT,
    ) -> None:
        if not record_types:
            raise ValueError("at least one record type is required")
        self._fetcher = fetcher
        self._conn = conn
        self._record_types = tuple(record_types)
        self._policy = ConflictPolicy(conflict_policy)
        self.state = RunState.IDLE
        self.current: Optional[str] = None

    def _sync_one(self, record_type: Type[PeeringDBObject], since: Since) -> CollectionReport:
        collection = record_type.pdb_name()
        report = CollectionReport(collection=collection, table=record_type.sql_name())
        start = time.perf_counter()

        self.state = RunState.FETCHING
        envelope = self._fetcher.fetch(collection, since)
        report.records = len(envelope.data)
        report.generated = envelope.generated_at

        self.state = RunState.APPLYING
        log.info(
            f"Updating database table '{report.table}'",
            extra={"collection": collection, "table": report.table, "records": report.records},
        )
        result = apply_records(self._conn, record_type, envelope.data, self._policy)
        report.inserted = result.inserted
        report.deleted = result.deleted
        report.duration_seconds = time.perf_counter() - start
        return report

    def run(self, since: Since = None) -> SyncReport:
        """
        Synchronize every configured record type changed since ``since``.

        Returns the run report after the single commit. On the first failure
        the transaction is rolled back and ``SyncRunError`` is raised with the
        failing collection and the original error as ``__cause__``.
        """
        report = SyncReport(since=since, started_at=datetime.now(timezone.utc))
        names = [t.pdb_name() for t in self._record_types]
        log.info(
            f"[SYNC START] {', '.join(names)}",
            extra={"collections": names, "since": str(since) if since else None},
        )

        self.current = None
        try:
            with self._conn.transaction():
                for record_type in self._record_types:
                    self.current = record_type.pdb_name()
                    report.collections.append(self._sync_one(record_type, since))
                self.state = RunState.COMMITTING
                self.current = None
        except (SyncError, psycopg.Error) as exc:
            failed_at = self.current
            self.state = RunState.ABORTED
            log.error(
                f"[SYNC ABORTED] {failed_at or 'transaction'}: {exc}",
                extra={"collection": failed_at, "error_type": type(exc).__name__},
            )
            if isinstance(exc, SyncRunError):
                raise
            raise SyncRunError(failed_at, exc) from exc
        except BaseException:
            self.state = RunState.ABORTED
            raise

        self.state = RunState.DONE
        report.finished_at = datetime.now(timezone.utc)
        log.info(
            f"[SYNC COMMIT] {report.inserted} written, {report.deleted} deleted",
            extra={"inserted": report.inserted, "deleted": report.deleted},
        )
        return report


__all__ = ["CollectionReport", "RunState", "SyncDriver", "SyncReport"]
