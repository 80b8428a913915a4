"""
Synchronization engine for pdbsync.

Fetcher -> envelope decoder -> applier, orchestrated by the driver inside a
single transaction per run.
"""

from pdbsync.sync.applier import ApplyResult, ConflictPolicy, apply_records
from pdbsync.sync.driver import CollectionReport, RunState, SyncDriver, SyncReport
from pdbsync.sync.envelope import Envelope, Meta, UnixTime, decode, parse_unix_time
from pdbsync.sync.fetcher import CollectionFetcher

__all__ = [
    "ApplyResult",
    "CollectionFetcher",
    "CollectionReport",
    "ConflictPolicy",
    "Envelope",
    "Meta",
    "RunState",
    "SyncDriver",
    "SyncReport",
    "UnixTime",
    "apply_records",
    "decode",
    "parse_unix_time",
]
