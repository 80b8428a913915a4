"""
pdbsync - mirror a PeeringDB-style catalog into a local PostgreSQL store.

Internet exchange points, networks and their exchange LAN presences are
fetched per collection, decoded from the ``{meta, data}`` envelope and
applied (insert or delete) inside a single transaction per run.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from pdbsync.config import Settings, get_settings
from pdbsync.domain.models import (
    RECORD_TYPES,
    InternetExchange,
    Network,
    NetworkIXLan,
    PeeringDBObject,
    record_type_for,
)
from pdbsync.domain.schema import SchemaDescription, describe
from pdbsync.sync.applier import ConflictPolicy, apply_records
from pdbsync.sync.driver import SyncDriver, SyncReport
from pdbsync.sync.envelope import Envelope, decode
from pdbsync.sync.fetcher import CollectionFetcher
from pdbsync.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Records and schema
    "RECORD_TYPES",
    "InternetExchange",
    "Network",
    "NetworkIXLan",
    "PeeringDBObject",
    "SchemaDescription",
    "describe",
    "record_type_for",
    # Engine
    "CollectionFetcher",
    "ConflictPolicy",
    "Envelope",
    "SyncDriver",
    "SyncReport",
    "apply_records",
    "decode",
    # Logging
    "configure_logging",
    "get_logger",
]
