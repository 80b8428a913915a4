"""
Infrastructure package for pdbsync.

Centralizes I/O resource construction (database connections, HTTP client).
Keep this layer focused on resource management, decoupled from the sync
engine's logic.
"""

from pdbsync.infrastructure.db_factory import get_sync_connection, init_schema
from pdbsync.infrastructure.http_client import build_http_client

__all__ = [
    "build_http_client",
    "get_sync_connection",
    "init_schema",
]
