"""Cross-cutting helpers for pdbsync (logging setup)."""

from pdbsync.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
