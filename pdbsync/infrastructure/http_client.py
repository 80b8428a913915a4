"""
HTTP client construction for the remote catalog.

The caller owns the returned client and must close it (it is a context
manager). TLS verification and timeout come from settings.
"""

from __future__ import annotations

from typing import Optional

import httpx

from pdbsync import __version__
from pdbsync.config import Settings, get_settings
from pdbsync.utils.logging import get_logger

log = get_logger(__name__)


def build_http_client(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """
    Build a synchronous ``httpx.Client`` for catalog fetches.

    Parameters
    ----------
    settings : Settings | None
        Source of timeout and TLS settings. Defaults to ``get_settings()``.
    transport : httpx.BaseTransport | None
        Optional transport override (tests pass ``httpx.MockTransport``).
    """
    settings = settings or get_settings()
    if not settings.http_verify_tls:
        log.warning("TLS certificate verification is disabled for catalog fetches")
    return httpx.Client(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        verify=settings.http_verify_tls,
        follow_redirects=True,
        headers={"Accept": "application/json", "User-Agent": f"pdbsync/{__version__}"},
        transport=transport,
    )


__all__ = ["build_http_client"]
