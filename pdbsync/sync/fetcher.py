"""
Fetching one collection of records from the remote catalog.

``GET <base>/<collection>[?since=<unix seconds>]`` must answer 200 with a JSON
envelope; anything else is a fatal error for the run.
"""

from __future__ import annotations

import posixpath
from datetime import datetime, timezone
from typing import Optional, Union

import httpx

from pdbsync.errors import DecodeError, RemoteError, TransportError, UnexpectedStatusError
from pdbsync.sync.envelope import Envelope, decode
from pdbsync.utils.logging import get_logger

log = get_logger(__name__)

Since = Union[datetime, int, float, None]


def _since_seconds(since: Since) -> Optional[int]:
    """Whole unix seconds for the ``since`` filter, None meaning fetch all."""
    if since is None:
        return None
    if isinstance(since, datetime):
        if since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)
        seconds = int(since.timestamp())
    else:
        seconds = int(since)
    return seconds if seconds > 0 else None


class CollectionFetcher:
    """
    Retrieves and decodes record collections from a catalog base URL.

    The ``httpx.Client`` is borrowed; the fetcher never closes it.
    """

    def __init__(self, client: httpx.Client, base_url: str) -> None:
        self._client = client
        self._base_url = httpx.URL(base_url)

    def build_url(self, collection: str, since: Since = None) -> httpx.URL:
        if not collection:
            raise ValueError("collection name must be non-empty")
        path = posixpath.join(self._base_url.path or "/", collection)
        url = self._base_url.copy_with(path=path)
        seconds = _since_seconds(since)
        if seconds is not None:
            url = url.copy_merge_params({"since": str(seconds)})
        return url

    def fetch(self, collection: str, since: Since = None) -> Envelope:
        """
        Fetch ``collection`` changed since ``since`` (everything when unset).

        Raises
        ------
        TransportError
            Connection, timeout, redirect loop, content decoding or other
            request-level failure.
        UnexpectedStatusError
            Any status other than 200.
        DecodeError
            Unparseable envelope (including ``MalformedTimestampError``).
        RemoteError
            The envelope carried a non-empty ``meta.error``.
        """
        url = self.build_url(collection, since)
        log.info(f"Fetching {url}", extra={"collection": collection, "url": str(url)})

        try:
            response = self._client.get(url)
        except httpx.HTTPError as exc:
            raise TransportError(
                f"Request for '{url}' failed: {exc}", collection=collection, url=str(url)
            ) from exc

        if response.status_code != httpx.codes.OK:
            raise UnexpectedStatusError(collection, str(url), response.status_code)

        try:
            envelope = decode(response.content)
        except DecodeError as exc:
            exc.collection = collection
            raise

        if envelope.meta.error:
            raise RemoteError(
                f"Remote reported an error for '{collection}': {envelope.meta.error}",
                collection=collection,
            )

        log.debug(
            f"[FETCH] {collection} returned {len(envelope.data)} records",
            extra={
                "collection": collection,
                "records": len(envelope.data),
                "generated": str(envelope.meta.generated) if envelope.meta.generated else None,
            },
        )
        return envelope


__all__ = ["CollectionFetcher"]
