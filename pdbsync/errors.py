"""
Error taxonomy for the synchronization engine.

Every failure inside a synchronization run is fatal to that run. Errors carry
the collection (remote object type) they occurred in when it is known, so the
CLI can report which collection broke and why.
"""

from __future__ import annotations

from typing import Optional


class SyncError(Exception):
    """Base class for all pdbsync engine errors."""

    def __init__(self, message: str, *, collection: Optional[str] = None) -> None:
        super().__init__(message)
        self.collection = collection


class UnknownRecordTypeError(SyncError):
    """A configured collection name has no matching record type."""


class TransportError(SyncError):
    """Network-level failure while talking to the remote catalog."""

    def __init__(self, message: str, *, collection: Optional[str] = None, url: str = "") -> None:
        super().__init__(message, collection=collection)
        self.url = url


class UnexpectedStatusError(SyncError):
    """The remote catalog answered with a non-success HTTP status."""

    def __init__(self, collection: str, url: str, status_code: int) -> None:
        super().__init__(
            f"Failed request for '{url}' got code '{status_code}'",
            collection=collection,
        )
        self.url = url
        self.status_code = status_code


class RemoteError(SyncError):
    """The envelope reported an error in ``meta.error``."""


class DecodeError(SyncError):
    """The response envelope could not be parsed."""


class MalformedTimestampError(DecodeError):
    """A ``<seconds>.<nanos>`` timestamp did not have the expected shape."""


class PayloadDecodeError(DecodeError):
    """The ``data`` payload could not be decoded into the target record type."""


class SchemaError(SyncError):
    """A record type declares no persistable columns."""


class InsertConflictError(SyncError):
    """An insert collided with an existing row with the same identifier."""

    def __init__(self, table: str, record_id: int, *, collection: Optional[str] = None) -> None:
        super().__init__(
            f"Row with id={record_id} already exists in table '{table}'",
            collection=collection,
        )
        self.table = table
        self.record_id = record_id


class SyncRunError(SyncError):
    """A synchronization run aborted; ``__cause__`` holds the underlying error."""

    def __init__(self, collection: Optional[str], cause: BaseException) -> None:
        where = f"'{collection}'" if collection else "transaction"
        super().__init__(f"Synchronization failed at {where}: {cause}", collection=collection)
        self.cause = cause


__all__ = [
    "DecodeError",
    "InsertConflictError",
    "MalformedTimestampError",
    "PayloadDecodeError",
    "RemoteError",
    "SchemaError",
    "SyncError",
    "SyncRunError",
    "TransportError",
    "UnexpectedStatusError",
    "UnknownRecordTypeError",
]
