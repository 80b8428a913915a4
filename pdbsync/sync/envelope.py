"""
Decoding of the generic ``{meta, data}`` response envelope.

The envelope is decoded in two stages. This module handles the first one:
``meta`` is parsed and validated, ``data`` is kept as an untyped list until the
caller knows which record type it holds (see ``pdbsync.sync.applier``).

``meta.generated`` is encoded as ``<seconds>.<nanoseconds>``, both halves
base-10 integers. JSON numbers are parsed as ``Decimal`` so the digits are
kept exactly as sent, whether the field arrives as a number or a string.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, List, Optional, Union

from pdbsync.errors import DecodeError, MalformedTimestampError

NANOS_PER_SECOND = 1_000_000_000
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_INT_RE = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class UnixTime:
    """Exact point in time as whole seconds plus nanoseconds since the epoch."""

    seconds: int
    nanos: int = 0

    def __post_init__(self) -> None:
        # Carry out-of-range nanoseconds into seconds.
        extra, nanos = divmod(self.nanos, NANOS_PER_SECOND)
        object.__setattr__(self, "seconds", self.seconds + extra)
        object.__setattr__(self, "nanos", nanos)

    @property
    def total_nanos(self) -> int:
        return self.seconds * NANOS_PER_SECOND + self.nanos

    def to_datetime(self) -> datetime:
        """Aware UTC datetime, truncated to microseconds."""
        return _EPOCH + timedelta(seconds=self.seconds, microseconds=self.nanos // 1000)

    def __str__(self) -> str:
        return f"{self.seconds}.{self.nanos:09d}"


def parse_unix_time(text: str) -> UnixTime:
    """
    Parse ``"<seconds>.<nanos>"``.

    Raises ``MalformedTimestampError`` unless the text holds exactly one ``.``
    with a valid integer on each side.
    """
    parts = text.split(".")
    if len(parts) != 2:
        raise MalformedTimestampError(f"Malformed time entry: {text}")
    if not all(_INT_RE.fullmatch(part) for part in parts):
        raise MalformedTimestampError(f"Malformed time entry: {text}")
    return UnixTime(seconds=int(parts[0]), nanos=int(parts[1]))


@dataclass(frozen=True)
class Meta:
    error: str = ""
    generated: Optional[UnixTime] = None


@dataclass(frozen=True)
class Envelope:
    meta: Meta = field(default_factory=Meta)
    data: List[Any] = field(default_factory=list)

    @property
    def generated_at(self) -> Optional[datetime]:
        return self.meta.generated.to_datetime() if self.meta.generated else None


def _decode_meta(raw_meta: Any) -> Meta:
    if raw_meta is None:
        return Meta()
    if not isinstance(raw_meta, dict):
        raise DecodeError(f"Envelope 'meta' must be an object, got {type(raw_meta).__name__}")

    error = raw_meta.get("error")
    if error is None:
        error = ""
    if not isinstance(error, str):
        raise DecodeError(f"Envelope 'meta.error' must be a string, got {type(error).__name__}")

    raw_generated = raw_meta.get("generated")
    if raw_generated is None:
        generated = None
    elif isinstance(raw_generated, (str, Decimal)):
        generated = parse_unix_time(str(raw_generated))
    elif isinstance(raw_generated, int) and not isinstance(raw_generated, bool):
        generated = parse_unix_time(str(raw_generated))
    else:
        raise MalformedTimestampError(f"Malformed time entry: {raw_generated!r}")
    return Meta(error=error, generated=generated)


def decode(raw: Union[bytes, str]) -> Envelope:
    """
    Decode a response body into an ``Envelope``.

    Raises ``DecodeError`` for invalid JSON or an unexpected envelope shape,
    and ``MalformedTimestampError`` for a bad ``meta.generated`` value.
    """
    try:
        # Decimal floats exist for meta.generated; any float inside data reaches
        # the record models as Decimal too.
        document = json.loads(raw, parse_float=Decimal)
    except (ValueError, UnicodeDecodeError) as exc:
        raise DecodeError(f"Invalid JSON envelope: {exc}") from exc

    if not isinstance(document, dict):
        raise DecodeError(f"Envelope must be a JSON object, got {type(document).__name__}")

    meta = _decode_meta(document.get("meta"))

    if "data" not in document:
        raise DecodeError("Envelope has no 'data' member")
    data = document["data"]
    if data is None:
        data = []
    if not isinstance(data, list):
        raise DecodeError(f"Envelope 'data' must be an array, got {type(data).__name__}")
    return Envelope(meta=meta, data=data)


__all__ = ["Envelope", "Meta", "UnixTime", "decode", "parse_unix_time"]
