"""
Domain package for pdbsync.

Exports the record types and their schema descriptions. Keep this package
focused on data definitions and validation concerns.
"""

from pdbsync.domain.models import (
    RECORD_TYPES,
    SCHEMAS,
    InternetExchange,
    Network,
    NetworkIXLan,
    PeeringDBObject,
    record_type_for,
)
from pdbsync.domain.schema import Column, ColumnSpec, SchemaDescription, describe

__all__ = [
    "Column",
    "ColumnSpec",
    "InternetExchange",
    "Network",
    "NetworkIXLan",
    "PeeringDBObject",
    "RECORD_TYPES",
    "SCHEMAS",
    "SchemaDescription",
    "describe",
    "record_type_for",
]
