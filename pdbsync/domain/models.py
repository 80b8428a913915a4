"""
Record types mirrored from the remote catalog.

Every record shares the ``PeeringDBObject`` base attributes (id, created,
updated, status). Concrete types add their own attributes and declare the
remote collection they are fetched from and the local table they land in.
Only attributes tagged with ``Column`` are persisted; ``status`` is read to
detect soft deletes and never stored.
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, ClassVar, Dict, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, field_validator

from pdbsync.domain.schema import Column, SchemaDescription, describe
from pdbsync.errors import UnknownRecordTypeError

DELETED_STATUS = "deleted"


class PeeringDBObject(BaseModel):
    """
    Base attributes shared by every record type.

    Subclasses set ``PDB_NAME`` (remote collection) and ``SQL_NAME`` (local
    table).
    """

    PDB_NAME: ClassVar[str] = ""
    SQL_NAME: ClassVar[str] = ""

    id: Annotated[int, Column("id")]
    created: Annotated[Optional[datetime], Column("created")] = None
    updated: Annotated[Optional[datetime], Column("updated")] = None
    status: str = ""

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("status", mode="before")
    @classmethod
    def _null_status(cls, value: object) -> object:
        # The catalog sends null for "no status".
        return "" if value is None else value

    def get_id(self) -> int:
        return self.id

    @property
    def deleted(self) -> bool:
        return self.status == DELETED_STATUS

    @classmethod
    def sql_name(cls) -> str:
        return cls.SQL_NAME

    @classmethod
    def pdb_name(cls) -> str:
        return cls.PDB_NAME


class InternetExchange(PeeringDBObject):
    """An internet exchange point."""

    PDB_NAME: ClassVar[str] = "ix"
    SQL_NAME: ClassVar[str] = "ix"

    org_id: Annotated[Optional[int], Column("org_id")] = None
    name: Annotated[Optional[str], Column("name")] = None
    name_long: Annotated[Optional[str], Column("name_long")] = None
    city: Annotated[Optional[str], Column("city")] = None
    country: Annotated[Optional[str], Column("country")] = None


class Network(PeeringDBObject):
    """An autonomous system / network operator."""

    PDB_NAME: ClassVar[str] = "net"
    SQL_NAME: ClassVar[str] = "networks"

    org_id: Annotated[Optional[int], Column("org_id")] = None
    asn: Annotated[Optional[int], Column("asn")] = None
    name: Annotated[Optional[str], Column("name")] = None
    aka: Annotated[Optional[str], Column("aka")] = None
    website: Annotated[Optional[str], Column("website")] = None


class NetworkIXLan(PeeringDBObject):
    """A network's public peering presence on an exchange LAN."""

    PDB_NAME: ClassVar[str] = "netixlan"
    SQL_NAME: ClassVar[str] = "network_ix_lans"

    net_id: Annotated[Optional[int], Column("net_id")] = None
    ix_id: Annotated[Optional[int], Column("ix_id")] = None
    ixlan_id: Annotated[Optional[int], Column("ixlan_id")] = None
    notes: Annotated[Optional[str], Column("notes")] = None
    speed: Annotated[Optional[int], Column("speed")] = None
    asn: Annotated[Optional[int], Column("asn")] = None
    ipaddr4: Annotated[Optional[str], Column("ipaddr4")] = None
    ipaddr6: Annotated[Optional[str], Column("ipaddr6")] = None
    is_rs_peer: Annotated[bool, Column("is_rs_peer")] = False

    @field_validator("is_rs_peer", mode="before")
    @classmethod
    def _null_rs_peer(cls, value: object) -> object:
        return False if value is None else value


# Synchronization order matters: links reference exchanges and networks.
RECORD_TYPES: Tuple[Type[PeeringDBObject], ...] = (
    InternetExchange,
    Network,
    NetworkIXLan,
)

_BY_PDB_NAME: Dict[str, Type[PeeringDBObject]] = {t.PDB_NAME: t for t in RECORD_TYPES}

# Built once at import; column order is fixed for the process lifetime.
SCHEMAS: Dict[Type[PeeringDBObject], SchemaDescription] = {t: describe(t) for t in RECORD_TYPES}


def record_type_for(collection: str) -> Type[PeeringDBObject]:
    """Resolve a remote collection name (``ix``, ``net``...) to its record type."""
    try:
        return _BY_PDB_NAME[collection]
    except KeyError:
        raise UnknownRecordTypeError(
            f"Unknown peeringdb api object '{collection}'. "
            f"Available: {', '.join(sorted(_BY_PDB_NAME))}",
            collection=collection,
        ) from None


__all__ = [
    "DELETED_STATUS",
    "InternetExchange",
    "Network",
    "NetworkIXLan",
    "PeeringDBObject",
    "RECORD_TYPES",
    "SCHEMAS",
    "record_type_for",
]
