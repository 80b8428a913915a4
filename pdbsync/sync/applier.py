"""
Applying a decoded batch of records to its table.

Each record is either deleted by id (status ``deleted``) or written with an
insert built from the record type's schema description. Statements run on the
connection handed in by the caller, inside the caller's transaction: this
module never commits or rolls back.

Conflict policies
-----------------
``upsert``
    ``INSERT ... ON CONFLICT ("id") DO UPDATE`` so records that were already
    synchronized are refreshed in place.
``error``
    Plain ``INSERT``; an existing id raises ``InsertConflictError``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, List, Sequence, Type, Union

import psycopg
from psycopg import sql
from pydantic import TypeAdapter, ValidationError

from pdbsync.domain.models import SCHEMAS, PeeringDBObject
from pdbsync.domain.schema import SchemaDescription, describe
from pdbsync.errors import InsertConflictError, PayloadDecodeError, SchemaError
from pdbsync.utils.logging import get_logger

log = get_logger(__name__)

ID_COLUMN = "id"

Payload = Union[bytes, str, Sequence[Any]]


class ConflictPolicy(str, enum.Enum):
    UPSERT = "upsert"
    ERROR = "error"


@dataclass
class ApplyResult:
    table: str
    inserted: int = 0
    deleted: int = 0

    @property
    def total(self) -> int:
        return self.inserted + self.deleted


def _schema_for(record_type: Type[PeeringDBObject]) -> SchemaDescription:
    schema = SCHEMAS.get(record_type)
    if schema is None:
        schema = describe(record_type)
    if not len(schema):
        raise SchemaError(
            f"Record type '{record_type.__name__}' declares no persistable columns",
            collection=record_type.pdb_name() or None,
        )
    return schema


def decode_records(record_type: Type[PeeringDBObject], payload: Payload) -> List[PeeringDBObject]:
    """Decode the raw ``data`` payload into records of ``record_type``, keeping order."""
    adapter = TypeAdapter(List[record_type])  # type: ignore[valid-type]
    try:
        if isinstance(payload, (bytes, str)):
            return adapter.validate_json(payload)
        return adapter.validate_python(payload)
    except ValidationError as exc:
        raise PayloadDecodeError(
            f"Couldn't parse {record_type.pdb_name()} data: {exc}",
            collection=record_type.pdb_name(),
        ) from exc


def delete_statement(table: str) -> sql.Composed:
    return sql.SQL("DELETE FROM {table} WHERE {id} = %s").format(
        table=sql.Identifier(table),
        id=sql.Identifier(ID_COLUMN),
    )


def insert_statement(
    table: str,
    schema: SchemaDescription,
    policy: ConflictPolicy = ConflictPolicy.UPSERT,
) -> sql.Composed:
    """
    Build the insert for ``table`` with one named placeholder per column.

    Columns and placeholders follow the schema description's order.
    """
    columns = schema.columns
    stmt = sql.SQL("INSERT INTO {table} ({cols}) VALUES ({values})").format(
        table=sql.Identifier(table),
        cols=sql.SQL(", ").join(sql.Identifier(col) for col in columns),
        values=sql.SQL(", ").join(sql.Placeholder(col) for col in columns),
    )
    if policy is not ConflictPolicy.UPSERT:
        return stmt

    updates = [col for col in columns if col != ID_COLUMN]
    if not updates:
        conflict = sql.SQL(" ON CONFLICT ({id}) DO NOTHING").format(id=sql.Identifier(ID_COLUMN))
    else:
        conflict = sql.SQL(" ON CONFLICT ({id}) DO UPDATE SET {assignments}").format(
            id=sql.Identifier(ID_COLUMN),
            assignments=sql.SQL(", ").join(
                sql.SQL("{col} = EXCLUDED.{col}").format(col=sql.Identifier(col))
                for col in updates
            ),
        )
    return stmt + conflict


def apply_records(
    conn: psycopg.Connection,
    record_type: Type[PeeringDBObject],
    payload: Payload,
    policy: ConflictPolicy = ConflictPolicy.UPSERT,
) -> ApplyResult:
    """
    Decode ``payload`` and apply every record, in payload order, on ``conn``.

    Stops at the first failing record and propagates its error; the caller
    decides what happens to the enclosing transaction.

    Raises
    ------
    PayloadDecodeError
        ``payload`` does not decode into ``record_type`` records.
    SchemaError
        ``record_type`` declares no persistable columns.
    InsertConflictError
        ``policy`` is ``error`` and a record's id already exists.
    """
    policy = ConflictPolicy(policy)
    schema = _schema_for(record_type)
    records = decode_records(record_type, payload)
    table = record_type.sql_name()
    result = ApplyResult(table=table)

    delete_sql = delete_statement(table)
    insert_sql = insert_statement(table, schema, policy)

    with conn.cursor() as cur:
        for record in records:
            if record.deleted:
                cur.execute(delete_sql, (record.get_id(),))
                result.deleted += 1
                continue
            try:
                cur.execute(insert_sql, schema.as_params(record))
            except psycopg.errors.UniqueViolation as exc:
                raise InsertConflictError(
                    table, record.get_id(), collection=record_type.pdb_name()
                ) from exc
            result.inserted += 1

    log.info(
        f"[APPLY] {table}: {result.inserted} written, {result.deleted} deleted",
        extra={"table": table, "inserted": result.inserted, "deleted": result.deleted},
    )
    return result


__all__ = [
    "ApplyResult",
    "ConflictPolicy",
    "apply_records",
    "decode_records",
    "delete_statement",
    "insert_statement",
]
