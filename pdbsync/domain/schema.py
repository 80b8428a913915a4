"""
Schema descriptions: how a record type maps onto table columns.

A record attribute is persisted iff it is annotated with a non-empty
``Column`` tag:

    org_id: Annotated[Optional[int], Column("org_id")] = None

``describe`` walks a model's fields in declaration order (inherited fields
first) and returns the ordered (column, accessor) pairs used to build both the
column list and the placeholder list of generated SQL.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from operator import attrgetter
from typing import Any, Callable, Dict, Iterator, Optional, Tuple, Type

from pydantic import BaseModel


@dataclass(frozen=True)
class Column:
    """Storage tag: the table column an attribute is persisted into."""

    name: str


@dataclass(frozen=True)
class ColumnSpec:
    column: str
    accessor: Callable[[Any], Any]


@dataclass(frozen=True)
class SchemaDescription:
    """Ordered (column, accessor) pairs for one record type."""

    record_type: Type[BaseModel]
    specs: Tuple[ColumnSpec, ...]

    def __iter__(self) -> Iterator[ColumnSpec]:
        return iter(self.specs)

    def __len__(self) -> int:
        return len(self.specs)

    @property
    def columns(self) -> Tuple[str, ...]:
        return tuple(spec.column for spec in self.specs)

    def values(self, record: BaseModel) -> Tuple[Any, ...]:
        """Attribute values of ``record`` in column order."""
        return tuple(spec.accessor(record) for spec in self.specs)

    def as_params(self, record: BaseModel) -> Dict[str, Any]:
        """Column -> value mapping, suitable for named placeholders."""
        return {spec.column: spec.accessor(record) for spec in self.specs}


def _column_tag(metadata: list) -> Optional[str]:
    for item in metadata:
        if isinstance(item, Column) and item.name:
            return item.name
    return None


@lru_cache(maxsize=None)
def describe(record_type: Type[BaseModel]) -> SchemaDescription:
    """
    Derive the schema description of ``record_type``.

    Attributes without a ``Column`` tag are decode-only and skipped. A type
    without any tagged attribute yields an empty description; callers that
    need to write rows treat that as a ``SchemaError``.
    """
    specs = []
    for attr, info in record_type.model_fields.items():
        column = _column_tag(info.metadata)
        if column:
            specs.append(ColumnSpec(column=column, accessor=attrgetter(attr)))
    return SchemaDescription(record_type=record_type, specs=tuple(specs))


__all__ = ["Column", "ColumnSpec", "SchemaDescription", "describe"]
