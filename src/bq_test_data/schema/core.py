"""Fixture definition types.

A database definition is a logical database name plus the tables to load
into it. Table definitions carry their rows positionally: the n-th value of
each row belongs to the n-th field definition.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence


@dataclass(frozen=True)
class FieldDefinition:
    """Definition of a single fixture column."""

    field_name: str
    base_type: str
    nested_fields: Sequence["FieldDefinition"] = ()
    collection_type: Optional[str] = None


@dataclass
class TableDefinition:
    """Columns and rows of one fixture table."""

    table_name: str
    field_definitions: List[FieldDefinition] = field(default_factory=list)
    rows: List[Sequence[Any]] = field(default_factory=list)

    @property
    def field_names(self) -> List[str]:
        return [f.field_name for f in self.field_definitions]


@dataclass
class DatabaseDefinition:
    """A logical test database and the tables loaded into it."""

    database_name: str
    table_definitions: List[TableDefinition] = field(default_factory=list)


__all__ = [
    "FieldDefinition",
    "TableDefinition",
    "DatabaseDefinition",
]
