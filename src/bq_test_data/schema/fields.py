"""Identifier rules and BigQuery schema construction for fixture fields.

BigQuery identifiers:
- Dataset and table ids: letters, digits and underscores, 1-1024 characters
- Field names: letters, digits, spaces and underscores, starting with a letter
  or underscore, at most 128 characters
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

from google.cloud import bigquery

from bq_test_data.exceptions import InvalidIdentifierError
from bq_test_data.schema.core import FieldDefinition
from bq_test_data.schema.types import TypeHierarchy, resolve

ID_FIELD_NAME = "id"

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_]{1,1024}$")
FIELD_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_ ]{0,127}$")
_NON_IDENTIFIER_CHARS = re.compile(r"[^A-Za-z0-9_]")


def normalize_name(identifier: str) -> str:
    """
    Normalize a logical database or table name to BigQuery's id characters.

    Examples:
        >>> normalize_name("test-data")
        'test_data'
        >>> normalize_name("sample dataset.v2")
        'sample_dataset_v2'
    """
    return _NON_IDENTIFIER_CHARS.sub("_", str(identifier))


def validate_identifier(identifier: str, kind: str = "dataset") -> str:
    """Validate a dataset or table id, returning it unchanged."""
    if not isinstance(identifier, str) or not IDENTIFIER_PATTERN.match(identifier):
        raise InvalidIdentifierError(
            str(identifier),
            kind,
            "must be 1-1024 letters, digits or underscores",
        )
    return identifier


def validate_field_name(field_name: str) -> str:
    """Validate a field name against BigQuery's column name grammar."""
    if not isinstance(field_name, str) or not FIELD_NAME_PATTERN.match(field_name):
        raise InvalidIdentifierError(
            str(field_name),
            "field",
            "must contain only letters, numbers, spaces and underscores, start "
            "with a letter or underscore, and be at most 128 characters long",
        )
    return field_name


def to_schema_field(
    field_def: FieldDefinition, hierarchy: Optional[TypeHierarchy] = None
) -> bigquery.SchemaField:
    """
    Convert a fixture field definition into a BigQuery SchemaField.

    A field with a ``collection_type`` becomes a REPEATED column of the
    collection's element type. Nested field definitions become sub-fields.
    """
    name = validate_field_name(field_def.field_name)
    if field_def.collection_type:
        field_type = resolve(field_def.collection_type, hierarchy)
        mode = "REPEATED"
    else:
        field_type = resolve(field_def.base_type, hierarchy)
        mode = "NULLABLE"

    nested = tuple(to_schema_field(f, hierarchy) for f in field_def.nested_fields)
    return bigquery.SchemaField(name, field_type, mode=mode, fields=nested)


def build_schema(
    field_definitions: Sequence[FieldDefinition],
    hierarchy: Optional[TypeHierarchy] = None,
) -> List[bigquery.SchemaField]:
    """Build a table schema: synthetic ``id`` column followed by the fields."""
    id_field = FieldDefinition(field_name=ID_FIELD_NAME, base_type="type/Integer")
    return [to_schema_field(f, hierarchy) for f in (id_field, *field_definitions)]


__all__ = [
    "ID_FIELD_NAME",
    "IDENTIFIER_PATTERN",
    "FIELD_NAME_PATTERN",
    "normalize_name",
    "validate_identifier",
    "validate_field_name",
    "to_schema_field",
    "build_schema",
]
