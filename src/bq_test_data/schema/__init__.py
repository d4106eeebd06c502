"""Fixture definitions, base type resolution and BigQuery schema building."""

from .core import DatabaseDefinition, FieldDefinition, TableDefinition
from .fields import (
    build_schema,
    normalize_name,
    to_schema_field,
    validate_field_name,
    validate_identifier,
)
from .types import BIGQUERY_TYPES, DEFAULT_HIERARCHY, TypeHierarchy, resolve

__all__ = [
    "BIGQUERY_TYPES",
    "DEFAULT_HIERARCHY",
    "DatabaseDefinition",
    "FieldDefinition",
    "TableDefinition",
    "TypeHierarchy",
    "build_schema",
    "normalize_name",
    "resolve",
    "to_schema_field",
    "validate_field_name",
    "validate_identifier",
]
