"""
Fixture table loader for BigQuery.

Coerces fixture values, splits rows into streaming-insert batches and loads
them with bounded retries until the table reports the expected row count.
"""

from .coercion import ValueKind, classify, coerce
from .insert_builder import build_batches, prepare_rows
from .models import InsertRequest, LoadResult, LoadState
from .retry import retry_with_reset, run_best_effort
from .sql_utils import (
    build_create_view_sql,
    build_drop_view_sql,
    build_row_count_sql,
    qualify_table,
    quote_ident,
)

__all__ = [
    "InsertRequest",
    "LoadResult",
    "LoadState",
    "ValueKind",
    "build_batches",
    "build_create_view_sql",
    "build_drop_view_sql",
    "build_row_count_sql",
    "classify",
    "coerce",
    "prepare_rows",
    "qualify_table",
    "quote_ident",
    "retry_with_reset",
    "run_best_effort",
]
