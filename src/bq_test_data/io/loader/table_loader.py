"""Load-and-verify pipeline for a single fixture table.

One attempt walks CREATING -> INSERTING -> POLLING -> DONE:

- CREATING: create the table (synthetic ``id`` column first) and confirm it
  is listed in the dataset
- INSERTING: stream the prepared rows in batches; any per-row error aborts
  the attempt before polling
- POLLING: streamed rows become visible eventually, so the row count is
  checked every ``poll_interval_seconds`` until it matches or
  ``load_timeout_seconds`` have passed

Attempts are retried up to ``table_load_attempts`` times. The table is
deleted (best-effort) before every attempt, and every attempt re-sends the
same prepared rows with the same row keys.
"""

from __future__ import annotations

import time
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Sequence,
    Tuple,
)

from google.cloud import bigquery

from bq_test_data.config import Settings, get_settings
from bq_test_data.exceptions import InsertError, LoadTimeoutError, TableCreationError
from bq_test_data.io.loader.insert_builder import build_batches, prepare_rows
from bq_test_data.io.loader.models import InsertRequest, LoadResult, LoadState
from bq_test_data.io.loader.retry import retry_with_reset
from bq_test_data.schema.core import TableDefinition
from bq_test_data.schema.fields import build_schema, normalize_name, validate_identifier
from bq_test_data.schema.types import TypeHierarchy
from bq_test_data.utils.logging import get_logger

if TYPE_CHECKING:
    from bq_test_data.io.connectors.bigquery_client import WarehouseClient

logger = get_logger(__name__)


class TableLoader:
    """Creates fixture tables and loads their rows until BigQuery reports them."""

    def __init__(
        self,
        client: WarehouseClient,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], None] = time.sleep,
        hierarchy: Optional[TypeHierarchy] = None,
    ):
        settings = settings or get_settings()
        self._client = client
        self._sleep = sleep
        self._hierarchy = hierarchy
        self.max_batch_size = settings.max_rows_per_request
        self.load_timeout_seconds = settings.load_timeout_seconds
        self.poll_interval_seconds = settings.poll_interval_seconds
        self.max_attempts = settings.table_load_attempts

    def load(self, dataset_id: str, table_def: TableDefinition) -> LoadResult:
        """
        Create ``table_def`` in ``dataset_id`` and load its rows.

        Schema and identifier problems are raised before any remote call and
        are never retried.

        Returns:
            LoadResult in state DONE

        Raises:
            UnsupportedTypeError: A field type has no BigQuery mapping
            InvalidIdentifierError: The table or a field name is invalid
            InsertError: BigQuery rejected rows on the final attempt
            LoadTimeoutError: The row count never converged on the final attempt
        """
        table_id, schema, rows, batches = self.plan(dataset_id, table_def)

        result = LoadResult(
            dataset_id=dataset_id,
            table_id=table_id,
            state=LoadState.CREATING,
            expected_rows=len(rows),
            batches=len(batches),
        )
        start = time.perf_counter()

        def attempt() -> None:
            result.attempts += 1
            self._run_attempt(result, schema, batches)

        try:
            retry_with_reset(
                attempt,
                attempts=self.max_attempts,
                reset=lambda: self._delete_table(dataset_id, table_id),
                operation_name=f"load_table:{dataset_id}.{table_id}",
            )
        except Exception as e:
            result.state = LoadState.FAILED
            result.errors.append(str(e))
            logger.error(
                "table.load_failed",
                dataset_id=dataset_id,
                table_id=table_id,
                attempts=result.attempts,
                error=str(e),
            )
            raise
        finally:
            result.duration_ms = (time.perf_counter() - start) * 1000

        logger.info(
            "table.loaded",
            dataset_id=dataset_id,
            table_id=table_id,
            rows=result.loaded_rows,
            attempts=result.attempts,
            duration_ms=round(result.duration_ms, 2),
        )
        return result

    def plan(self, dataset_id: str, table_def: TableDefinition) -> Tuple[
        str, List[bigquery.SchemaField], List[Dict[str, Any]], List[InsertRequest]
    ]:
        """Validate a table definition and build its schema and batches locally."""
        table_id = validate_identifier(normalize_name(table_def.table_name), "table")
        schema = build_schema(table_def.field_definitions, self._hierarchy)
        rows = prepare_rows(table_def)
        batches = build_batches(dataset_id, table_id, rows, self.max_batch_size)
        return table_id, schema, rows, batches

    def _run_attempt(
        self,
        result: LoadResult,
        schema: Sequence[bigquery.SchemaField],
        batches: List[InsertRequest],
    ) -> None:
        dataset_id, table_id = result.dataset_id, result.table_id

        result.state = LoadState.CREATING
        self._create_table(dataset_id, table_id, schema)

        result.state = LoadState.INSERTING
        for request in batches:
            self._insert_batch(request)

        result.state = LoadState.POLLING
        result.loaded_rows = self._wait_for_rows(
            dataset_id, table_id, result.expected_rows
        )
        result.state = LoadState.DONE

    def _delete_table(self, dataset_id: str, table_id: str) -> None:
        # A stale table from an aborted run must not block re-creation
        self._client.delete_table(dataset_id, table_id)

    def _create_table(
        self, dataset_id: str, table_id: str, schema: Sequence[bigquery.SchemaField]
    ) -> None:
        self._client.create_table(dataset_id, table_id, schema)
        if table_id not in self._client.list_tables(dataset_id):
            raise TableCreationError(dataset_id, table_id)
        logger.info(
            "table.created",
            project_id=self._client.project_id,
            dataset_id=dataset_id,
            table_id=table_id,
        )

    def _insert_batch(self, request: InsertRequest) -> None:
        logger.info(
            "table.inserting_rows",
            dataset_id=request.dataset_id,
            table_id=request.table_id,
            rows=len(request),
            sample_row=request.rows[0] if request.rows else None,
        )
        errors: List[Dict[str, Any]] = self._client.insert_rows(request)
        if errors:
            logger.error(
                "table.insert_errors",
                dataset_id=request.dataset_id,
                table_id=request.table_id,
                errors=errors,
            )
            raise InsertError(request.dataset_id, request.table_id, errors, request.rows)
        logger.info(
            "table.rows_inserted",
            dataset_id=request.dataset_id,
            table_id=request.table_id,
            rows=len(request),
        )

    def _wait_for_rows(self, dataset_id: str, table_id: str, expected: int) -> int:
        logger.info(
            "table.waiting_for_rows",
            dataset_id=dataset_id,
            table_id=table_id,
            expected=expected,
        )
        waited = 0.0
        while True:
            actual = self._client.table_row_count(dataset_id, table_id)
            if actual == expected:
                logger.info(
                    "table.rows_visible",
                    dataset_id=dataset_id,
                    table_id=table_id,
                    rows=actual,
                    waited_seconds=waited,
                )
                return actual
            if waited >= self.load_timeout_seconds:
                qualified = f"{self._client.project_id}.{dataset_id}.{table_id}"
                raise LoadTimeoutError(qualified, expected, actual, waited)
            self._sleep(self.poll_interval_seconds)
            waited += self.poll_interval_seconds
