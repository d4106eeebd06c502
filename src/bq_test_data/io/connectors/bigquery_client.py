"""BigQuery connector used by the fixture harness.

``WarehouseClient`` is the narrow set of warehouse calls the loader and the
dataset lifecycle need. ``BigQueryClient`` implements it on top of
``google.cloud.bigquery.Client``; tests substitute an in-memory fake.
"""

from __future__ import annotations

import json
from typing import (
    Any,
    Dict,
    List,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    runtime_checkable,
)

from google.cloud import bigquery
from google.oauth2 import service_account

from bq_test_data.config import Settings, get_settings
from bq_test_data.io.loader.models import InsertRequest
from bq_test_data.io.loader.sql_utils import build_row_count_sql
from bq_test_data.utils.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class WarehouseClient(Protocol):
    """Warehouse operations consumed by the loader and dataset lifecycle."""

    @property
    def project_id(self) -> str: ...

    def create_dataset(self, dataset_id: str) -> None: ...

    def delete_dataset(self, dataset_id: str) -> None: ...

    def list_datasets(self) -> List[str]: ...

    def create_table(
        self, dataset_id: str, table_id: str, schema: Sequence[bigquery.SchemaField]
    ) -> None: ...

    def delete_table(self, dataset_id: str, table_id: str) -> None: ...

    def list_tables(self, dataset_id: str) -> List[str]: ...

    def insert_rows(self, request: InsertRequest) -> List[Dict[str, Any]]: ...

    def execute(self, sql: str) -> List[Tuple[Any, ...]]: ...

    def table_row_count(self, dataset_id: str, table_id: str) -> int: ...


def build_bigquery_client(settings: Settings) -> bigquery.Client:
    """
    Create a ``google.cloud.bigquery.Client`` from settings.

    Uses the service account key JSON when configured, otherwise application
    default credentials.
    """
    if settings.service_account_json:
        info = json.loads(settings.service_account_json)
        credentials = service_account.Credentials.from_service_account_info(info)
        return bigquery.Client(
            project=settings.project_id or info.get("project_id"),
            credentials=credentials,
        )
    return bigquery.Client(project=settings.project_id)


class BigQueryClient:
    """``WarehouseClient`` backed by the BigQuery API."""

    def __init__(
        self,
        client: Optional[bigquery.Client] = None,
        settings: Optional[Settings] = None,
    ):
        self._settings = settings or get_settings()
        self._client = client

    @property
    def client(self) -> bigquery.Client:
        if self._client is None:
            self._client = build_bigquery_client(self._settings)
            logger.info("bigquery.client.initialized", project_id=self.project_id)
        return self._client

    @property
    def project_id(self) -> str:
        """Configured test project, or the project embedded in the client."""
        return self._settings.project_id or self.client.project

    def _ref(self, *parts: str) -> str:
        return ".".join((self.project_id, *parts))

    def create_dataset(self, dataset_id: str) -> None:
        dataset = bigquery.Dataset(self._ref(dataset_id))
        if self._settings.location:
            dataset.location = self._settings.location
        self.client.create_dataset(dataset)
        logger.info(
            "bigquery.dataset.created", project_id=self.project_id, dataset_id=dataset_id
        )

    def delete_dataset(self, dataset_id: str) -> None:
        if not dataset_id:
            raise ValueError("dataset_id must be a non-empty string")
        self.client.delete_dataset(
            self._ref(dataset_id), delete_contents=True, not_found_ok=True
        )
        logger.info(
            "bigquery.dataset.deleted", project_id=self.project_id, dataset_id=dataset_id
        )

    def list_datasets(self) -> List[str]:
        return [
            item.dataset_id for item in self.client.list_datasets(project=self.project_id)
        ]

    def create_table(
        self, dataset_id: str, table_id: str, schema: Sequence[bigquery.SchemaField]
    ) -> None:
        table = bigquery.Table(self._ref(dataset_id, table_id), schema=list(schema))
        self.client.create_table(table)
        logger.info(
            "bigquery.table.created",
            project_id=self.project_id,
            dataset_id=dataset_id,
            table_id=table_id,
            columns=[f.name for f in schema],
        )

    def delete_table(self, dataset_id: str, table_id: str) -> None:
        self.client.delete_table(self._ref(dataset_id, table_id), not_found_ok=True)
        logger.info(
            "bigquery.table.deleted",
            project_id=self.project_id,
            dataset_id=dataset_id,
            table_id=table_id,
        )

    def list_tables(self, dataset_id: str) -> List[str]:
        return [item.table_id for item in self.client.list_tables(self._ref(dataset_id))]

    def insert_rows(self, request: InsertRequest) -> List[Dict[str, Any]]:
        """Stream one batch; returns BigQuery's per-row errors (empty on success)."""
        errors = self.client.insert_rows_json(
            self._ref(request.dataset_id, request.table_id),
            request.rows,
            row_ids=request.row_ids,
        )
        return [dict(e) for e in errors]

    def execute(self, sql: str) -> List[Tuple[Any, ...]]:
        """Run a SQL statement and wait for it, returning result rows as tuples."""
        logger.info("bigquery.execute", sql=sql)
        result = self.client.query(sql).result()
        return [tuple(row.values()) for row in result]

    def table_row_count(self, dataset_id: str, table_id: str) -> int:
        rows = self.execute(build_row_count_sql(self.project_id, dataset_id, table_id))
        return int(rows[0][0])
