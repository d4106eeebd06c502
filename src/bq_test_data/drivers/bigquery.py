"""
BigQuery test-data extension.

Lifecycle hooks the test framework calls for the ``"bigquery-cloud-sdk"``
driver: create and destroy fixture databases, qualify and format names, and
run view DDL inside a fixture dataset.

Usage:
    >>> from bq_test_data.drivers import get_driver
    >>> driver = get_driver("bigquery-cloud-sdk")
    >>> driver.create_database("test-data", [venues_table])
    >>> driver.qualify_name("test-data", "venues")
    ('v4_test_data__transient_1700000000000', 'venues')
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from bq_test_data.config import Settings, get_settings
from bq_test_data.drivers.registry import register_driver
from bq_test_data.io.connectors.bigquery_client import BigQueryClient, WarehouseClient
from bq_test_data.io.datasets.lifecycle import DatasetLifecycleManager
from bq_test_data.io.datasets.naming import DatasetTimestamp
from bq_test_data.io.loader.models import LoadResult
from bq_test_data.io.loader.sql_utils import build_create_view_sql, build_drop_view_sql
from bq_test_data.schema.core import DatabaseDefinition, FieldDefinition, TableDefinition
from bq_test_data.schema.fields import normalize_name
from bq_test_data.utils.logging import get_logger

logger = get_logger(__name__)

DRIVER_ID = "bigquery-cloud-sdk"

# Shared by every extension in the process so all fixture datasets of a run
# carry the same timestamp.
RUN_TIMESTAMP = DatasetTimestamp()

_INTEGER_AGGREGATIONS = frozenset({"count", "cum-count"})
_FLOAT_AGGREGATIONS = frozenset({"avg", "stddev"})


class BigQueryTestExtension:
    """Test-framework hooks backed by transient BigQuery datasets."""

    def __init__(
        self,
        client: Optional[WarehouseClient] = None,
        settings: Optional[Settings] = None,
        lifecycle: Optional[DatasetLifecycleManager] = None,
    ):
        self._settings = settings or get_settings()
        self.client = client or BigQueryClient(settings=self._settings)
        self.lifecycle = lifecycle or DatasetLifecycleManager(
            self.client, timestamp=RUN_TIMESTAMP, settings=self._settings
        )

    @property
    def project_id(self) -> str:
        return self.client.project_id

    def dataset_id(self, database_name: str) -> str:
        return self.lifecycle.dataset_id(database_name)

    def create_database(
        self, database_name: str, table_definitions: Sequence[TableDefinition]
    ) -> List[LoadResult]:
        """Create the fixture dataset for ``database_name`` and load its tables."""
        database_def = DatabaseDefinition(database_name, list(table_definitions))
        try:
            results = self.lifecycle.create_database(database_def)
        except Exception as e:
            logger.error(
                "driver.create_database_failed",
                database_name=database_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise
        logger.info(
            "driver.database_created",
            database_name=database_name,
            dataset_id=results[0].dataset_id if results else None,
            tables=len(results),
        )
        return results

    def destroy_database(self, database_name: str) -> None:
        self.lifecycle.destroy_database(database_name)

    def qualify_name(
        self,
        database_name: str,
        table_name: Optional[str] = None,
        field_name: Optional[str] = None,
    ) -> Tuple[str, ...]:
        """
        Dataset-qualified name components.

        Examples:
            >>> driver.qualify_name("test-data")
            ('v4_test_data__transient_1700000000000',)
            >>> driver.qualify_name("test-data", "venues", "name")
            ('v4_test_data__transient_1700000000000', 'venues', 'name')
        """
        if field_name is not None and table_name is None:
            raise ValueError("field_name requires table_name")
        parts = [self.dataset_id(database_name)]
        if table_name is not None:
            parts.append(table_name)
        if field_name is not None:
            parts.append(field_name)
        return tuple(parts)

    def format_identifier(self, name: str) -> str:
        return normalize_name(name)

    def connection_details(self, database_name: str) -> Dict[str, Any]:
        """
        Connection details that restrict the tested database to its dataset.
        """
        details: Dict[str, Any] = {
            "project_id": self._settings.project_id,
            "service_account_json": self._settings.service_account_json,
            "location": self._settings.location,
        }
        details = {k: v for k, v in details.items() if v is not None}
        details.update(
            dataset_filters_type="inclusion",
            dataset_filters_patterns=self.dataset_id(database_name),
            include_user_id_and_hash=True,
        )
        return details

    def execute(self, sql: str) -> List[Tuple[Any, ...]]:
        return self.client.execute(sql)

    def create_view_of_table(
        self,
        database_name: str,
        view_name: str,
        table_name: str,
        materialized: bool = False,
    ) -> None:
        sql = build_create_view_sql(
            self.project_id,
            self.dataset_id(database_name),
            normalize_name(view_name),
            normalize_name(table_name),
            materialized=materialized,
        )
        self.execute(sql)

    def drop_view(
        self, database_name: str, view_name: str, materialized: bool = False
    ) -> None:
        sql = build_drop_view_sql(
            self.project_id,
            self.dataset_id(database_name),
            normalize_name(view_name),
            materialized=materialized,
        )
        self.execute(sql)

    def aggregate_column_info(
        self, aggregation_type: str, field: Optional[FieldDefinition] = None
    ) -> Dict[str, Any]:
        """
        Column metadata overrides for an aggregation.

        Only ``base_type`` is reported; the caller merges it into its default
        column info. BigQuery returns counts as INT64 and averages or standard
        deviations as FLOAT64 regardless of the input column type.
        """
        info: Dict[str, Any] = {}
        if field is not None:
            info["base_type"] = field.base_type
            if aggregation_type in _FLOAT_AGGREGATIONS:
                info["base_type"] = "type/Float"
        if aggregation_type in _INTEGER_AGGREGATIONS:
            info["base_type"] = "type/Integer"
        return info


register_driver(DRIVER_ID, BigQueryTestExtension)


__all__ = ["DRIVER_ID", "RUN_TIMESTAMP", "BigQueryTestExtension"]
