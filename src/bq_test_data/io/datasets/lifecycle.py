"""
Dataset lifecycle for fixture databases.

Each logical test database maps to one transient BigQuery dataset. Creating a
database first sweeps datasets abandoned by earlier runs, then builds the
dataset and loads every table, retrying the whole thing from a destroyed
dataset when a table load gives up.
"""

from __future__ import annotations

import time
from datetime import timedelta
from typing import TYPE_CHECKING, Callable, List, Optional

from bq_test_data.config import Settings, get_settings
from bq_test_data.io.datasets.naming import DatasetTimestamp
from bq_test_data.io.datasets.naming import is_stale as _is_stale
from bq_test_data.io.datasets.naming import transient_dataset_id
from bq_test_data.io.loader.models import LoadResult
from bq_test_data.io.loader.retry import retry_with_reset, run_best_effort
from bq_test_data.io.loader.table_loader import TableLoader
from bq_test_data.schema.core import DatabaseDefinition
from bq_test_data.utils.logging import get_logger

if TYPE_CHECKING:
    from bq_test_data.io.connectors.bigquery_client import WarehouseClient

logger = get_logger(__name__)


class DatasetLifecycleManager:
    """Creates, loads, sweeps and destroys transient test datasets."""

    def __init__(
        self,
        client: WarehouseClient,
        timestamp: Optional[DatasetTimestamp] = None,
        settings: Optional[Settings] = None,
        table_loader: Optional[TableLoader] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._settings = settings or get_settings()
        self._client = client
        self._clock = clock
        self.staleness = timedelta(hours=self._settings.staleness_hours)
        self.timestamp = timestamp or DatasetTimestamp(
            clock=clock, staleness=self.staleness
        )
        self.table_loader = table_loader or TableLoader(client, self._settings)
        self.max_attempts = self._settings.dataset_load_attempts

    def dataset_id(self, database_name: str) -> str:
        """Dataset id of ``database_name`` for the current run."""
        return transient_dataset_id(
            database_name,
            self.timestamp,
            self._settings.dataset_prefix,
            staleness=self.staleness,
        )

    def create(self, dataset_id: str) -> None:
        self._client.create_dataset(dataset_id)
        logger.info("dataset.created", dataset_id=dataset_id)

    def destroy(self, dataset_id: str) -> None:
        """Delete a dataset and every table in it."""
        self._client.delete_dataset(dataset_id)
        logger.info("dataset.destroyed", dataset_id=dataset_id)

    def list_all(self) -> List[str]:
        return list(self._client.list_datasets())

    def is_stale(self, dataset_id: str, now_millis: Optional[int] = None) -> bool:
        if now_millis is None:
            now_millis = int(self._clock() * 1000)
        return _is_stale(dataset_id, now_millis, self.staleness)

    def sweep_stale(self, now_millis: Optional[int] = None) -> List[str]:
        """
        Destroy transient datasets older than the staleness window.

        Failures (listing or deleting) are logged and ignored.

        Returns:
            Ids of the datasets that were destroyed
        """
        if now_millis is None:
            now_millis = int(self._clock() * 1000)
        try:
            dataset_ids = self.list_all()
        except Exception as e:
            logger.warning("dataset.sweep_list_failed", error=str(e))
            return []

        stale = [d for d in dataset_ids if self.is_stale(d, now_millis)]
        destroyed = [
            d
            for d in stale
            if run_best_effort(
                self.destroy, d, event="dataset.sweep_destroy_failed", dataset_id=d
            )
        ]
        if stale:
            logger.info(
                "dataset.sweep_completed", stale=len(stale), destroyed=len(destroyed)
            )
        return destroyed

    def create_database(self, database_def: DatabaseDefinition) -> List[LoadResult]:
        """
        Create the dataset for ``database_def`` and load all of its tables.

        The dataset is destroyed before every attempt, so a retried attempt
        starts from an empty dataset.

        Returns:
            One LoadResult per table, in definition order

        Raises:
            UnsupportedTypeError, InvalidIdentifierError: Before any remote call
            The last table-load error once dataset-level attempts are exhausted
        """
        dataset_id = self.dataset_id(database_def.database_name)
        for table_def in database_def.table_definitions:
            self.table_loader.plan(dataset_id, table_def)

        self.sweep_stale()

        def attempt() -> List[LoadResult]:
            self.create(dataset_id)
            return [
                self.table_loader.load(dataset_id, table_def)
                for table_def in database_def.table_definitions
            ]

        results = retry_with_reset(
            attempt,
            attempts=self.max_attempts,
            reset=lambda: self.destroy(dataset_id),
            operation_name=f"create_database:{dataset_id}",
        )
        logger.info(
            "dataset.loaded",
            dataset_id=dataset_id,
            database_name=database_def.database_name,
            tables=[r.table_id for r in results],
        )
        return results

    def destroy_database(self, database_name: str) -> None:
        self.destroy(self.dataset_id(database_name))
