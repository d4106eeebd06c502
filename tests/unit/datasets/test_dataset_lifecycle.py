"""Unit tests for the dataset lifecycle manager."""

import pytest
from google.api_core.exceptions import Forbidden

from bq_test_data.config import Settings
from bq_test_data.exceptions import LoadTimeoutError, UnsupportedTypeError
from bq_test_data.io.datasets.lifecycle import DatasetLifecycleManager
from bq_test_data.io.datasets.naming import DatasetTimestamp
from bq_test_data.io.loader.table_loader import TableLoader
from bq_test_data.schema import DatabaseDefinition, FieldDefinition, TableDefinition
from tests.conftest import FIXED_EPOCH_SECONDS
from tests.fixtures.fake_bigquery import FakeBigQueryClient

NOW_MS = int(FIXED_EPOCH_SECONDS * 1000)
HOUR_MS = 60 * 60 * 1000
DATASET = f"v4_test_data__transient_{NOW_MS}"


def _manager(client, fixed_timestamp, fake_sleep, **overrides):
    values = {"load_timeout_seconds": 2, "poll_interval_seconds": 1}
    values.update(overrides)
    settings = Settings(_env_file=None, **values)
    return DatasetLifecycleManager(
        client,
        timestamp=fixed_timestamp,
        settings=settings,
        table_loader=TableLoader(client, settings, sleep=fake_sleep),
        clock=lambda: FIXED_EPOCH_SECONDS,
    )


@pytest.fixture
def manager(fake_client, fixed_timestamp, fake_sleep):
    return _manager(fake_client, fixed_timestamp, fake_sleep)


@pytest.mark.unit
def test_dataset_id_uses_run_timestamp(manager):
    assert manager.dataset_id("test-data") == DATASET


@pytest.mark.unit
def test_create_list_destroy(manager, fake_client):
    manager.create("ds_a")
    manager.create("ds_b")
    assert manager.list_all() == ["ds_a", "ds_b"]

    manager.destroy("ds_a")
    assert manager.list_all() == ["ds_b"]


@pytest.mark.unit
def test_is_stale_defaults_to_clock(manager):
    assert manager.is_stale(f"v4_db__transient_{NOW_MS - 3 * HOUR_MS}")
    assert not manager.is_stale(f"v4_db__transient_{NOW_MS - HOUR_MS}")
    assert manager.is_stale("v4_db__transient_1", now_millis=2 * HOUR_MS + 2)


@pytest.mark.unit
def test_sweep_destroys_only_stale_transient_datasets(manager, fake_client):
    old = f"v4_old__transient_{NOW_MS - 3 * HOUR_MS}"
    recent = f"v4_recent__transient_{NOW_MS - HOUR_MS}"
    fake_client.add_dataset(old, ["venues"])
    fake_client.add_dataset(recent)
    fake_client.add_dataset("analytics_prod")

    destroyed = manager.sweep_stale()

    assert destroyed == [old]
    assert sorted(fake_client.datasets) == ["analytics_prod", recent]


@pytest.mark.unit
def test_sweep_ignores_failures(manager, fake_client):
    first = f"v4_a__transient_{NOW_MS - 3 * HOUR_MS}"
    second = f"v4_b__transient_{NOW_MS - 4 * HOUR_MS}"
    fake_client.add_dataset(first)
    fake_client.add_dataset(second)
    fake_client.fail("delete_dataset", Forbidden("no permission"))

    destroyed = manager.sweep_stale()

    assert destroyed == [second]
    assert list(fake_client.datasets) == [first]


@pytest.mark.unit
def test_sweep_ignores_listing_failure(manager, fake_client):
    fake_client.fail("list_datasets", Forbidden("no permission"))

    assert manager.sweep_stale() == []


@pytest.mark.unit
def test_create_database_loads_every_table(manager, fake_client, venues_table):
    birds = TableDefinition(
        "birds", [FieldDefinition("species", "type/Text")], [["Toucan"]]
    )

    results = manager.create_database(
        DatabaseDefinition("test-data", [venues_table, birds])
    )

    assert [r.table_id for r in results] == ["venues", "birds"]
    assert all(r.success for r in results)
    assert sorted(fake_client.datasets[DATASET]) == ["birds", "venues"]


@pytest.mark.unit
def test_create_database_sweeps_before_creating(manager, fake_client, venues_table):
    old = f"v4_old__transient_{NOW_MS - 3 * HOUR_MS}"
    fake_client.add_dataset(old)

    manager.create_database(DatabaseDefinition("test-data", [venues_table]))

    names = [name for name, _ in fake_client.calls]
    assert names.index("list_datasets") < names.index("create_dataset")
    assert old not in fake_client.datasets


@pytest.mark.unit
def test_create_database_validates_before_any_remote_call(manager, fake_client):
    table = TableDefinition("t", [FieldDefinition("oid", "type/MongoBSONID")], [["x"]])

    with pytest.raises(UnsupportedTypeError):
        manager.create_database(DatabaseDefinition("test-data", [table]))

    assert fake_client.calls == []


@pytest.mark.unit
def test_create_database_retries_whole_dataset(
    fake_client, fixed_timestamp, fake_sleep, venues_table
):
    manager = _manager(
        fake_client,
        fixed_timestamp,
        fake_sleep,
        table_load_attempts=1,
        dataset_load_attempts=3,
    )
    fake_client.insert_errors.extend(
        [[{"index": 0, "errors": [{"reason": "backendError"}]}]] * 2
    )

    results = manager.create_database(DatabaseDefinition("test-data", [venues_table]))

    assert results[0].success
    assert len(fake_client.method_calls("create_dataset")) == 3
    assert len(fake_client.method_calls("delete_dataset")) == 3


@pytest.mark.unit
def test_create_database_gives_up_after_dataset_attempts(
    fixed_timestamp, fake_sleep, venues_table
):
    client = FakeBigQueryClient(visibility_delay_polls=1000)
    manager = _manager(
        client,
        fixed_timestamp,
        fake_sleep,
        table_load_attempts=2,
        dataset_load_attempts=3,
    )

    with pytest.raises(LoadTimeoutError):
        manager.create_database(DatabaseDefinition("test-data", [venues_table]))

    assert len(client.method_calls("create_dataset")) == 3
    assert len(client.method_calls("create_table")) == 6


@pytest.mark.unit
def test_destroy_database(manager, fake_client):
    fake_client.add_dataset(DATASET, ["venues"])

    manager.destroy_database("test-data")

    assert DATASET not in fake_client.datasets


@pytest.mark.unit
def test_shared_timestamp_refreshes_with_configured_staleness(fake_client):
    now = [FIXED_EPOCH_SECONDS]
    shared = DatasetTimestamp(clock=lambda: now[0])
    manager = DatasetLifecycleManager(
        fake_client,
        timestamp=shared,
        settings=Settings(_env_file=None, staleness_hours=1),
        clock=lambda: now[0],
    )
    first = manager.dataset_id("test-data")

    now[0] += 90 * 60
    second = manager.dataset_id("test-data")

    assert manager.is_stale(first)
    assert not manager.is_stale(second)
    assert second == f"v4_test_data__transient_{NOW_MS + 90 * 60 * 1000}"
