"""Unit tests for the BigQuery connector against a mocked google client."""

import json
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from google.auth.credentials import AnonymousCredentials
from google.cloud import bigquery

from bq_test_data.config import Settings
from bq_test_data.io.connectors import bigquery_client as connector
from bq_test_data.io.connectors.bigquery_client import (
    BigQueryClient,
    WarehouseClient,
    build_bigquery_client,
)
from bq_test_data.io.loader.insert_builder import build_batches, prepare_rows
from bq_test_data.io.loader.models import InsertRequest
from bq_test_data.schema import FieldDefinition, TableDefinition
from tests.fixtures.fake_bigquery import FakeBigQueryClient


@pytest.fixture
def gclient():
    mock = MagicMock(spec=bigquery.Client)
    mock.project = "client-project"
    return mock


def _client(gclient, **settings):
    return BigQueryClient(client=gclient, settings=Settings(_env_file=None, **settings))


@pytest.mark.unit
def test_project_id_prefers_setting_over_client_project(gclient):
    assert _client(gclient, project_id=None).project_id == "client-project"
    assert _client(gclient, project_id="test-project").project_id == "test-project"


@pytest.mark.unit
def test_create_dataset_uses_location(gclient):
    _client(gclient, project_id="p", location="EU").create_dataset("ds")

    dataset = gclient.create_dataset.call_args.args[0]
    assert dataset.project == "p"
    assert dataset.dataset_id == "ds"
    assert dataset.location == "EU"


@pytest.mark.unit
def test_delete_dataset_cascades_and_ignores_missing(gclient):
    _client(gclient, project_id="p").delete_dataset("ds")

    gclient.delete_dataset.assert_called_once_with(
        "p.ds", delete_contents=True, not_found_ok=True
    )


@pytest.mark.unit
def test_delete_dataset_requires_id(gclient):
    with pytest.raises(ValueError):
        _client(gclient, project_id="p").delete_dataset("")


@pytest.mark.unit
def test_list_datasets_and_tables_return_ids(gclient):
    gclient.list_datasets.return_value = [MagicMock(dataset_id="a"), MagicMock(dataset_id="b")]
    gclient.list_tables.return_value = [MagicMock(table_id="venues")]
    client = _client(gclient, project_id="p")

    assert client.list_datasets() == ["a", "b"]
    assert client.list_tables("ds") == ["venues"]
    gclient.list_datasets.assert_called_once_with(project="p")
    gclient.list_tables.assert_called_once_with("p.ds")


@pytest.mark.unit
def test_create_table_passes_schema(gclient):
    schema = [bigquery.SchemaField("id", "INTEGER"), bigquery.SchemaField("name", "STRING")]

    _client(gclient, project_id="p").create_table("ds", "venues", schema)

    table = gclient.create_table.call_args.args[0]
    assert table.reference.path == "/projects/p/datasets/ds/tables/venues"
    assert [f.name for f in table.schema] == ["id", "name"]


@pytest.mark.unit
def test_insert_rows_sends_row_ids_and_returns_errors(gclient):
    gclient.insert_rows_json.return_value = [{"index": 0, "errors": [{"reason": "invalid"}]}]
    request = InsertRequest("ds", "venues", [{"id": 1, "name": "x"}], ["1"])

    errors = _client(gclient, project_id="p").insert_rows(request)

    gclient.insert_rows_json.assert_called_once_with(
        "p.ds.venues", [{"id": 1, "name": "x"}], row_ids=["1"]
    )
    assert errors == [{"index": 0, "errors": [{"reason": "invalid"}]}]


@pytest.fixture
def http_session():
    session = MagicMock()
    response = session.request.return_value
    response.status_code = 200
    response.content = b"{}"
    response.json.return_value = {}
    return session


@pytest.mark.unit
def test_insert_rows_serializes_decimal_repeated_and_record_values(http_session):
    gclient = bigquery.Client(
        project="p", credentials=AnonymousCredentials(), _http=http_session
    )
    table = TableDefinition(
        "prices",
        [
            FieldDefinition("price", "type/Decimal"),
            FieldDefinition("days", "type/Array", collection_type="type/Date"),
            FieldDefinition(
                "venue",
                "type/Dictionary",
                nested_fields=(FieldDefinition("opened", "type/DateTimeWithTZ"),),
            ),
        ],
        [
            [
                Decimal("1.50"),
                [date(2023, 1, 1)],
                {"opened": datetime(2023, 1, 1, 10, tzinfo=timezone(timedelta(hours=2)))},
            ]
        ],
    )
    (request,) = build_batches("ds", "prices", prepare_rows(table))

    errors = _client(gclient, project_id="p").insert_rows(request)

    assert errors == []
    body = json.loads(http_session.request.call_args.kwargs["data"])
    assert body["rows"] == [
        {
            "insertId": "1",
            "json": {
                "price": "1.50",
                "days": ["2023-01-01"],
                "venue": {"opened": "2023-01-01 08:00:00"},
                "id": 1,
            },
        }
    ]


@pytest.mark.unit
def test_execute_returns_tuples_and_row_count_uses_count_query(gclient):
    row = MagicMock()
    row.values.return_value = (7,)
    gclient.query.return_value.result.return_value = [row]
    client = _client(gclient, project_id="p")

    assert client.table_row_count("ds", "venues") == 7
    gclient.query.assert_called_once_with("SELECT count(*) FROM `p.ds.venues`")


@pytest.mark.unit
def test_build_client_from_service_account_json(monkeypatch):
    credentials = object()
    from_info = MagicMock(return_value=credentials)
    client_cls = MagicMock()
    monkeypatch.setattr(
        connector.service_account.Credentials, "from_service_account_info", from_info
    )
    monkeypatch.setattr(connector.bigquery, "Client", client_cls)
    info = {"type": "service_account", "project_id": "sa-project"}

    build_bigquery_client(
        Settings(_env_file=None, project_id=None, service_account_json=json.dumps(info))
    )

    from_info.assert_called_once_with(info)
    client_cls.assert_called_once_with(project="sa-project", credentials=credentials)


@pytest.mark.unit
def test_build_client_uses_default_credentials_without_key(monkeypatch):
    client_cls = MagicMock()
    monkeypatch.setattr(connector.bigquery, "Client", client_cls)

    build_bigquery_client(Settings(_env_file=None, project_id="p"))

    client_cls.assert_called_once_with(project="p")


@pytest.mark.unit
def test_clients_satisfy_protocol(gclient):
    assert isinstance(_client(gclient), WarehouseClient)
    assert isinstance(FakeBigQueryClient(), WarehouseClient)
