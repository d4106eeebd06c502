"""Pytest configuration for the fixture-loading harness.

.bqtd_env is loaded FIRST with override=True so the BigQuery project used by
the opt-in live suite comes from that file, not from the shell environment.
"""

from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv

_BQTD_ENV_FILE = Path(__file__).parent.parent / ".bqtd_env"
if _BQTD_ENV_FILE.exists():
    load_dotenv(_BQTD_ENV_FILE, override=True)

import os
from typing import Callable, Generator, List

import pytest

from bq_test_data.config import get_settings
from bq_test_data.io.datasets.naming import DatasetTimestamp
from bq_test_data.schema.core import FieldDefinition, TableDefinition
from tests.fixtures.fake_bigquery import FakeBigQueryClient

BIGQUERY_OPTION = "run_bigquery_tests"
BIGQUERY_MARK = "bigquery_suite"
BIGQUERY_ENV = "RUN_BIGQUERY_TESTS"

# 2023-11-14T22:13:20Z
FIXED_EPOCH_SECONDS = 1_700_000_000.0


def _env_enabled(name: str) -> bool:
    """Return True when the opt-in environment flag is set to '1'."""
    return os.getenv(name) == "1"


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register the CLI flag mirroring RUN_BIGQUERY_TESTS."""
    parser.addoption(
        "--run-bigquery-tests",
        action="store_true",
        dest=BIGQUERY_OPTION,
        default=_env_enabled(BIGQUERY_ENV),
        help="Run the live BigQuery suite "
        "(set RUN_BIGQUERY_TESTS=1 or pass --run-bigquery-tests).",
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: List[pytest.Item]
) -> None:
    """Skip the live suite unless its flag is enabled."""
    if config.getoption(BIGQUERY_OPTION):
        return
    skip_bigquery = pytest.mark.skip(
        reason="Set RUN_BIGQUERY_TESTS=1 or pass --run-bigquery-tests to run "
        "against a real BigQuery project."
    )
    for item in items:
        if BIGQUERY_MARK in item.keywords:
            item.add_marker(skip_bigquery)


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_client() -> FakeBigQueryClient:
    return FakeBigQueryClient()


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps: List[float]) -> Callable[[float], None]:
    """Replacement for time.sleep recording requested delays."""
    return sleeps.append


@pytest.fixture
def fixed_timestamp() -> DatasetTimestamp:
    return DatasetTimestamp(clock=lambda: FIXED_EPOCH_SECONDS)


@pytest.fixture
def venues_table() -> TableDefinition:
    return TableDefinition(
        table_name="venues",
        field_definitions=[FieldDefinition("name", "type/Text")],
        rows=[["Red Medicine"], ["Stout Burgers & Beers"]],
    )
