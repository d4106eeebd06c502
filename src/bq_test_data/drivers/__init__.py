"""
Test-framework driver extensions.

Importing this package registers the BigQuery extension under
``"bigquery-cloud-sdk"``.
"""

from .bigquery import DRIVER_ID, BigQueryTestExtension
from .registry import get_driver, list_drivers, register_driver, unregister_driver

__all__ = [
    "DRIVER_ID",
    "BigQueryTestExtension",
    "get_driver",
    "list_drivers",
    "register_driver",
    "unregister_driver",
]
