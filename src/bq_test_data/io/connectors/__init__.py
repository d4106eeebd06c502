from .bigquery_client import BigQueryClient, WarehouseClient, build_bigquery_client

__all__ = ["BigQueryClient", "WarehouseClient", "build_bigquery_client"]
