"""Warehouse I/O: the BigQuery connector, table loading and dataset lifecycle."""
