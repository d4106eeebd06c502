"""
bq-test-data - BigQuery test dataset harness.

Provisions transient BigQuery datasets for a test run, loads fixture tables
into them, waits for the rows to become visible, and sweeps datasets left
behind by earlier runs.
"""

__version__ = "0.1.0"
