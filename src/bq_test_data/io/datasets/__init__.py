"""Transient dataset naming and lifecycle."""

from .lifecycle import DatasetLifecycleManager
from .naming import (
    DatasetTimestamp,
    is_stale,
    parse_transient_timestamp,
    transient_dataset_id,
)

__all__ = [
    "DatasetLifecycleManager",
    "DatasetTimestamp",
    "is_stale",
    "parse_transient_timestamp",
    "transient_dataset_id",
]
