"""Transient dataset identity.

Every dataset created by a test run is named
``<prefix>_<normalized database name>__transient_<epoch millis>``. The epoch
suffix identifies the run: concurrent test processes pick different
timestamps, and the sweep of abandoned datasets needs nothing but the name
to decide whether a dataset is stale.

Examples:
    >>> ts = DatasetTimestamp(clock=lambda: 1700000000.0)
    >>> transient_dataset_id("test-data", ts)
    'v4_test_data__transient_1700000000000'
    >>> parse_transient_timestamp("v4_test_data__transient_1700000000000")
    1700000000000
"""

from __future__ import annotations

import re
import threading
import time
from datetime import timedelta
from typing import Callable, Optional

from bq_test_data.schema.fields import normalize_name, validate_identifier

TRANSIENT_SUFFIX = "__transient_"
DEFAULT_STALENESS = timedelta(hours=2)

_TRANSIENT_PATTERN = re.compile(r".*__transient_(\d+)$")


def _now_millis(clock: Callable[[], float]) -> int:
    return int(clock() * 1000)


class DatasetTimestamp:
    """
    Creation timestamp shared by all datasets of one test run.

    Fixed on first use and refreshed once it is older than the staleness
    window, so a long-running process never keeps writing into a dataset
    that other runs already consider abandoned. Access is guarded by a lock.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        staleness: timedelta = DEFAULT_STALENESS,
    ):
        self._clock = clock
        self._staleness_ms = int(staleness.total_seconds() * 1000)
        self._lock = threading.Lock()
        self._millis: Optional[int] = None

    def current(self, staleness: Optional[timedelta] = None) -> int:
        """
        Timestamp in epoch milliseconds, refreshed if it has gone stale.

        ``staleness`` overrides the window given at construction.
        """
        window_ms = self._staleness_ms
        if staleness is not None:
            window_ms = int(staleness.total_seconds() * 1000)
        with self._lock:
            now = _now_millis(self._clock)
            if self._millis is None or now - self._millis > window_ms:
                self._millis = now
            return self._millis

    def refresh(self) -> int:
        """Force a new timestamp."""
        with self._lock:
            self._millis = _now_millis(self._clock)
            return self._millis


def transient_dataset_id(
    database_name: str,
    timestamp: DatasetTimestamp,
    prefix: str = "v4",
    staleness: Optional[timedelta] = None,
) -> str:
    """
    Dataset id for a logical test database in the current run.

    Raises:
        InvalidIdentifierError: If the resulting id is not a valid dataset id
    """
    dataset_id = (
        f"{prefix}_{normalize_name(database_name)}{TRANSIENT_SUFFIX}"
        f"{timestamp.current(staleness)}"
    )
    return validate_identifier(dataset_id, "dataset")


def parse_transient_timestamp(dataset_id: str) -> Optional[int]:
    """Epoch millis embedded in a transient dataset id, or None."""
    match = _TRANSIENT_PATTERN.match(dataset_id)
    if not match:
        return None
    return int(match.group(1))


def is_stale(
    dataset_id: str,
    now_millis: int,
    staleness: timedelta = DEFAULT_STALENESS,
) -> bool:
    """
    True if ``dataset_id`` is a transient dataset older than ``staleness``.

    Datasets without a transient suffix are never stale.
    """
    created = parse_transient_timestamp(dataset_id)
    if created is None:
        return False
    return now_millis - created > staleness.total_seconds() * 1000


__all__ = [
    "DEFAULT_STALENESS",
    "TRANSIENT_SUFFIX",
    "DatasetTimestamp",
    "is_stale",
    "parse_transient_timestamp",
    "transient_dataset_id",
]
