"""Configuration management for bq-test-data.

Usage:
    >>> from bq_test_data.config import get_settings
    >>> settings = get_settings()
    >>> settings.load_timeout_seconds
    120.0
"""

from bq_test_data.config.settings import MAX_ROWS_PER_REQUEST, Settings, get_settings

__all__ = [
    "MAX_ROWS_PER_REQUEST",
    "Settings",
    "get_settings",
]
