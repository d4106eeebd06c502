"""Shared utilities."""

from bq_test_data.utils.logging import bind_context, get_logger, sanitize_for_logging

__all__ = [
    "bind_context",
    "get_logger",
    "sanitize_for_logging",
]
