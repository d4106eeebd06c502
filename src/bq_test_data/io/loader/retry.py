"""Bounded retry with a clean-slate reset before every attempt.

Used twice: table loads reset by deleting the table, dataset loads reset by
destroying the dataset. Resets are best-effort; a failing reset is logged and
the attempt proceeds anyway.
"""

from typing import Any, Callable, Optional, TypeVar

from bq_test_data.exceptions import is_retryable
from bq_test_data.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def run_best_effort(
    func: Callable[..., Any], *args: Any, event: str, **context: Any
) -> bool:
    """
    Call ``func`` and swallow any exception it raises.

    Args:
        func: Cleanup callable
        *args: Positional arguments for ``func``
        event: Log event name used when the call fails
        **context: Extra fields for the warning log entry

    Returns:
        True if ``func`` completed, False if it raised
    """
    try:
        func(*args)
        return True
    except Exception as e:
        logger.warning(event, error=str(e), error_type=type(e).__name__, **context)
        return False


def retry_with_reset(
    operation: Callable[[], T],
    attempts: int,
    reset: Optional[Callable[[], Any]] = None,
    should_retry: Callable[[BaseException], bool] = is_retryable,
    operation_name: Optional[str] = None,
) -> T:
    """
    Run ``operation`` up to ``attempts`` times, resetting state before each try.

    Args:
        operation: Zero-argument callable performing one full attempt
        attempts: Maximum number of attempts (>= 1)
        reset: Best-effort cleanup run before every attempt
        should_retry: Predicate deciding whether a failure may be retried
        operation_name: Name used in log entries

    Returns:
        The result of the first successful attempt

    Raises:
        The last error, unchanged, once attempts are exhausted or the error is
        not retryable
    """
    if attempts < 1:
        raise ValueError(f"attempts must be >= 1, got {attempts}")

    name = operation_name or getattr(operation, "__name__", "operation")
    for attempt in range(1, attempts + 1):
        if reset is not None:
            run_best_effort(reset, event="retry.reset_failed", operation=name)
        try:
            return operation()
        except Exception as e:
            if not should_retry(e) or attempt >= attempts:
                logger.error(
                    "retry.gave_up",
                    operation=name,
                    attempt=attempt,
                    max_attempts=attempts,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise
            logger.warning(
                "retry.attempt_failed",
                operation=name,
                attempt=attempt,
                max_attempts=attempts,
                error=str(e),
                error_type=type(e).__name__,
            )
    raise AssertionError("unreachable")  # pragma: no cover
