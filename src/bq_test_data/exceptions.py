"""Error taxonomy for fixture loading.

Schema errors (unsupported types, bad identifiers) are fatal and raised before
any remote call. Load errors (rejected rows, row counts that never converge)
are retryable and drive the table-level and dataset-level retry loops.
"""

from typing import Any, Dict, List, Optional, Sequence


class BigQueryTestDataError(Exception):
    """Base class for all harness errors."""

    retryable: bool = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if not self.details:
            return self.message
        detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} ({detail_str})"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to structured dict for logging."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "retryable": self.retryable,
            **self.details,
        }


class UnsupportedTypeError(BigQueryTestDataError):
    """Raised when a base type has no BigQuery mapping anywhere in its ancestry."""

    def __init__(self, base_type: str):
        super().__init__(
            f"Don't know what BigQuery type to use for base type: {base_type}",
            {"base_type": base_type},
        )
        self.base_type = base_type


class InvalidIdentifierError(BigQueryTestDataError):
    """Raised when a dataset, table or field name violates BigQuery's grammar."""

    def __init__(self, identifier: str, kind: str, rule: str):
        super().__init__(
            f"Invalid {kind} name {identifier!r}: {rule}",
            {"identifier": identifier, "kind": kind},
        )
        self.identifier = identifier
        self.kind = kind


class TableCreationError(BigQueryTestDataError):
    """Raised when a newly created table is not listed in its dataset."""

    retryable = True

    def __init__(self, dataset_id: str, table_id: str):
        super().__init__(
            f"Table `{dataset_id}.{table_id}` was not found after creation",
            {"dataset": dataset_id, "table": table_id},
        )


class InsertError(BigQueryTestDataError):
    """Raised when BigQuery rejects one or more rows of an insert request."""

    retryable = True

    def __init__(
        self,
        dataset_id: str,
        table_id: str,
        errors: Sequence[Dict[str, Any]],
        rows: Sequence[Dict[str, Any]],
    ):
        self.dataset_id = dataset_id
        self.table_id = table_id
        self.errors: List[Dict[str, Any]] = list(errors)
        self.rows: List[Dict[str, Any]] = list(rows)
        super().__init__(
            "Error inserting rows",
            {
                "dataset": dataset_id,
                "table": table_id,
                "error_count": len(self.errors),
            },
        )

    @property
    def offending_rows(self) -> List[Dict[str, Any]]:
        """Rows referenced by the per-row errors, in error order."""
        offending = []
        for error in self.errors:
            index = error.get("index")
            if isinstance(index, int) and 0 <= index < len(self.rows):
                offending.append(self.rows[index])
        return offending


class LoadTimeoutError(BigQueryTestDataError):
    """Raised when the table row count never reaches the expected count."""

    retryable = True

    def __init__(
        self,
        qualified_table: str,
        expected: int,
        actual: Optional[int],
        waited_seconds: float,
    ):
        self.qualified_table = qualified_table
        self.expected = expected
        self.actual = actual
        self.waited_seconds = waited_seconds
        super().__init__(
            f"Failed to load table data for `{qualified_table}`: "
            f"expected {expected} rows, loaded {actual}",
            {
                "table": qualified_table,
                "expected": expected,
                "actual": actual,
                "waited_seconds": waited_seconds,
            },
        )


def is_retryable(exc: BaseException) -> bool:
    """Decide whether a failed load attempt may be retried.

    Harness errors carry their own flag. ValueError and TypeError signal a bad
    fixture definition and are never retried; any other exception (API
    errors, network failures) is.
    """
    if isinstance(exc, BigQueryTestDataError):
        return exc.retryable
    if isinstance(exc, (ValueError, TypeError)):
        return False
    return isinstance(exc, Exception)


__all__ = [
    "BigQueryTestDataError",
    "UnsupportedTypeError",
    "InvalidIdentifierError",
    "TableCreationError",
    "InsertError",
    "LoadTimeoutError",
    "is_retryable",
]
