from typing import Any, Dict, List, Sequence

from bq_test_data.config import MAX_ROWS_PER_REQUEST
from bq_test_data.io.loader.coercion import coerce
from bq_test_data.io.loader.models import InsertRequest
from bq_test_data.schema.core import TableDefinition
from bq_test_data.schema.fields import ID_FIELD_NAME


def prepare_rows(table_def: TableDefinition) -> List[Dict[str, Any]]:
    """
    Convert a table definition's positional rows to insertable row dicts.

    Each row gets a synthetic ``id`` equal to its 1-based position. The ids
    are derived from position, so preparing the same definition twice yields
    the same keys.

    Example:
        >>> prepare_rows(TableDefinition("t", [FieldDefinition("name", "type/Text")],
        ...                              [["a"], ["b"]]))
        [{'name': 'a', 'id': 1}, {'name': 'b', 'id': 2}]
    """
    field_names = table_def.field_names
    prepared = []
    for i, row in enumerate(table_def.rows):
        if len(row) != len(field_names):
            raise ValueError(
                f"Row {i} of {table_def.table_name} has {len(row)} values, "
                f"expected {len(field_names)}"
            )
        row_map = {name: coerce(value) for name, value in zip(field_names, row)}
        row_map[ID_FIELD_NAME] = i + 1
        prepared.append(row_map)
    return prepared


def build_batches(
    dataset_id: str,
    table_id: str,
    rows: Sequence[Dict[str, Any]],
    max_batch_size: int = MAX_ROWS_PER_REQUEST,
) -> List[InsertRequest]:
    """
    Split prepared rows into insert requests of at most ``max_batch_size`` rows.

    Chunks are contiguous and keep the original order. Each row's client row
    key is its ``id``, which BigQuery uses to de-duplicate retried inserts.

    Raises:
        ValueError: For a batch size outside 1..10000 or a row without ``id``
    """
    if not 1 <= max_batch_size <= MAX_ROWS_PER_REQUEST:
        raise ValueError(
            f"max_batch_size must be between 1 and {MAX_ROWS_PER_REQUEST}, "
            f"got {max_batch_size}"
        )

    requests = []
    for start in range(0, len(rows), max_batch_size):
        chunk = list(rows[start : start + max_batch_size])
        row_ids = []
        for offset, row in enumerate(chunk):
            if ID_FIELD_NAME not in row:
                raise ValueError(f"Row {start + offset} is missing '{ID_FIELD_NAME}'")
            row_ids.append(str(row[ID_FIELD_NAME]))
        requests.append(InsertRequest(dataset_id, table_id, chunk, row_ids))
    return requests
