from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class LoadState(str, Enum):
    """Stages of a single table load attempt."""

    CREATING = "creating"
    INSERTING = "inserting"
    POLLING = "polling"
    DONE = "done"
    FAILED = "failed"


@dataclass
class InsertRequest:
    """One insertAll call: rows for a single table plus their client row keys."""

    dataset_id: str
    table_id: str
    rows: List[Dict[str, Any]]
    row_ids: List[str]

    def __len__(self) -> int:
        return len(self.rows)


@dataclass
class LoadResult:
    """Outcome of loading one fixture table."""

    dataset_id: str
    table_id: str
    state: LoadState
    expected_rows: int
    loaded_rows: Optional[int] = None
    attempts: int = 0
    batches: int = 0
    duration_ms: float = 0.0
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state is LoadState.DONE
