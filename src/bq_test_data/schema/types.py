"""Base type hierarchy and BigQuery column type resolution.

Fixture fields are typed with abstract base type tags such as ``type/Text``
or ``type/DateTimeWithTZ``. Tags form a directed acyclic graph: a tag may
declare several parents. A tag without a direct BigQuery mapping resolves to
the mapping of its nearest mapped ancestor.

Examples:
    >>> resolve("type/Text")
    'STRING'
    >>> resolve("type/Currency")  # via type/Decimal
    'BIGNUMERIC'
"""

from __future__ import annotations

from collections import deque
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from bq_test_data.exceptions import UnsupportedTypeError

ROOT_TYPE = "type/*"

BIGQUERY_TYPES: Dict[str, str] = {
    "type/BigInteger": "INTEGER",
    "type/Boolean": "BOOLEAN",
    "type/Date": "DATE",
    "type/DateTime": "DATETIME",
    "type/DateTimeWithTZ": "TIMESTAMP",
    "type/Decimal": "BIGNUMERIC",
    "type/Dictionary": "RECORD",
    "type/Float": "FLOAT",
    "type/Integer": "INTEGER",
    "type/Text": "STRING",
    "type/Time": "TIME",
}

# (child, parent) pairs, in declared parent order per child
_DEFAULT_DERIVATIONS: Tuple[Tuple[str, str], ...] = (
    ("type/Number", ROOT_TYPE),
    ("type/Integer", "type/Number"),
    ("type/BigInteger", "type/Integer"),
    ("type/Float", "type/Number"),
    ("type/Decimal", "type/Float"),
    ("type/Currency", "type/Decimal"),
    ("type/Text", ROOT_TYPE),
    ("type/UUID", "type/Text"),
    ("type/TextLike", ROOT_TYPE),
    ("type/MongoBSONID", "type/TextLike"),
    ("type/Boolean", ROOT_TYPE),
    ("type/Temporal", ROOT_TYPE),
    ("type/Date", "type/Temporal"),
    ("type/Time", "type/Temporal"),
    ("type/TimeWithTZ", "type/Time"),
    ("type/TimeWithLocalTZ", "type/TimeWithTZ"),
    ("type/TimeWithZoneOffset", "type/TimeWithTZ"),
    ("type/DateTime", "type/Temporal"),
    ("type/DateTimeWithTZ", "type/DateTime"),
    ("type/DateTimeWithLocalTZ", "type/DateTimeWithTZ"),
    ("type/DateTimeWithZoneOffset", "type/DateTimeWithTZ"),
    ("type/DateTimeWithZoneID", "type/DateTimeWithTZ"),
    ("type/Instant", "type/DateTimeWithLocalTZ"),
    ("type/Collection", ROOT_TYPE),
    ("type/Dictionary", "type/Collection"),
    ("type/Array", "type/Collection"),
    ("type/Structured", ROOT_TYPE),
    ("type/SerializedJSON", "type/Structured"),
    ("type/SerializedJSON", "type/Text"),
    ("type/JSON", "type/SerializedJSON"),
)


class TypeHierarchy:
    """Directed acyclic graph of base type tags."""

    def __init__(self, derivations: Iterable[Tuple[str, str]] = ()):
        self._parents: Dict[str, List[str]] = {}
        for child, parent in derivations:
            self.derive(child, parent)

    def derive(self, child: str, parent: str) -> None:
        """Declare ``parent`` as a direct parent of ``child``."""
        if child == parent or self.isa(parent, child):
            raise ValueError(f"Deriving {child} from {parent} would create a cycle")
        parents = self._parents.setdefault(child, [])
        if parent not in parents:
            parents.append(parent)

    def parents(self, tag: str) -> List[str]:
        return list(self._parents.get(tag, ()))

    def ancestors(self, tag: str) -> Iterator[Tuple[int, str]]:
        """Yield ``(distance, ancestor)`` breadth-first, nearest first.

        Ancestors at the same distance come out in declared parent order.
        Each ancestor is yielded once, at its shortest distance.
        """
        seen = {tag}
        queue = deque((1, parent) for parent in self.parents(tag))
        while queue:
            distance, current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            yield distance, current
            queue.extend((distance + 1, parent) for parent in self.parents(current))

    def isa(self, tag: str, ancestor: str) -> bool:
        if tag == ancestor:
            return True
        return any(found == ancestor for _, found in self.ancestors(tag))


DEFAULT_HIERARCHY = TypeHierarchy(_DEFAULT_DERIVATIONS)


def resolve(
    base_type: str,
    hierarchy: Optional[TypeHierarchy] = None,
    mapping: Optional[Mapping[str, str]] = None,
) -> str:
    """Resolve a base type tag to a BigQuery column type name.

    Args:
        base_type: Base type tag, e.g. ``"type/Integer"``
        hierarchy: Type graph to search (default hierarchy if omitted)
        mapping: Tag to BigQuery type table (``BIGQUERY_TYPES`` if omitted)

    Returns:
        BigQuery legacy SQL type name such as ``"INTEGER"``

    Raises:
        UnsupportedTypeError: If neither the tag nor any ancestor is mapped
    """
    hierarchy = hierarchy or DEFAULT_HIERARCHY
    mapping = BIGQUERY_TYPES if mapping is None else mapping

    if base_type in mapping:
        return mapping[base_type]
    for _, ancestor in hierarchy.ancestors(base_type):
        if ancestor in mapping:
            return mapping[ancestor]
    raise UnsupportedTypeError(base_type)


__all__ = [
    "BIGQUERY_TYPES",
    "DEFAULT_HIERARCHY",
    "ROOT_TYPE",
    "TypeHierarchy",
    "resolve",
]
