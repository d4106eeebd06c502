from typing import Optional


def quote_ident(name: str) -> str:
    """
    Quote a BigQuery identifier path with backticks.

    Args:
        name: Identifier to quote, optionally dotted (``project.dataset.table``)

    Returns:
        Backtick-quoted identifier

    Raises:
        ValueError: If name is empty or contains a backtick
    """
    if not name or not isinstance(name, str):
        raise ValueError("Identifier name must be non-empty string")
    if "`" in name:
        raise ValueError(f"Identifier must not contain backticks: {name!r}")
    return f"`{name}`"


def qualify_table(project_id: Optional[str], dataset_id: str, table_id: str) -> str:
    """
    Build a quoted, fully qualified table reference.

    Examples:
        >>> qualify_table("my-project", "v4_test_data__transient_1", "venues")
        '`my-project.v4_test_data__transient_1.venues`'
        >>> qualify_table(None, "v4_test_data__transient_1", "venues")
        '`v4_test_data__transient_1.venues`'
    """
    if not dataset_id or not table_id:
        raise ValueError("Dataset and table names must be non-empty strings")
    parts = [p for p in (project_id, dataset_id, table_id) if p]
    return quote_ident(".".join(parts))


def build_row_count_sql(
    project_id: Optional[str], dataset_id: str, table_id: str
) -> str:
    """SQL used to verify how many rows of a table are visible."""
    return f"SELECT count(*) FROM {qualify_table(project_id, dataset_id, table_id)}"


def build_create_view_sql(
    project_id: Optional[str],
    dataset_id: str,
    view_id: str,
    table_id: str,
    materialized: bool = False,
) -> str:
    """
    SQL creating a view that selects every column of a table.

    Examples:
        >>> build_create_view_sql("p", "d", "v", "t")
        'CREATE VIEW `p.d.v` AS SELECT * FROM `p.d.t`'
    """
    kind = "MATERIALIZED VIEW" if materialized else "VIEW"
    view = qualify_table(project_id, dataset_id, view_id)
    table = qualify_table(project_id, dataset_id, table_id)
    return f"CREATE {kind} {view} AS SELECT * FROM {table}"


def build_drop_view_sql(
    project_id: Optional[str],
    dataset_id: str,
    view_id: str,
    materialized: bool = False,
) -> str:
    kind = "MATERIALIZED VIEW" if materialized else "VIEW"
    return f"DROP {kind} IF EXISTS {qualify_table(project_id, dataset_id, view_id)}"
