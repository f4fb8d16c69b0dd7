# ==============================
# Column Resolver
# ==============================
"""
Map a column reference (name or 0-based index) onto a CanonicalTable.

Absent resolution is returned as None; callers decide whether that is an
empty state (require_column) or a default (resolve_or_default).
"""

from __future__ import annotations

from typing import Optional, Union

from datalys.contracts.dataset_schema import CanonicalTable
from datalys.contracts.errors import UnresolvedColumnError


ColumnRef = Union[str, int]


def resolve_column(column: Optional[ColumnRef], table: CanonicalTable) -> Optional[int]:
    if column is None or isinstance(column, bool):
        return None
    if isinstance(column, int):
        return column if 0 <= column < table.width else None
    if isinstance(column, str):
        try:
            return table.columns.index(column)
        except ValueError:
            return None
    return None


def resolve_or_default(column: Optional[ColumnRef], table: CanonicalTable, default: int = 0) -> Optional[int]:
    """Resolve column, falling back to `default` only when no reference was given."""
    if column is None:
        return default if 0 <= default < table.width else None
    return resolve_column(column, table)


def require_column(
    column: Optional[ColumnRef],
    table: CanonicalTable,
    *,
    default: Optional[int] = None,
    role: str = "column",
) -> int:
    idx = resolve_column(column, table) if default is None else resolve_or_default(column, table, default)
    if idx is None:
        raise UnresolvedColumnError(
            f"{role} {column!r} not found in dataset '{table.id}'",
            details={"column": column, "role": role, "dataset": table.id, "available": list(table.columns)},
        )
    return idx
