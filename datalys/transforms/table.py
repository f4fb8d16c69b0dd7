# ==============================
# Table
# ==============================
"""
Tabular display model: selected columns, JSON-safe cells, and the same
search / sort / paging the interactive table offers, applied server side.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

from datalys.contracts.dataset_schema import CanonicalTable, json_safe
from datalys.contracts.document_schema import VisualBase
from datalys.datasets.columns import require_column
from datalys.utils.text import pretty_print_text


ColumnRef = Union[str, int]


class TableConfig(VisualBase):
    type: Literal["table"] = "table"
    columns: Optional[List[ColumnRef]] = None
    page_size: int = Field(default=10, ge=1)
    table_style: Literal["plain", "bordered", "alternating"] = "plain"
    show_search: bool = True


class TableModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    columns: List[str]
    headers: List[str]
    rows: List[Dict[str, Any]]
    total_rows: int
    matched_rows: int
    page: int
    page_size: int
    page_count: int


def display_columns(
    table: CanonicalTable,
    requested: Optional[Sequence[ColumnRef]],
    exclude: Sequence[int] = (),
) -> List[int]:
    if requested:
        return [require_column(col, table, role="display column") for col in requested]
    return [i for i in range(table.width) if i not in exclude]


def _sort_key(value: Any):
    # None sorts last in ascending order; mixed types compare by string
    if value is None:
        return (2, "")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value)
    return (1, str(value))


def query_rows(
    rows: List[Dict[str, Any]],
    columns: Sequence[str],
    *,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    descending: bool = False,
) -> List[Dict[str, Any]]:
    out = list(rows)
    if search:
        needle = search.lower()
        out = [r for r in out if any(needle in str(r.get(c)).lower() for c in columns)]
    if sort_by:
        out.sort(key=lambda r: _sort_key(r.get(sort_by)), reverse=descending)
    return out


def page_count(total: int, page_size: int) -> int:
    return -(-total // page_size)


def build_table(
    table: CanonicalTable,
    config: TableConfig,
    *,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    descending: bool = False,
    page: int = 1,
) -> TableModel:
    shown = display_columns(table, config.columns)
    names = [table.columns[i] for i in shown]
    rows = [{table.columns[i]: json_safe(row[i]) for i in shown} for row in table.rows]
    matched = query_rows(rows, names, search=search, sort_by=sort_by, descending=descending)

    pages = page_count(len(matched), config.page_size)
    current = min(max(page, 1), max(pages, 1))
    start = (current - 1) * config.page_size
    return TableModel(
        columns=names,
        headers=[pretty_print_text(n) for n in names],
        rows=matched[start : start + config.page_size],
        total_rows=len(rows),
        matched_rows=len(matched),
        page=current,
        page_size=config.page_size,
        page_count=pages,
    )
