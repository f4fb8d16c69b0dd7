# ==============================
# Checklist Status
# ==============================
"""
Per-row completion / due-date status for checklist visuals.

complete: status cell is truthy (date ignored)
overdue:  due date strictly before now
warning:  due date within warning_threshold days of now
pending:  everything else, including rows without a due date
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from datalys.contracts.dataset_schema import CanonicalTable, json_safe
from datalys.contracts.document_schema import VisualBase
from datalys.datasets.columns import require_column
from datalys.datasets.dates import parse_date
from datalys.transforms.table import display_columns, page_count


ChecklistStatus = Literal["complete", "overdue", "warning", "pending"]
STATUSES = ("complete", "overdue", "warning", "pending")

_FALSE_WORDS = {"", "false", "no", "n", "0", "pending", "incomplete", "open", "todo"}


def is_truthy_status(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_WORDS
    return bool(value)


def due_status(
    status_value: Any,
    due_value: Any,
    *,
    warning_threshold_days: float = 3,
    now: datetime,
) -> ChecklistStatus:
    if is_truthy_status(status_value):
        return "complete"
    due = parse_date(due_value)
    if due is None:
        return "pending"
    current = now if now.tzinfo is not None else now.replace(tzinfo=timezone.utc)
    if due < current:
        return "overdue"
    if due - current <= timedelta(days=warning_threshold_days):
        return "warning"
    return "pending"


class ChecklistConfig(VisualBase):
    type: Literal["checklist"] = "checklist"
    columns: Optional[List[Union[str, int]]] = None
    status_column: Union[str, int]
    warning_column: Optional[Union[str, int]] = None
    warning_threshold: float = 3
    page_size: int = Field(default=10, ge=1)
    show_search: bool = True


class ChecklistItem(BaseModel):
    model_config = ConfigDict(extra="forbid")

    row: int
    status: ChecklistStatus
    cells: Dict[str, Any]


class ChecklistModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    columns: List[str]
    items: List[ChecklistItem]
    counts: Dict[str, int]
    completed: int
    total: int
    completed_label: str
    page_size: int
    page_count: int


def build_checklist(table: CanonicalTable, config: ChecklistConfig, *, now: Optional[datetime] = None) -> ChecklistModel:
    current = now or datetime.now(timezone.utc)
    status_idx = require_column(config.status_column, table, role="status column")
    warn_idx = None
    if config.warning_column is not None:
        warn_idx = require_column(config.warning_column, table, role="warning column")
    shown = display_columns(table, config.columns, exclude=(status_idx,))

    items: List[ChecklistItem] = []
    counts = {s: 0 for s in STATUSES}
    for i, row in enumerate(table.rows):
        due_value = row[warn_idx] if warn_idx is not None else None
        status = due_status(
            row[status_idx],
            due_value,
            warning_threshold_days=config.warning_threshold,
            now=current,
        )
        counts[status] += 1
        items.append(
            ChecklistItem(
                row=i,
                status=status,
                cells={table.columns[c]: json_safe(row[c]) for c in shown},
            )
        )

    total = len(items)
    completed = counts["complete"]
    return ChecklistModel(
        columns=[table.columns[c] for c in shown],
        items=items,
        counts=counts,
        completed=completed,
        total=total,
        completed_label=f"{completed} / {total} Completed",
        page_size=config.page_size,
        page_count=page_count(total, config.page_size),
    )
