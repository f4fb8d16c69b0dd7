# ==============================
# Checklist Status Tests
# ==============================
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from datalys.contracts.dataset_schema import CanonicalTable
from datalys.contracts.errors import UnresolvedColumnError
from datalys.transforms.checklist import ChecklistConfig, build_checklist, due_status, is_truthy_status


NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "value, expected",
    [
        (True, True),
        (1, True),
        ("Done", True),
        ("yes", True),
        (False, False),
        (0, False),
        (None, False),
        ("", False),
        ("false", False),
        ("Pending", False),
    ],
)
def test_truthy_status(value, expected) -> None:
    assert is_truthy_status(value) is expected


@pytest.mark.parametrize(
    "status, due, expected",
    [
        (True, "2024-01-01", "complete"),
        (False, "2024-06-14", "overdue"),
        (False, "2024-06-17", "warning"),
        (False, "2024-06-18T12:00:00Z", "warning"),
        (False, "2024-06-30", "pending"),
        (False, None, "pending"),
        (False, "whenever", "pending"),
    ],
)
def test_due_status(status, due, expected) -> None:
    assert due_status(status, due, warning_threshold_days=3, now=NOW) == expected


def test_naive_now_is_treated_as_utc() -> None:
    assert due_status(False, "2024-06-14", now=datetime(2024, 6, 15)) == "overdue"


def test_build_checklist_counts_and_label() -> None:
    table = CanonicalTable(
        id="tasks",
        columns=("task", "done", "due"),
        dtypes=("string", "boolean", "date"),
        rows=(
            ("Draft", True, datetime(2024, 6, 1, tzinfo=timezone.utc)),
            ("Review", False, datetime(2024, 6, 10, tzinfo=timezone.utc)),
            ("Publish", False, datetime(2024, 6, 16, tzinfo=timezone.utc)),
            ("Archive", False, None),
        ),
    )
    config = ChecklistConfig.model_validate({"statusColumn": "done", "warningColumn": "due", "pageSize": 3})
    model = build_checklist(table, config, now=NOW)

    assert [item.status for item in model.items] == ["complete", "overdue", "warning", "pending"]
    assert model.counts == {"complete": 1, "overdue": 1, "warning": 1, "pending": 1}
    assert model.completed_label == "1 / 4 Completed"
    assert model.columns == ["task", "due"]
    assert model.items[0].cells == {"task": "Draft", "due": "2024-06-01T00:00:00+00:00"}
    assert model.page_count == 2


def test_missing_status_column() -> None:
    table = CanonicalTable(id="t", columns=("a",), dtypes=("string",), rows=(("x",),))
    with pytest.raises(UnresolvedColumnError):
        build_checklist(table, ChecklistConfig(status_column="done"), now=NOW)
