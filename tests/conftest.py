# ==============================
# Testing Fixtures
# ==============================
from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from datalys.config.schema import Settings
from datalys.contracts.dataset_schema import CanonicalTable
from datalys.pipeline.engine import ReportEngine
from datalys.templating.context import TemplateContext
from gateway.api.http_app import create_app
from gateway.api import deps as gateway_deps


FIXED_NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def make_table(
    columns: Sequence[str],
    rows: Sequence[Sequence[Any]],
    *,
    table_id: str = "t",
    dtypes: Optional[Sequence[str]] = None,
) -> CanonicalTable:
    """Build a CanonicalTable directly, skipping the normalizer."""
    return CanonicalTable(
        id=table_id,
        columns=tuple(columns),
        dtypes=tuple(dtypes) if dtypes is not None else tuple("inferred" for _ in columns),
        rows=tuple(tuple(r) for r in rows),
    )


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def engine(settings: Settings) -> ReportEngine:
    """Engine with a frozen clock so due-date statuses are deterministic."""
    return ReportEngine.from_settings(settings, clock=lambda: FIXED_NOW)


@pytest.fixture
def sales_table() -> CanonicalTable:
    return make_table(
        ["region", "sales", "target"],
        [
            ["North", 120, 100],
            ["South", 80, 100],
            ["East", None, 90],
            ["West", 100, 95],
        ],
        table_id="sales",
    )


@pytest.fixture
def template_ctx(sales_table: CanonicalTable) -> TemplateContext:
    return TemplateContext(datasets={"sales": sales_table}, props={"author": "ops", "tags": ["a", "b"]})


@pytest.fixture
def sample_document() -> Dict[str, Any]:
    """Small two-dataset report with one page, one layout and one modal."""
    return {
        "pages": [
            {
                "title": "Sales ({{ count('sales') }} regions)",
                "description": "Prepared by {{ props.author }}",
                "lastUpdated": "2024-06-01",
                "rows": [
                    {
                        "direction": "row",
                        "children": [
                            {
                                "type": "kpi",
                                "id": "total-sales",
                                "datasetId": "sales",
                                "title": "Total {{ sum('sales', 'sales') }}",
                                "valueColumn": "sales",
                                "comparisonColumn": "target",
                                "padding": 8,
                            },
                            {
                                "type": "pie",
                                "id": "share",
                                "datasetId": "sales",
                                "categoryColumn": "region",
                                "valueColumn": "sales",
                            },
                        ],
                    },
                    {
                        "type": "table",
                        "id": "missing",
                        "datasetId": "nope",
                    },
                    {
                        "type": "lineChart",
                        "id": "bad-column",
                        "datasetId": "sales",
                        "xColumn": "region",
                        "yColumns": ["revenue"],
                    },
                ],
            }
        ],
        "modals": [
            {
                "id": "details",
                "title": "Details",
                "buttonLabel": "Open",
                "rows": [
                    {
                        "type": "checklist",
                        "id": "tasks",
                        "datasetId": "tasks",
                        "statusColumn": "done",
                        "warningColumn": "due",
                    }
                ],
            }
        ],
        "datasets": {
            "sales": {
                "id": "sales",
                "format": "table",
                "columns": ["region", "sales", "target"],
                "dtypes": ["string", "number", "number"],
                "data": [["North", 120, 100], ["South", 80, 100], ["East", "", 90], ["West", 100, 95]],
            },
            "tasks": {
                "id": "tasks",
                "format": "records",
                "dtypes": ["string", "boolean", "date"],
                "data": [
                    {"task": "Draft", "done": True, "due": "2024-06-01"},
                    {"task": "Review", "done": False, "due": "2024-06-10"},
                    {"task": "Publish", "done": False, "due": "2024-06-16"},
                    {"task": "Archive", "done": False, "due": None},
                ],
            },
        },
    }


@pytest.fixture
def app_client(engine: ReportEngine) -> TestClient:
    """FastAPI test client wired to the provided engine."""
    gateway_deps.get_engine.cache_clear()
    gateway_deps.get_settings.cache_clear()
    app = create_app()
    app.dependency_overrides[gateway_deps.get_engine] = lambda: engine
    client = TestClient(app)
    return client
