# ==============================
# Integration: Document Rendering
# ==============================
from __future__ import annotations

import copy
import logging

import pytest

from datalys.config.schema import PoliciesConfig, Settings
from datalys.contracts.errors import DocumentError
from datalys.contracts.document_schema import node_kind
from datalys.contracts.render_schema import LayoutRenderResult, VisualRenderResult
from datalys.datasets.compression import compress_object_to_gzip_b64
from datalys.pipeline.engine import ReportEngine
from datalys.templating.context import TemplateContext


def _by_id(result):
    return {v.visual_id: v for v in result.visuals()}


@pytest.mark.integration
def test_render_sample_document(engine, sample_document) -> None:
    result = engine.render_document(sample_document, props={"author": "ops"})

    page = result.pages[0]
    assert page.title == "Sales (4 regions)"
    assert page.description == "Prepared by ops"
    assert page.last_updated == "2024-06-01"

    layout = page.rows[0]
    assert isinstance(layout, LayoutRenderResult)
    assert layout.direction == "row"
    assert len(layout.children) == 2

    visuals = _by_id(result)
    kpi = visuals["total-sales"]
    assert kpi.ok and kpi.state == "ready"
    assert kpi.text["title"] == "Total 300"
    assert kpi.data["formatted_value"] == "120"
    assert kpi.data["change_label"] == "20.0% above target"
    assert kpi.presentation == {"padding": 8}

    pie = visuals["share"]
    assert pie.data["skipped"] == 1
    assert [s["label"] for s in pie.data["slices"]] == ["North", "South", "West"]


@pytest.mark.integration
def test_failures_are_isolated_per_visual(engine, sample_document) -> None:
    visuals = _by_id(engine.render_document(sample_document))

    missing = visuals["missing"]
    assert missing.ok is False
    assert missing.state == "empty"
    assert missing.error.code.value == "unresolved_dataset"

    bad = visuals["bad-column"]
    assert bad.ok is False
    assert bad.state == "missing_column"
    assert bad.error.details["column"] == "revenue"

    assert visuals["total-sales"].ok is True


@pytest.mark.integration
def test_modal_checklist_uses_engine_clock(engine, sample_document) -> None:
    result = engine.render_document(sample_document)
    modal = result.modals[0]
    assert (modal.id, modal.title, modal.button_label) == ("details", "Details", "Open")
    checklist = modal.rows[0]
    assert checklist.ok
    statuses = [item["status"] for item in checklist.data["items"]]
    assert statuses == ["complete", "overdue", "warning", "pending"]
    assert checklist.data["completed_label"] == "1 / 4 Completed"


@pytest.mark.integration
def test_dataset_summaries(engine, sample_document) -> None:
    doc = copy.deepcopy(sample_document)
    doc["datasets"]["broken"] = {"format": "table", "compressedData": "@@@"}
    result = engine.render_document(doc)
    assert result.datasets["sales"].ok is True
    assert result.datasets["sales"].rows == 4
    assert result.datasets["sales"].dtypes == ["string", "number", "number"]
    assert result.datasets["broken"].ok is False
    assert result.datasets["broken"].error.code.value == "corrupt_dataset"


@pytest.mark.integration
def test_compressed_dataset_renders(engine) -> None:
    doc = {
        "pages": [{"rows": [{"type": "histogram", "id": "h", "datasetId": "d", "bins": 2}]}],
        "datasets": {
            "d": {
                "format": "list",
                "compressedData": compress_object_to_gzip_b64([1, 2, 3, 4]),
                "compression": "gzip",
            }
        },
    }
    hist = engine.render_document(doc).visuals()[0]
    assert hist.ok
    assert [b["count"] for b in hist.data["bins"]] == [2, 2]


@pytest.mark.integration
def test_zero_row_dataset_is_empty_state(engine) -> None:
    doc = {
        "pages": [{"rows": [{"type": "table", "id": "t", "datasetId": "d", "title": "Nothing"}]}],
        "datasets": {"d": {"format": "records", "data": []}},
    }
    visual = engine.render_document(doc).visuals()[0]
    assert (visual.ok, visual.state, visual.data) == (True, "empty", None)
    assert visual.text == {"title": "Nothing"}


@pytest.mark.integration
def test_unknown_and_invalid_visuals(engine) -> None:
    doc = {
        "pages": [
            {
                "rows": [
                    {"type": "sankey", "id": "u", "datasetId": "d"},
                    {"type": "gauge", "id": "g", "datasetId": "d", "minValue": 5, "maxValue": 1},
                    {"type": "card", "id": "c", "title": "Hi", "text": "{{ count('d') }} rows"},
                ]
            }
        ],
        "datasets": {"d": {"format": "list", "data": [1, 2]}},
    }
    visuals = _by_id(engine.render_document(doc))
    assert visuals["u"].error.code.value == "unknown_visual"
    assert visuals["g"].error.code.value == "invalid_config"
    assert visuals["g"].state == "error"
    assert visuals["c"].ok
    assert visuals["c"].data == {"title": "Hi", "text": "2 rows"}


@pytest.mark.integration
def test_template_failures_become_diagnostics(engine) -> None:
    doc = {
        "pages": [{"title": "A {{ nope('x') }} B", "rows": [{"type": "card", "id": "c", "text": {"unsafeJs": "1 + 1"}}]}],
        "datasets": {},
    }
    result = engine.render_document(doc)
    assert result.pages[0].title == "A  B"
    assert result.pages[0].diagnostics[0]["code"] == "template_evaluation"
    card = result.visuals()[0]
    assert card.ok
    assert card.text["text"] == ""
    assert card.diagnostics[0]["code"] == "unsafe_expression_refused"


@pytest.mark.integration
def test_unsafe_allowed_for_trusted_source() -> None:
    settings = Settings(policies=PoliciesConfig(trusted_sources=["trusted.html"]))
    engine = ReportEngine.from_settings(settings)
    doc = {
        "pages": [{"rows": [{"type": "card", "id": "c", "text": {"unsafeJs": "str(2 * 21)"}}]}],
        "datasets": {},
    }
    assert engine.render_document(doc, source="trusted.html").visuals()[0].text["text"] == "42"
    assert engine.render_document(doc, source="other.html").visuals()[0].text["text"] == ""
    assert engine.render_document(doc, allow_unsafe=True).visuals()[0].text["text"] == "42"


@pytest.mark.integration
@pytest.mark.parametrize(
    "raw",
    [
        [],
        {"datasets": {}},
        {"pages": []},
        {"pages": [], "datasets": []},
        {"pages": "nope", "datasets": {}},
    ],
)
def test_invalid_document_root(engine, raw) -> None:
    with pytest.raises(DocumentError):
        engine.render_document(raw)


@pytest.mark.integration
def test_unexpected_builder_error_is_contained(engine, sales_table, caplog) -> None:
    reg = engine.registry.resolve("pie")

    def explode(table, cfg, env):
        raise RuntimeError("boom")

    engine.registry.register(name="pie", config_model=reg.config_model, builder=explode, overwrite=True)
    ctx = TemplateContext(datasets={"sales": sales_table})
    with caplog.at_level(logging.ERROR):
        result = engine.render_visual({"type": "pie", "id": "p", "datasetId": "sales"}, ctx)
    assert isinstance(result, VisualRenderResult)
    assert result.ok is False
    assert result.state == "error"
    assert "boom" in result.error.message
    assert any(r.levelno == logging.ERROR for r in caplog.records)


@pytest.mark.integration
def test_malformed_nodes_fail_alone(engine) -> None:
    doc = {
        "pages": [
            {"title": "One", "rows": [{"type": "card", "id": "first", "text": "fine"}]},
            {
                "title": "Two",
                "rows": [
                    {"direction": "diagonal", "children": []},
                    {"type": "card", "id": "second", "text": "still here"},
                    7,
                ],
            },
            {"title": "Three", "lastUpdated": 20240101, "rows": []},
        ],
        "datasets": {},
        "modals": [{"title": "no id"}],
    }
    result = engine.render_document(doc)

    first, second, third = result.pages
    assert first.ok and first.rows[0].ok
    assert first.rows[0].data == {"title": None, "text": "fine"}

    assert second.ok is True
    bad_layout, card, bad_child = second.rows
    assert isinstance(bad_layout, LayoutRenderResult)
    assert bad_layout.ok is False
    assert bad_layout.error.code.value == "invalid_config"
    assert card.ok and card.data["text"] == "still here"
    assert isinstance(bad_child, VisualRenderResult)
    assert (bad_child.ok, bad_child.state) == (False, "error")

    assert (third.ok, third.index, third.rows) == (False, 2, [])
    assert third.error.code.value == "invalid_config"

    modal = result.modals[0]
    assert (modal.ok, modal.id) == (False, "modal[0]")


@pytest.mark.integration
def test_element_type_decides_node_kind(engine) -> None:
    layout = {
        "elementType": "layout",
        "type": "legacy",
        "direction": "column",
        "children": [{"elementType": "visual", "type": "card", "id": "c", "text": "hi"}],
    }
    assert node_kind(layout) == "layout"
    assert node_kind({"type": "card"}) == "visual"
    assert node_kind({"direction": "row"}) == "layout"
    assert node_kind("nope") == "invalid"

    rendered = engine.render_document({"pages": [{"rows": [layout]}], "datasets": {}}).pages[0].rows[0]
    assert isinstance(rendered, LayoutRenderResult)
    assert (rendered.ok, rendered.direction) == (True, "column")
    assert rendered.children[0].data["text"] == "hi"
