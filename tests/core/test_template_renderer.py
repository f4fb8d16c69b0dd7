# ==============================
# Template Renderer Tests
# ==============================
from __future__ import annotations

import pytest

from datalys.contracts.errors import TemplateEvaluationError
from datalys.contracts.template_schema import (
    ExprValue,
    PlainText,
    TemplateText,
    UnsafeExpr,
    coerce_template_value,
)
from datalys.templating.renderer import render, render_fields, render_template, scan_spans


def test_coerce_template_value_variants() -> None:
    assert coerce_template_value("hello") == PlainText(text="hello")
    assert coerce_template_value("a {{ x }}") == TemplateText(template="a {{ x }}")
    assert coerce_template_value({"template": "t"}) == TemplateText(template="t")
    assert coerce_template_value({"expr": "count('s')"}) == ExprValue(expr="count('s')")
    assert coerce_template_value({"unsafeJs": "1"}) == UnsafeExpr(code="1")
    assert coerce_template_value(3) == PlainText(text="3")
    assert coerce_template_value(None) is None


def test_coerce_rejects_ambiguous_objects() -> None:
    with pytest.raises(TemplateEvaluationError):
        coerce_template_value({"template": "a", "expr": "b"})
    with pytest.raises(TemplateEvaluationError):
        coerce_template_value({"expr": 5})


def test_scan_spans_reports_unterminated() -> None:
    spans, open_ = scan_spans("a {{ x }} b {{ y")
    assert spans == [(False, "a "), (True, " x "), (False, " b ")]
    assert open_ is True


def test_plain_text_is_verbatim(template_ctx) -> None:
    assert render("Revenue by region", template_ctx) == "Revenue by region"
    assert template_ctx.diagnostics == []


def test_placeholders_render_in_place(template_ctx) -> None:
    out = render("Total {{ sum('sales', 'sales') }} across {{ count('sales') }} by {{ props.author }}", template_ctx)
    assert out == "Total 300 across 4 by ops"


def test_failing_placeholder_is_isolated(template_ctx) -> None:
    out = render("A {{ sum('sales', 'revenue') }} B {{ count('sales') }}", template_ctx)
    assert out == "A  B 4"
    assert len(template_ctx.diagnostics) == 1
    assert template_ctx.diagnostics[0].code == "unresolved_column"


def test_no_data_renders_placeholder(template_ctx) -> None:
    assert render("{{ avg('sales', 'region') }}", template_ctx) == "—"


def test_expr_value_is_one_expression(template_ctx) -> None:
    assert render({"expr": "formatPercent(0.5, 0)"}, template_ctx) == "50%"


def test_unterminated_brace_renders_empty_remainder(template_ctx) -> None:
    assert render_template("Hi {{ props.author", template_ctx) == "Hi "
    assert template_ctx.diagnostics[-1].code == "template_evaluation"


def test_unsafe_refused_by_default(template_ctx) -> None:
    assert render({"unsafeJs": "1 + 1"}, template_ctx) == ""
    assert template_ctx.diagnostics[-1].code == "unsafe_expression_refused"


def test_unsafe_runs_when_allowed(template_ctx) -> None:
    ctx = template_ctx.fork(allow_unsafe=True)
    assert render({"unsafeJs": "sum('sales', 'sales') / count('sales')"}, ctx) == "75"
    assert render({"unsafeJs": "props.author.upper()"}, ctx) == "OPS"
    assert render({"unsafeJs": "len(datasets.sales.data)"}, ctx) == "4"


def test_unsafe_errors_are_diagnostics(template_ctx) -> None:
    ctx = template_ctx.fork(allow_unsafe=True)
    assert render({"unsafeJs": "1 / 0"}, ctx) == ""
    assert ctx.diagnostics[-1].code == "template_evaluation"


def test_render_fields_skips_missing(template_ctx) -> None:
    out = render_fields({"title": "T {{ count('sales') }}", "description": None}, ("title", "description", "text"), template_ctx)
    assert out == {"title": "T 4"}


def test_fork_keeps_bindings_and_resets_diagnostics(template_ctx) -> None:
    render("{{ nope }}", template_ctx)
    child = template_ctx.fork()
    assert child.diagnostics == []
    assert child.datasets is template_ctx.datasets
