# ==============================
# Safe Expression Evaluator Tests
# ==============================
from __future__ import annotations

import pytest

from datalys.contracts.errors import (
    TemplateEvaluationError,
    UnresolvedColumnError,
    UnresolvedDatasetError,
)
from datalys.templating.safe_eval import CallNode, LiteralNode, PathNode, SafeEvaluator, parse_expression
from datalys.transforms.aggregates import NO_DATA


def test_parse_builds_nodes() -> None:
    node = parse_expression("formatNumber(sum('sales', 'sales'), 1)")
    assert isinstance(node, CallNode)
    assert node.name == "formatNumber"
    assert isinstance(node.args[0], CallNode)
    assert node.args[1] == LiteralNode(1)
    assert parse_expression("props.tags[1]") == PathNode(root="props", segments=("tags", 1))


def test_aggregates_and_count(template_ctx) -> None:
    ev = SafeEvaluator(template_ctx)
    assert ev.evaluate("count('sales')") == 4
    assert ev.evaluate("sum('sales', 'sales')") == 300
    assert ev.evaluate("avg('sales', 1)") == 100.0
    assert ev.evaluate("min('sales', 'sales')") == 80
    assert ev.evaluate("max('sales', \"target\")") == 100


def test_aggregate_over_text_column_is_no_data(template_ctx) -> None:
    assert SafeEvaluator(template_ctx).evaluate("sum('sales', 'region')") is NO_DATA


def test_paths_and_literals(template_ctx) -> None:
    ev = SafeEvaluator(template_ctx)
    assert ev.evaluate("props.author") == "ops"
    assert ev.evaluate("props.tags[0]") == "a"
    assert ev.evaluate("datasets.sales.columns[1]") == "sales"
    assert ev.evaluate("datasets.sales.data[0][0]") == "North"
    assert ev.evaluate("'it\\'s'") == "it's"
    assert ev.evaluate("-2.5") == -2.5
    assert ev.evaluate("null") is None
    assert ev.evaluate("true") is True


def test_formatters(template_ctx) -> None:
    ev = SafeEvaluator(template_ctx)
    assert ev.evaluate("formatNumber(1234567)") == "1,234,567"
    assert ev.evaluate("formatPercent(0.256)") == "25.6%"
    assert ev.evaluate("formatCurrency(1234.5, '€')") == "€1,234.50"
    assert ev.evaluate("formatDate('2024-02-03', 'DD/MM/YYYY')") == "03/02/2024"


@pytest.mark.parametrize(
    "source",
    [
        "eval('1')",
        "__import__('os')",
        "props.__class__",
        "props.constructor",
        "1 + 2",
        "props['author']",
        "window.location",
        "count('sales'",
        "sum('sales')",
        "",
        "props.tags[-1]",
    ],
)
def test_outside_grammar_is_rejected(template_ctx, source) -> None:
    with pytest.raises(TemplateEvaluationError):
        SafeEvaluator(template_ctx).evaluate(source)


def test_missing_dataset_and_column(template_ctx) -> None:
    ev = SafeEvaluator(template_ctx)
    with pytest.raises(UnresolvedDatasetError):
        ev.evaluate("count('nope')")
    with pytest.raises(UnresolvedColumnError):
        ev.evaluate("sum('sales', 'revenue')")
    with pytest.raises(TemplateEvaluationError):
        ev.evaluate("props.missing")
