# ==============================
# Template Rendering
# ==============================
"""
Render TemplateValue fields into display strings.

Dispatch:
- PlainText    -> verbatim
- TemplateText -> `{{ ... }}` spans through the safe evaluator
- ExprValue    -> one safe expression, no braces
- UnsafeExpr   -> unsafe evaluator, only when ctx.allow_unsafe

A failing span renders "" and appends a TemplateDiagnostic; text around it
is unaffected. An unterminated `{{` renders the remainder as "".
"""

from __future__ import annotations

import json
import math
from datetime import datetime
from typing import Any, Dict, Iterable, List, Tuple

from datalys.contracts.dataset_schema import json_safe
from datalys.contracts.errors import DatalysError, RenderErrorCode, UnsafeExpressionRefused
from datalys.contracts.template_schema import (
    ExprValue,
    PlainText,
    TemplateText,
    UnsafeExpr,
    coerce_template_value,
)
from datalys.datasets.dates import format_date
from datalys.templating.context import TemplateContext
from datalys.templating.helpers import format_number
from datalys.templating.safe_eval import SafeEvaluator
from datalys.templating.unsafe_eval import evaluate_unsafe
from datalys.transforms.aggregates import NO_DATA


__all__ = ["render", "render_template", "render_fields", "scan_spans", "stringify"]


OPEN = "{{"
CLOSE = "}}"

Span = Tuple[bool, str]


def scan_spans(template: str) -> Tuple[List[Span], bool]:
    """Split into (is_expression, text) pieces. Second value is True when a `{{` never closed."""
    spans: List[Span] = []
    i = 0
    while True:
        start = template.find(OPEN, i)
        if start == -1:
            if i < len(template):
                spans.append((False, template[i:]))
            return spans, False
        if start > i:
            spans.append((False, template[i:start]))
        end = template.find(CLOSE, start + len(OPEN))
        if end == -1:
            return spans, True
        spans.append((True, template[start + len(OPEN) : end]))
        i = end + len(CLOSE)


def stringify(value: Any, ctx: TemplateContext) -> str:
    if value is NO_DATA:
        return ctx.empty_placeholder
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return ctx.empty_placeholder
        return str(format_number(value))
    if isinstance(value, datetime):
        return format_date(value, ctx.date_format)
    return json.dumps(json_safe(value), ensure_ascii=False, default=str)


def _evaluate_safe(expression: str, ctx: TemplateContext) -> str:
    source = expression.strip()
    if not source:
        return ""
    try:
        return stringify(SafeEvaluator(ctx).evaluate(source), ctx)
    except DatalysError as exc:
        ctx.record(exc.code.value, exc.message, source)
        return ""
    except (ValueError, TypeError, ArithmeticError) as exc:
        ctx.record(RenderErrorCode.TEMPLATE_EVALUATION.value, str(exc), source)
        return ""


def _evaluate_unsafe(code: str, ctx: TemplateContext) -> str:
    if not ctx.allow_unsafe:
        refused = UnsafeExpressionRefused("unsafe expressions are disabled for this document")
        ctx.record(refused.code.value, refused.message, code.strip())
        return ""
    try:
        return stringify(evaluate_unsafe(code, ctx), ctx)
    except DatalysError as exc:
        ctx.record(exc.code.value, exc.message, code.strip())
        return ""


def render_template(template: str, ctx: TemplateContext) -> str:
    spans, unterminated = scan_spans(template)
    parts: List[str] = []
    for is_expr, text in spans:
        parts.append(_evaluate_safe(text, ctx) if is_expr else text)
    if unterminated:
        ctx.record(RenderErrorCode.TEMPLATE_EVALUATION.value, "unterminated '{{'", template)
    return "".join(parts)


def render(value: Any, ctx: TemplateContext) -> str:
    try:
        tv = coerce_template_value(value)
    except DatalysError as exc:
        ctx.record(exc.code.value, exc.message, json.dumps(value, default=str))
        return ""
    if tv is None:
        return ""
    if isinstance(tv, PlainText):
        return tv.text
    if isinstance(tv, TemplateText):
        return render_template(tv.template, ctx)
    if isinstance(tv, ExprValue):
        return _evaluate_safe(tv.expr, ctx)
    if isinstance(tv, UnsafeExpr):
        return _evaluate_unsafe(tv.code, ctx)
    raise TypeError(f"Unsupported template value: {type(tv).__name__}")


def render_fields(config: Dict[str, Any], fields: Iterable[str], ctx: TemplateContext) -> Dict[str, str]:
    """Render the named text fields present in a visual/page config."""
    return {name: render(config[name], ctx) for name in fields if config.get(name) is not None}
