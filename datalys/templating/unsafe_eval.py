# ==============================
# Unsafe Expression Evaluator
# ==============================
"""
Full Python expression evaluation for `unsafeJs` template values.

This path runs arbitrary code. The renderer only reaches it when the
document's trust decision allows unsafe expressions; it shares no parsing
code with safe_eval.

Bindings:
- datasets: {id: {id, format, columns, dtypes, data}} (keys also readable as attributes)
- props: document props
- helpers: count, sum, avg, min, max, formatNumber, formatPercent, formatCurrency, formatDate
  (each helper is also bound by name)
"""

from __future__ import annotations

import builtins
from types import SimpleNamespace
from typing import Any, Dict

from datalys.contracts.errors import DatalysError, TemplateEvaluationError
from datalys.datasets.columns import resolve_column
from datalys.templating import helpers as fmt
from datalys.templating.context import TemplateContext
from datalys.transforms.aggregates import NO_DATA, aggregate


class _AttrView(dict):
    def __getattr__(self, name: str) -> Any:
        try:
            return self[name]
        except KeyError as exc:
            raise AttributeError(name) from exc


def _wrap(value: Any) -> Any:
    if isinstance(value, dict):
        return _AttrView({k: _wrap(v) for k, v in value.items()})
    return value


def build_helpers(ctx: TemplateContext) -> SimpleNamespace:
    def count(dataset_id: str) -> int:
        table = ctx.datasets.get(dataset_id)
        return table.row_count if table is not None else 0

    def agg(op: str):
        def run(dataset_id: str, column: Any) -> Any:
            table = ctx.datasets.get(dataset_id)
            if table is None:
                return NO_DATA
            idx = resolve_column(column, table)
            if idx is None:
                return NO_DATA
            return aggregate(table, idx, op)  # type: ignore[arg-type]

        return run

    def lenient(fn):
        def run(*args: Any) -> Any:
            try:
                return fn(*args)
            except ValueError:
                return ""

        return run

    return SimpleNamespace(
        count=count,
        sum=agg("sum"),
        avg=agg("avg"),
        min=agg("min"),
        max=agg("max"),
        formatNumber=lenient(fmt.format_number),
        formatPercent=lenient(fmt.format_percent),
        formatCurrency=lenient(fmt.format_currency),
        formatDate=lenient(fmt.format_date),
    )


def evaluate_unsafe(code: str, ctx: TemplateContext) -> Any:
    source = code.strip()
    if not source:
        return ""
    helpers = build_helpers(ctx)
    bindings: Dict[str, Any] = {
        "datasets": _wrap(ctx.dataset_views()),
        "props": _wrap(dict(ctx.props)),
        "helpers": helpers,
    }
    bindings.update(vars(helpers))
    try:
        compiled = compile(source, "<unsafeJs>", "eval")
        return eval(compiled, {"__builtins__": builtins}, bindings)  # noqa: S307
    except DatalysError:
        raise
    except Exception as exc:
        raise TemplateEvaluationError(
            f"unsafe expression failed: {type(exc).__name__}: {exc}",
            details={"expression": source},
        ) from exc
