# ==============================
# KPI
# ==============================
from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from datalys.contracts.dataset_schema import CanonicalTable, json_safe
from datalys.contracts.document_schema import VisualBase
from datalys.contracts.errors import InsufficientDataError
from datalys.datasets.columns import require_column, resolve_or_default
from datalys.templating.helpers import format_display
from datalys.transforms.aggregates import NO_DATA
from datalys.transforms.breach import (
    BreachStatus,
    GoodDirection,
    TrendModel,
    classify_breach,
    compute_change,
    describe_trend,
)


ColumnRef = Union[str, int]
ValueFormat = Literal["number", "currency", "percent", "date"]


class KPIConfig(VisualBase):
    type: Literal["kpi"] = "kpi"
    value_column: Optional[ColumnRef] = None
    comparison_column: Optional[ColumnRef] = None
    row_index: int = Field(default=0, ge=0)
    format: ValueFormat = "number"
    currency_symbol: str = "$"
    good_direction: GoodDirection = "higher"
    breach_value: Optional[float] = None
    warning_value: Optional[float] = None


class KPIModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    value: Any
    formatted_value: str
    value_column: str
    comparison: Any = None
    formatted_comparison: Optional[str] = None
    comparison_column: Optional[str] = None
    change: Optional[float] = None
    change_label: Optional[str] = None
    trend: Optional[TrendModel] = None
    breach_status: Optional[BreachStatus] = None
    breach_value: Optional[float] = None
    warning_value: Optional[float] = None
    good_direction: GoodDirection = "higher"


def _format(value: Any, config: KPIConfig, date_format: str, placeholder: str) -> str:
    if value is None:
        return placeholder
    fmt = "date" if isinstance(value, datetime) else config.format
    try:
        out = format_display(
            value,
            fmt,
            currency_symbol=config.currency_symbol,
            precision=1 if fmt == "percent" else 2,
            date_format=date_format,
        )
    except ValueError:
        return str(value)
    return placeholder if out is NO_DATA else str(out)


def build_kpi(
    table: CanonicalTable,
    config: KPIConfig,
    *,
    date_format: str = "YYYY-MM-DD",
    placeholder: str = "—",
) -> KPIModel:
    value_idx = require_column(config.value_column, table, default=0, role="value column")
    if config.comparison_column is not None:
        comp_idx: Optional[int] = require_column(config.comparison_column, table, role="comparison column")
    else:
        comp_idx = resolve_or_default(None, table, default=1)
        if comp_idx == value_idx:
            comp_idx = None
    if config.row_index >= table.row_count:
        raise InsufficientDataError(
            f"row {config.row_index} out of range for dataset '{table.id}' ({table.row_count} rows)"
        )

    row = table.rows[config.row_index]
    value = row[value_idx]
    comparison = row[comp_idx] if comp_idx is not None else None

    change = compute_change(value, comparison) if config.format != "date" else None
    trend = describe_trend(change, config.good_direction)
    comp_name = table.columns[comp_idx] if comp_idx is not None else None
    change_label = None
    if trend is not None:
        change_label = f"{abs(trend.change * 100):.1f}% {trend.adjective} {comp_name}"

    return KPIModel(
        value=json_safe(value),
        formatted_value=_format(value, config, date_format, placeholder),
        value_column=table.columns[value_idx],
        comparison=json_safe(comparison),
        formatted_comparison=_format(comparison, config, date_format, placeholder) if comp_idx is not None else None,
        comparison_column=comp_name,
        change=change,
        change_label=change_label,
        trend=trend,
        breach_status=classify_breach(
            value,
            breach_value=config.breach_value,
            warning_value=config.warning_value,
            good_direction=config.good_direction,
        ),
        breach_value=config.breach_value,
        warning_value=config.warning_value,
        good_direction=config.good_direction,
    )
