# ==============================
# Gauge
# ==============================
"""
Single value on an arc between min_value and max_value.

The value is clamped into the scale before the angle is computed; ranges are
clipped to the scale, empty ones dropped, and ordered by descending `from`
so the first containing range wins for overlapping bands.
"""

from __future__ import annotations

import math
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from datalys.contracts.dataset_schema import CanonicalTable
from datalys.contracts.document_schema import VisualBase
from datalys.contracts.errors import InsufficientDataError
from datalys.datasets.columns import require_column
from datalys.templating.helpers import format_display
from datalys.utils.colors import ColorProperty
from datalys.utils.numbers import to_float


class GaugeRange(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    from_: float = Field(alias="from")
    to: float
    color: Optional[str] = None
    label: Optional[str] = None


class GaugeConfig(VisualBase):
    type: Literal["gauge"] = "gauge"
    value_column: Optional[Union[str, int]] = None
    row_index: int = Field(default=0, ge=0)
    min_value: float = 0
    max_value: float = 100
    start_angle: float = -math.pi / 2
    end_angle: float = math.pi / 2
    ranges: List[GaugeRange] = Field(default_factory=list)
    colors: Optional[ColorProperty] = None
    format: Literal["number", "currency", "percent"] = "number"
    rounding_precision: int = Field(default=1, ge=0)
    currency_symbol: str = "$"
    unit: Any = None
    show_needle: bool = True
    show_value: bool = True
    show_min_max: bool = True

    @model_validator(mode="after")
    def _scale(self) -> "GaugeConfig":
        if self.max_value <= self.min_value:
            raise ValueError("maxValue must be greater than minValue")
        return self


class GaugeModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    value: float
    clamped: float
    fraction: float
    angle: float
    min_value: float
    max_value: float
    start_angle: float
    end_angle: float
    formatted_value: str
    unit: Optional[str] = None
    ranges: List[GaugeRange]
    active_range: Optional[GaugeRange] = None


def normalize_ranges(ranges: List[GaugeRange], lo: float, hi: float) -> List[GaugeRange]:
    clipped = [
        r.model_copy(update={"from_": max(lo, r.from_), "to": min(hi, r.to)})
        for r in ranges
    ]
    kept = [r for r in clipped if r.to > r.from_]
    return sorted(kept, key=lambda r: r.from_, reverse=True)


def build_gauge(table: CanonicalTable, config: GaugeConfig, *, unit: Optional[str] = None) -> GaugeModel:
    idx = require_column(config.value_column, table, default=0, role="value column")
    if config.row_index >= table.row_count:
        raise InsufficientDataError(f"row {config.row_index} out of range for dataset '{table.id}'")
    value = to_float(table.rows[config.row_index][idx])
    if value is None:
        raise InsufficientDataError(f"gauge value in column {table.columns[idx]!r} is not numeric")

    lo, hi = config.min_value, config.max_value
    clamped = min(max(value, lo), hi)
    fraction = (clamped - lo) / (hi - lo)
    ranges = normalize_ranges(config.ranges, lo, hi)
    active = next((r for r in ranges if r.from_ <= clamped <= r.to), None)

    return GaugeModel(
        value=value,
        clamped=clamped,
        fraction=fraction,
        angle=config.start_angle + fraction * (config.end_angle - config.start_angle),
        min_value=lo,
        max_value=hi,
        start_angle=config.start_angle,
        end_angle=config.end_angle,
        formatted_value=str(
            format_display(
                value,
                config.format,
                currency_symbol=config.currency_symbol,
                precision=config.rounding_precision,
            )
        ),
        unit=unit if unit is not None else (config.unit if isinstance(config.unit, str) else None),
        ranges=ranges,
        active_range=active,
    )
