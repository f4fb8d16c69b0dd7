# ==============================
# Category Series Charts
# ==============================
"""
Shared transform for line, area, stacked bar and clustered bar charts.

One x column (categories, first row order kept) and one or more y columns.
Each y column becomes a series with per-point values, a total and a share of
the grand total for the legend. Line and area charts may carry a threshold
whose crossings become gradient stops; clustered bars get per-bar pass/fail.
"""

from __future__ import annotations

import math
from typing import Any, List, Literal, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

from datalys.contracts.dataset_schema import CanonicalTable, json_safe
from datalys.contracts.document_schema import VisualBase
from datalys.datasets.columns import require_column
from datalys.transforms.threshold import (
    Crossing,
    GradientStop,
    ThresholdConfig,
    compute_crossings,
    point_positions,
)
from datalys.utils.colors import ColorProperty, pick_color, resolve_colors
from datalys.utils.numbers import to_float
from datalys.utils.text import pretty_print_text


ColumnRef = Union[str, int]


# ==============================
# Configs
# ==============================
class SeriesChartConfig(VisualBase):
    x_column: Optional[ColumnRef] = None
    y_columns: Optional[Union[ColumnRef, List[ColumnRef]]] = None
    min_y: Optional[float] = None
    max_y: Optional[float] = None
    x_axis_label: Any = None
    y_axis_label: Any = None
    legend_title: Any = None
    colors: Optional[ColorProperty] = None
    show_legend: bool = True
    show_labels: bool = False

    def y_refs(self) -> List[ColumnRef]:
        if self.y_columns is None:
            return [1]
        if isinstance(self.y_columns, list):
            return list(self.y_columns)
        return [self.y_columns]


class LineChartConfig(SeriesChartConfig):
    type: Literal["lineChart"] = "lineChart"
    smooth: bool = False
    threshold: Optional[ThresholdConfig] = None


class AreaChartConfig(SeriesChartConfig):
    type: Literal["areaChart"] = "areaChart"
    smooth: bool = False
    threshold: Optional[ThresholdConfig] = None
    fill_opacity: float = Field(default=0.3, ge=0, le=1)
    show_line: bool = True
    show_markers: bool = True


class StackedBarConfig(SeriesChartConfig):
    type: Literal["stackedBar"] = "stackedBar"


class ClusteredBarConfig(SeriesChartConfig):
    type: Literal["clusteredBar"] = "clusteredBar"
    threshold: Optional[ThresholdConfig] = None


# ==============================
# Models
# ==============================
class StackSegment(BaseModel):
    model_config = ConfigDict(extra="forbid")

    y0: float
    y1: float


class SeriesData(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    label: str
    color: str
    values: List[Optional[float]]
    total: float
    percentage: Optional[float] = None
    point_pass: Optional[List[Optional[bool]]] = None
    gradient: Optional[List[GradientStop]] = None
    crossings: Optional[List[Crossing]] = None
    stack: Optional[List[StackSegment]] = None


class SeriesChartModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    chart: str
    x_column: str
    x_labels: List[Any]
    x_positions: List[float]
    series: List[SeriesData]
    y_domain: List[float]
    grand_total: float
    threshold: Optional[ThresholdConfig] = None


# ==============================
# Helpers
# ==============================
def _domain(values: Sequence[float], min_y: Optional[float], max_y: Optional[float]) -> List[float]:
    lo = min_y if min_y is not None else min([0.0, *values])
    hi = max_y if max_y is not None else max([lo, *values])
    return [float(lo), float(hi)]


def _stack(series: List[SeriesData], n: int) -> List[float]:
    """Fill per-series stack segments; returns stacked heights per category."""
    pos_base = [0.0] * n
    neg_base = [0.0] * n
    for s in series:
        segs: List[StackSegment] = []
        for i, v in enumerate(s.values):
            val = v or 0.0
            if val >= 0:
                segs.append(StackSegment(y0=pos_base[i], y1=pos_base[i] + val))
                pos_base[i] += val
            else:
                segs.append(StackSegment(y0=neg_base[i] + val, y1=neg_base[i]))
                neg_base[i] += val
        s.stack = segs
    return pos_base + neg_base


def build_series(table: CanonicalTable, config: SeriesChartConfig) -> SeriesChartModel:
    x_idx = require_column(config.x_column, table, default=0, role="x column")
    y_idx = [require_column(ref, table, role="y column") for ref in config.y_refs()]
    palette = resolve_colors(config.colors)
    n = table.row_count
    positions = point_positions(n)
    threshold: Optional[ThresholdConfig] = getattr(config, "threshold", None)

    series: List[SeriesData] = []
    for k, idx in enumerate(y_idx):
        values = [to_float(row[idx]) for row in table.rows]
        name = table.columns[idx]
        data = SeriesData(
            name=name,
            label=pretty_print_text(name),
            color=pick_color(palette, k),
            values=values,
            total=math.fsum(v for v in values if v is not None),
        )
        if threshold is not None:
            if config.type == "clusteredBar":
                data.point_pass = [threshold.passes(v) for v in values]
            else:
                gradient = compute_crossings(
                    [(float(i), v) for i, v in enumerate(values)],
                    threshold,
                    positions=positions,
                )
                data.point_pass = gradient.point_pass
                data.gradient = gradient.stops
                data.crossings = gradient.crossings
        series.append(data)

    grand_total = math.fsum(s.total for s in series)
    for s in series:
        s.percentage = (s.total / grand_total * 100.0) if grand_total else None

    if config.type == "stackedBar":
        extent = _stack(series, n)
    else:
        extent = [v for s in series for v in s.values if v is not None]

    return SeriesChartModel(
        chart=config.type,
        x_column=table.columns[x_idx],
        x_labels=[json_safe(row[x_idx]) for row in table.rows],
        x_positions=positions,
        series=series,
        y_domain=_domain(extent, config.min_y, config.max_y),
        grand_total=grand_total,
        threshold=threshold,
    )
