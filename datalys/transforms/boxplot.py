# ==============================
# Box Plot Statistics
# ==============================
"""
Quartiles, whiskers and outliers for box plots.

Raw mode groups a numeric column (optionally by category, first-seen order)
and computes R-7 linear-interpolation quantiles. Outliers lie outside
[Q1 - 1.5*IQR, Q3 + 1.5*IQR]; whiskers stop at the most extreme values inside.
Pre-calculated mode reads min/q1/median/q3/max(/mean) columns as given.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Literal, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict

from datalys.contracts.dataset_schema import CanonicalTable
from datalys.contracts.document_schema import VisualBase
from datalys.contracts.errors import InsufficientDataError
from datalys.datasets.columns import require_column
from datalys.utils.numbers import to_float


ColumnRef = Union[str, int]
DEFAULT_GROUP = "All"
FENCE_FACTOR = 1.5


def quantile(sorted_values: Sequence[float], p: float) -> float:
    """Linear interpolation between closest ranks (R-7, same as numpy's default)."""
    n = len(sorted_values)
    if n == 0:
        raise InsufficientDataError("quantile of an empty sample")
    if n == 1:
        return float(sorted_values[0])
    h = (n - 1) * p
    lo = math.floor(h)
    hi = min(lo + 1, n - 1)
    return float(sorted_values[lo]) + (h - lo) * (float(sorted_values[hi]) - float(sorted_values[lo]))


class BoxStats(BaseModel):
    model_config = ConfigDict(extra="forbid")

    category: str
    count: int
    min: float
    q1: float
    median: float
    q3: float
    max: float
    mean: Optional[float] = None
    iqr: Optional[float] = None
    lower_fence: Optional[float] = None
    upper_fence: Optional[float] = None
    whisker_low: float
    whisker_high: float
    outliers: List[float]


def box_stats(category: str, values: Sequence[float], *, show_outliers: bool = True) -> BoxStats:
    ordered = sorted(values)
    if not ordered:
        raise InsufficientDataError(f"group '{category}' has no numeric values")
    q1 = quantile(ordered, 0.25)
    median = quantile(ordered, 0.5)
    q3 = quantile(ordered, 0.75)
    iqr = q3 - q1
    low_fence = q1 - FENCE_FACTOR * iqr
    high_fence = q3 + FENCE_FACTOR * iqr

    whisker_low, whisker_high = ordered[0], ordered[-1]
    outliers: List[float] = []
    if show_outliers:
        inside = [v for v in ordered if low_fence <= v <= high_fence]
        whisker_low = inside[0] if inside else ordered[0]
        whisker_high = inside[-1] if inside else ordered[-1]
        outliers = [v for v in ordered if v < low_fence or v > high_fence]

    return BoxStats(
        category=category,
        count=len(ordered),
        min=ordered[0],
        q1=q1,
        median=median,
        q3=q3,
        max=ordered[-1],
        mean=math.fsum(ordered) / len(ordered),
        iqr=iqr,
        lower_fence=low_fence,
        upper_fence=high_fence,
        whisker_low=whisker_low,
        whisker_high=whisker_high,
        outliers=outliers,
    )


# ==============================
# Visual
# ==============================
class BoxPlotConfig(VisualBase):
    type: Literal["boxPlot"] = "boxPlot"
    data_column: Optional[ColumnRef] = None
    category_column: Optional[ColumnRef] = None
    min_column: Optional[ColumnRef] = None
    q1_column: Optional[ColumnRef] = None
    median_column: Optional[ColumnRef] = None
    q3_column: Optional[ColumnRef] = None
    max_column: Optional[ColumnRef] = None
    mean_column: Optional[ColumnRef] = None
    direction: Literal["horizontal", "vertical"] = "vertical"
    show_outliers: bool = True
    x_axis_label: Any = None
    y_axis_label: Any = None


class BoxPlotModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    mode: Literal["raw", "precalculated"]
    boxes: List[BoxStats]
    unavailable: List[str]
    domain: Optional[List[float]]
    direction: str


def _domain(boxes: Sequence[BoxStats]) -> Optional[List[float]]:
    if not boxes:
        return None
    lows = [min(b.min, b.whisker_low, *b.outliers) if b.outliers else min(b.min, b.whisker_low) for b in boxes]
    highs = [max(b.max, b.whisker_high, *b.outliers) if b.outliers else max(b.max, b.whisker_high) for b in boxes]
    return [min(lows), max(highs)]


def _precalculated(table: CanonicalTable, config: BoxPlotConfig) -> BoxPlotModel:
    idx = {
        name: require_column(getattr(config, f"{name}_column"), table, role=f"{name} column")
        for name in ("min", "q1", "median", "q3", "max")
    }
    mean_idx = require_column(config.mean_column, table, role="mean column") if config.mean_column is not None else None
    cat_idx = require_column(config.category_column, table, role="category column") if config.category_column is not None else None

    boxes: List[BoxStats] = []
    unavailable: List[str] = []
    for i, row in enumerate(table.rows):
        category = str(row[cat_idx]) if cat_idx is not None else f"Row {i + 1}"
        vals: Dict[str, Optional[float]] = {name: to_float(row[c]) for name, c in idx.items()}
        if any(v is None for v in vals.values()):
            unavailable.append(category)
            continue
        boxes.append(
            BoxStats(
                category=category,
                count=0,
                min=vals["min"],
                q1=vals["q1"],
                median=vals["median"],
                q3=vals["q3"],
                max=vals["max"],
                mean=to_float(row[mean_idx]) if mean_idx is not None else None,
                whisker_low=vals["min"],
                whisker_high=vals["max"],
                outliers=[],
            )
        )
    return BoxPlotModel(
        mode="precalculated",
        boxes=boxes,
        unavailable=unavailable,
        domain=_domain(boxes),
        direction=config.direction,
    )


def build_boxplot(table: CanonicalTable, config: BoxPlotConfig) -> BoxPlotModel:
    if config.data_column is None:
        return _precalculated(table, config)

    data_idx = require_column(config.data_column, table, role="data column")
    cat_idx = require_column(config.category_column, table, role="category column") if config.category_column is not None else None

    groups: Dict[str, List[float]] = {}
    for row in table.rows:
        category = str(row[cat_idx]) if cat_idx is not None else DEFAULT_GROUP
        bucket = groups.setdefault(category, [])
        value = to_float(row[data_idx])
        if value is not None:
            bucket.append(value)

    boxes: List[BoxStats] = []
    unavailable: List[str] = []
    for category, values in groups.items():
        if not values:
            unavailable.append(category)
            continue
        boxes.append(box_stats(category, values, show_outliers=config.show_outliers))
    if not boxes:
        raise InsufficientDataError(f"no numeric values in column {table.columns[data_idx]!r}")
    return BoxPlotModel(
        mode="raw",
        boxes=boxes,
        unavailable=unavailable,
        domain=_domain(boxes),
        direction=config.direction,
    )
