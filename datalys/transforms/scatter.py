# ==============================
# Scatter Plot
# ==============================
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict

from datalys.contracts.dataset_schema import CanonicalTable, json_safe
from datalys.contracts.document_schema import VisualBase
from datalys.contracts.errors import InsufficientDataError
from datalys.datasets.columns import require_column
from datalys.transforms.regression import RegressionModel, linear_regression
from datalys.utils.colors import ColorProperty, pick_color, resolve_colors
from datalys.utils.numbers import to_float


ColumnRef = Union[str, int]


class ScatterConfig(VisualBase):
    type: Literal["scatter"] = "scatter"
    x_column: Optional[ColumnRef] = None
    y_column: Optional[ColumnRef] = None
    category_column: Optional[ColumnRef] = None
    min_x: Optional[float] = None
    max_x: Optional[float] = None
    min_y: Optional[float] = None
    max_y: Optional[float] = None
    x_axis_label: Any = None
    y_axis_label: Any = None
    legend_title: Any = None
    colors: Optional[ColorProperty] = None
    show_legend: bool = True
    point_size: float = 5
    show_trendline: bool = False
    show_correlation: bool = False


class ScatterPoint(BaseModel):
    model_config = ConfigDict(extra="forbid")

    row: int
    x: float
    y: float
    category: Optional[str] = None
    color: str


class Trendline(BaseModel):
    model_config = ConfigDict(extra="forbid")

    available: bool
    reason: Optional[str] = None
    regression: Optional[RegressionModel] = None
    start: Optional[List[float]] = None
    end: Optional[List[float]] = None


class ScatterModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    points: List[ScatterPoint]
    categories: List[str]
    category_colors: Dict[str, str]
    x_domain: List[float]
    y_domain: List[float]
    skipped: int
    trend: Optional[Trendline] = None
    correlation: Optional[float] = None


def _extent(values: List[float], lo: Optional[float], hi: Optional[float]) -> List[float]:
    return [
        float(lo) if lo is not None else min(values),
        float(hi) if hi is not None else max(values),
    ]


def fit_trendline(points: List[ScatterPoint], x_domain: List[float]) -> Trendline:
    try:
        model = linear_regression([(p.x, p.y) for p in points])
    except InsufficientDataError as exc:
        return Trendline(available=False, reason=exc.message)
    x0, x1 = x_domain
    return Trendline(
        available=True,
        regression=model,
        start=[x0, model.predict(x0)],
        end=[x1, model.predict(x1)],
    )


def build_scatter(table: CanonicalTable, config: ScatterConfig) -> ScatterModel:
    x_idx = require_column(config.x_column, table, default=0, role="x column")
    y_idx = require_column(config.y_column, table, default=1, role="y column")
    cat_idx = require_column(config.category_column, table, role="category column") if config.category_column is not None else None
    palette = resolve_colors(config.colors)

    categories: List[str] = []
    colors: Dict[str, str] = {}
    points: List[ScatterPoint] = []
    skipped = 0
    for i, row in enumerate(table.rows):
        x, y = to_float(row[x_idx]), to_float(row[y_idx])
        if x is None or y is None:
            skipped += 1
            continue
        category = None
        if cat_idx is not None:
            category = str(json_safe(row[cat_idx]))
            if category not in colors:
                colors[category] = pick_color(palette, len(categories))
                categories.append(category)
        color = colors[category] if category is not None else pick_color(palette, 0)
        points.append(ScatterPoint(row=i, x=x, y=y, category=category, color=color))

    if not points:
        raise InsufficientDataError("scatter plot has no complete (x, y) pairs")

    x_domain = _extent([p.x for p in points], config.min_x, config.max_x)
    y_domain = _extent([p.y for p in points], config.min_y, config.max_y)

    trend: Optional[Trendline] = None
    correlation: Optional[float] = None
    if config.show_trendline or config.show_correlation:
        trend = fit_trendline(points, x_domain)
        if trend.regression is not None:
            correlation = trend.regression.r

    return ScatterModel(
        points=points,
        categories=categories,
        category_colors=colors,
        x_domain=x_domain,
        y_domain=y_domain,
        skipped=skipped,
        trend=trend,
        correlation=correlation,
    )
