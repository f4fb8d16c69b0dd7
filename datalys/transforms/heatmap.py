# ==============================
# Heatmap
# ==============================
from __future__ import annotations

from datetime import datetime
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict

from datalys.contracts.dataset_schema import CanonicalTable
from datalys.contracts.document_schema import VisualBase
from datalys.contracts.errors import InsufficientDataError
from datalys.datasets.columns import require_column
from datalys.datasets.dates import print_date
from datalys.utils.colors import ColorProperty
from datalys.utils.numbers import to_float


ColumnRef = Union[str, int]


class HeatmapConfig(VisualBase):
    type: Literal["heatmap"] = "heatmap"
    x_column: Optional[ColumnRef] = None
    y_column: Optional[ColumnRef] = None
    value_column: Optional[ColumnRef] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    show_axis_labels: bool = True
    show_cell_labels: bool = False
    x_axis_label: Any = None
    y_axis_label: Any = None
    empty_label: Any = None
    color: Optional[ColorProperty] = None


class HeatmapCell(BaseModel):
    model_config = ConfigDict(extra="forbid")

    x: str
    y: str
    value: float
    intensity: float


class HeatmapModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    cells: List[HeatmapCell]
    x_categories: List[str]
    y_categories: List[str]
    domain: List[float]


def _category(value: Any) -> str:
    if isinstance(value, datetime):
        return print_date(value)
    return str(value)


def build_heatmap(table: CanonicalTable, config: HeatmapConfig) -> HeatmapModel:
    x_idx = require_column(config.x_column, table, default=0, role="x column")
    y_idx = require_column(config.y_column, table, default=1, role="y column")
    v_idx = require_column(config.value_column, table, default=2, role="value column")

    raw = []
    xs: List[str] = []
    ys: List[str] = []
    for row in table.rows:
        v = to_float(row[v_idx])
        if v is None:
            continue
        x, y = _category(row[x_idx]), _category(row[y_idx])
        if x not in xs:
            xs.append(x)
        if y not in ys:
            ys.append(y)
        raw.append((x, y, v))

    if not raw:
        raise InsufficientDataError("heatmap has no numeric cells")

    values = [v for _, _, v in raw]
    lo = config.min_value if config.min_value is not None else min(values)
    hi = config.max_value if config.max_value is not None else max(values)
    span = hi - lo
    cells = [
        HeatmapCell(x=x, y=y, value=v, intensity=min(1.0, max(0.0, (v - lo) / span)) if span > 0 else 0.5)
        for x, y, v in raw
    ]
    return HeatmapModel(cells=cells, x_categories=xs, y_categories=ys, domain=[float(lo), float(hi)])
