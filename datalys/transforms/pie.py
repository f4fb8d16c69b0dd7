# ==============================
# Pie Chart
# ==============================
from __future__ import annotations

import math
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict

from datalys.contracts.dataset_schema import CanonicalTable, json_safe
from datalys.contracts.document_schema import VisualBase
from datalys.datasets.columns import require_column
from datalys.utils.colors import ColorProperty, pick_color, resolve_colors
from datalys.utils.numbers import to_float


TAU = 2 * math.pi
LABEL_MIN_SHARE = 0.02


class PieConfig(VisualBase):
    type: Literal["pie"] = "pie"
    category_column: Optional[Union[str, int]] = None
    value_column: Optional[Union[str, int]] = None
    inner_radius: float = 0
    pad_angle: float = 0
    colors: Optional[ColorProperty] = None
    show_legend: bool = True
    legend_title: Any = None


class PieSlice(BaseModel):
    model_config = ConfigDict(extra="forbid")

    label: str
    value: float
    percentage: float
    start_angle: float
    end_angle: float
    color: str
    show_label: bool


class PieModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    slices: List[PieSlice]
    total: float
    skipped: int


def build_pie(table: CanonicalTable, config: PieConfig) -> PieModel:
    """Slices in row order; non-numeric values are dropped, negatives count as 0."""
    cat_idx = require_column(config.category_column, table, default=0, role="category column")
    val_idx = require_column(config.value_column, table, default=1, role="value column")
    palette = resolve_colors(config.colors)

    pairs = []
    skipped = 0
    for row in table.rows:
        v = to_float(row[val_idx])
        if v is None:
            skipped += 1
            continue
        pairs.append((str(json_safe(row[cat_idx])), max(0.0, v)))

    total = math.fsum(v for _, v in pairs)
    slices: List[PieSlice] = []
    angle = 0.0
    for i, (label, v) in enumerate(pairs):
        share = v / total if total > 0 else 0.0
        end = angle + share * TAU
        slices.append(
            PieSlice(
                label=label,
                value=v,
                percentage=share * 100.0,
                start_angle=angle,
                end_angle=end,
                color=pick_color(palette, i),
                show_label=share >= LABEL_MIN_SHARE,
            )
        )
        angle = end
    return PieModel(slices=slices, total=total, skipped=skipped)
