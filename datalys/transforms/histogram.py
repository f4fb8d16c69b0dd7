# ==============================
# Histogram Binning
# ==============================
"""
Equal-width bins over [min, max] of a numeric column.

Bin i covers [edge_i, edge_i+1); the last bin also includes the maximum.
When every value is equal there is a single bin holding all of them.
"""

from __future__ import annotations

import bisect
from typing import List, Literal, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

from datalys.contracts.dataset_schema import CanonicalTable
from datalys.contracts.document_schema import VisualBase
from datalys.contracts.errors import InsufficientDataError
from datalys.datasets.columns import require_column
from datalys.transforms.aggregates import numeric_values


DEFAULT_BINS = 10


class HistogramBin(BaseModel):
    model_config = ConfigDict(extra="forbid")

    start: float
    end: float
    count: int
    inclusive_end: bool = False


class HistogramModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    column: str
    bins: List[HistogramBin]
    total: int
    max_count: int
    domain: List[float]


def bin_edges(lo: float, hi: float, bins: int) -> List[float]:
    if bins < 1:
        raise ValueError("bins must be >= 1")
    width = hi - lo
    edges = [lo + width * i / bins for i in range(bins)]
    edges.append(hi)
    return edges


def compute_bins(values: Sequence[float], bins: int = DEFAULT_BINS) -> List[HistogramBin]:
    if not values:
        raise InsufficientDataError("histogram needs at least one numeric value")
    lo, hi = min(values), max(values)
    if lo == hi:
        return [HistogramBin(start=lo, end=hi, count=len(values), inclusive_end=True)]

    edges = bin_edges(lo, hi, bins)
    counts = [0] * bins
    for v in values:
        idx = bisect.bisect_right(edges, v) - 1
        counts[min(max(idx, 0), bins - 1)] += 1
    return [
        HistogramBin(start=edges[i], end=edges[i + 1], count=counts[i], inclusive_end=(i == bins - 1))
        for i in range(bins)
    ]


class HistogramConfig(VisualBase):
    type: Literal["histogram"] = "histogram"
    column: Optional[Union[str, int]] = None
    bins: Optional[int] = Field(default=None, ge=1)
    x_axis_label: object = None
    y_axis_label: object = None


def build_histogram(table: CanonicalTable, config: HistogramConfig, *, default_bins: int = DEFAULT_BINS) -> HistogramModel:
    idx = require_column(config.column, table, default=0, role="column")
    values = [float(v) for v in numeric_values(table, idx)]
    result = compute_bins(values, config.bins or default_bins)
    return HistogramModel(
        column=table.columns[idx],
        bins=result,
        total=len(values),
        max_count=max(b.count for b in result),
        domain=[result[0].start, result[-1].end],
    )
