# ==============================
# Column Aggregates
# ==============================
"""
sum / avg / min / max / count over one resolved column.

Absent and non-numeric cells are skipped, never counted as zero.
Zero eligible cells yields NO_DATA instead of 0 or NaN.
"""

from __future__ import annotations

import math
from typing import Callable, Dict, List, Literal, Union

from datalys.contracts.dataset_schema import CanonicalTable
from datalys.utils.numbers import Number, to_number


AggregateOp = Literal["sum", "avg", "min", "max"]


class NoData:
    """Singleton result for aggregates with no eligible values."""

    _instance: "NoData | None" = None

    def __new__(cls) -> "NoData":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_DATA"


NO_DATA = NoData()

AggregateResult = Union[Number, NoData]


def numeric_values(table: CanonicalTable, column: int) -> List[Number]:
    out: List[Number] = []
    for row in table.rows:
        num = to_number(row[column])
        if num is not None:
            out.append(num)
    return out


def _sum(values: List[Number]) -> Number:
    if all(isinstance(v, int) for v in values):
        return sum(values)
    return math.fsum(values)


def _avg(values: List[Number]) -> float:
    return math.fsum(values) / len(values)


_OPS: Dict[str, Callable[[List[Number]], Number]] = {
    "sum": _sum,
    "avg": _avg,
    "min": min,
    "max": max,
}


def aggregate(table: CanonicalTable, column: int, op: AggregateOp) -> AggregateResult:
    if op not in _OPS:
        raise ValueError(f"Unknown aggregate: {op}")
    values = numeric_values(table, column)
    if not values:
        return NO_DATA
    return _OPS[op](values)


def count_rows(table: CanonicalTable) -> int:
    return table.row_count
