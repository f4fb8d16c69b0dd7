# ==============================
# Template Formatting Helpers
# ==============================
"""
Value formatters shared by both template evaluators.

Numbers follow en-US display: thousands separators, and when no digit count is
given, up to three fraction digits with trailing zeros dropped.
NO_DATA passes through every formatter untouched.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Optional, Union

from datalys.datasets.dates import format_date as _format_date
from datalys.datasets.dates import parse_date
from datalys.transforms.aggregates import NO_DATA, NoData
from datalys.utils.numbers import to_number


Formatted = Union[str, NoData]


def _digits(value: Any, default: Optional[int]) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)) and math.isfinite(value) and float(value).is_integer() and value >= 0:
        return int(value)
    return default


def _strip_zero(text: str) -> str:
    if text.startswith("-") and not any(c in "123456789" for c in text):
        return text[1:]
    return text


def _missing(value: Any) -> bool:
    if value is NO_DATA:
        return True
    return isinstance(value, float) and not math.isfinite(value)


def format_number(value: Any, digits: Any = None) -> Formatted:
    if _missing(value):
        return NO_DATA
    n = to_number(value)
    if n is None:
        raise ValueError(f"formatNumber expects a number, got {value!r}")
    d = _digits(digits, None)
    if d is not None:
        return _strip_zero(f"{n:.{d}f}")
    if isinstance(n, int):
        return f"{n:,}"
    text = f"{n:,.3f}".rstrip("0").rstrip(".")
    return _strip_zero(text)


def format_percent(value: Any, digits: Any = 1) -> Formatted:
    if _missing(value):
        return NO_DATA
    n = to_number(value)
    if n is None:
        raise ValueError(f"formatPercent expects a number, got {value!r}")
    d = _digits(digits, 1)
    return f"{_strip_zero(f'{n * 100:.{d}f}')}%"


def format_currency(value: Any, symbol: Any = "$", digits: Any = 2) -> Formatted:
    if _missing(value):
        return NO_DATA
    n = to_number(value)
    if n is None:
        raise ValueError(f"formatCurrency expects a number, got {value!r}")
    s = symbol if isinstance(symbol, str) else "$"
    d = _digits(digits, 2)
    return f"{s}{_strip_zero(f'{n:,.{d}f}')}"


def format_date(value: Any, fmt: Any = "YYYY-MM-DD") -> Formatted:
    if _missing(value):
        return NO_DATA
    parsed = value if isinstance(value, datetime) else parse_date(value)
    if parsed is None:
        raise ValueError(f"formatDate expects a date, got {value!r}")
    return _format_date(parsed, fmt if isinstance(fmt, str) else "YYYY-MM-DD")


def format_display(
    value: Any,
    fmt: str = "number",
    *,
    currency_symbol: str = "$",
    precision: int = 2,
    date_format: str = "YYYY-MM-DD",
) -> Formatted:
    """KPI / gauge value formatting: number | currency | percent | date."""
    if fmt == "date":
        return format_date(value, date_format)
    if _missing(value):
        return NO_DATA
    n = to_number(value)
    if n is None:
        raise ValueError(f"cannot format {value!r} as {fmt}")
    if fmt == "percent":
        return format_percent(n, precision)
    if fmt == "currency":
        text = f"{n:,.{precision}f}"
        if precision > 0:
            text = text.rstrip("0").rstrip(".")
        return f"{currency_symbol}{_strip_zero(text)}"
    return format_number(round(n, precision) if isinstance(n, float) else n)
