# ==============================
# Date Helpers
# ==============================
"""
Date parsing and formatting for date-tagged columns and templates.

Parsed values are timezone-aware datetimes; naive input is taken as UTC.
Format tokens: YYYY MM DD hh mm ss.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timezone
from typing import Any, Optional, Sequence


DEFAULT_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d.%m.%Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%d %b %Y",
    "%b %d, %Y",
)

# numbers above this are unix milliseconds, below are seconds
MS_THRESHOLD = 10_000_000_000

_TOKEN_RE = re.compile(r"YYYY|MM|DD|hh|mm|ss")


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def from_unix_timestamp(value: float) -> Optional[datetime]:
    if not math.isfinite(value):
        return None
    seconds = value / 1000.0 if abs(value) > MS_THRESHOLD else value
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def parse_date(value: Any, formats: Sequence[str] = DEFAULT_DATE_FORMATS) -> Optional[datetime]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _aware(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return from_unix_timestamp(float(value))
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return _aware(datetime.fromisoformat(iso))
    except ValueError:
        pass
    for fmt in formats:
        try:
            return _aware(datetime.strptime(text, fmt))
        except ValueError:
            continue
    try:
        return from_unix_timestamp(float(text))
    except ValueError:
        return None


def format_date(value: datetime, fmt: str) -> str:
    def replace(match: re.Match[str]) -> str:
        token = match.group(0)
        if token == "YYYY":
            return f"{value.year:04d}"
        if token == "MM":
            return f"{value.month:02d}"
        if token == "DD":
            return f"{value.day:02d}"
        if token == "hh":
            return f"{value.hour:02d}"
        if token == "mm":
            return f"{value.minute:02d}"
        return f"{value.second:02d}"

    return _TOKEN_RE.sub(replace, fmt)


def print_date(value: datetime, fmt: str = "YYYY-MM-DD") -> str:
    return format_date(value, fmt)


def print_datetime(value: datetime, fmt: str = "YYYY-MM-DD hh:mm:ss") -> str:
    return format_date(value, fmt)
