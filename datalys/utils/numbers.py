# ==============================
# Numeric Coercion
# ==============================
"""
Shared numeric coercion for cells and template arguments.

Booleans are never numbers. Non-finite values coerce to None.
"""

from __future__ import annotations

import math
from typing import Any, Optional, Union


Number = Union[int, float]


def to_number(value: Any) -> Optional[Number]:
    """Parse a cell as int or float, keeping ints exact. Commas are thousands separators."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if not isinstance(value, str):
        return None
    text = value.strip().replace(",", "")
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        parsed = float(text)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def to_float(value: Any) -> Optional[float]:
    num = to_number(value)
    return float(num) if num is not None else None
