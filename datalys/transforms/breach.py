# ==============================
# Breach / Trend Classification
# ==============================
"""
Threshold status and period-over-period change for KPI-style values.

goodDirection "lower":  value >= breach -> breach, value >= warning -> warning
goodDirection "higher": value <= breach -> breach, value <= warning -> warning
A missing value, or no thresholds at all, classifies as None (no indicator).
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict

from datalys.utils.numbers import to_float


BreachStatus = Literal["ok", "warning", "breach"]
GoodDirection = Literal["higher", "lower"]


def classify_breach(
    value: Any,
    *,
    breach_value: Optional[float] = None,
    warning_value: Optional[float] = None,
    good_direction: GoodDirection = "higher",
) -> Optional[BreachStatus]:
    v = to_float(value)
    if v is None:
        return None
    if breach_value is None and warning_value is None:
        return None
    if good_direction == "lower":
        if breach_value is not None and v >= breach_value:
            return "breach"
        if warning_value is not None and v >= warning_value:
            return "warning"
        return "ok"
    if breach_value is not None and v <= breach_value:
        return "breach"
    if warning_value is not None and v <= warning_value:
        return "warning"
    return "ok"


class TrendModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    change: float
    direction: Literal["up", "down", "flat"]
    favorable: Optional[bool]
    adjective: Literal["above", "below", "from"]


def compute_change(value: Any, comparison: Any) -> Optional[float]:
    """Relative change against |comparison|; None when either side is missing or comparison is 0."""
    v = to_float(value)
    c = to_float(comparison)
    if v is None or c is None or c == 0:
        return None
    return (v - c) / abs(c)


def describe_trend(change: Optional[float], good_direction: GoodDirection = "higher") -> Optional[TrendModel]:
    if change is None:
        return None
    if change == 0:
        return TrendModel(change=0.0, direction="flat", favorable=None, adjective="from")
    rising = change > 0
    favorable = rising if good_direction == "higher" else not rising
    return TrendModel(
        change=change,
        direction="up" if rising else "down",
        favorable=favorable,
        adjective="above" if rising else "below",
    )
