# ==============================
# Threshold Color Blending
# ==============================
"""
Pass/fail classification of a series against a threshold, and the exact
crossing points used to build a two-color gradient along the series.

Offsets and blend spans are percentages of the chart's inner width. Points
are positioned like a band/point scale with 0.5 padding unless explicit
positions (0..1) are given. A blend width of 0 produces a hard transition:
two stops at the crossing offset and no interpolation span.

Stops: every valid point contributes one stop at its own offset in its own
color; each crossing adds a pair (blend start in the previous color, blend
end in the next). Stops are ordered by offset and no end stops are added.
"""

from __future__ import annotations

from typing import List, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from datalys.utils.numbers import to_float


ThresholdMode = Literal["above", "below", "equals"]

PASS_COLOR = "#22c55e"
FAIL_COLOR = "#ef4444"
MAX_BLEND_WIDTH = 50.0


class ThresholdConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, alias_generator=to_camel)

    value: float
    mode: ThresholdMode = "above"
    pass_color: str = PASS_COLOR
    fail_color: str = FAIL_COLOR
    show_line: bool = True
    line_style: Literal["solid", "dashed", "dotted"] = "dashed"
    line_color: Optional[str] = None
    label: Optional[str] = None
    blend_width: float = 5.0
    apply_to: Literal["both", "markers", "lines"] = "both"

    @field_validator("blend_width")
    @classmethod
    def _clamp_blend(cls, v: float) -> float:
        return max(0.0, min(MAX_BLEND_WIDTH, float(v)))

    def passes(self, y: Optional[float]) -> Optional[bool]:
        if y is None:
            return None
        if self.mode == "below":
            return y <= self.value
        if self.mode == "equals":
            return y == self.value
        return y >= self.value

    def color_for(self, passed: bool) -> str:
        return self.pass_color if passed else self.fail_color


class Crossing(BaseModel):
    model_config = ConfigDict(extra="forbid")

    segment: int
    t: float
    x: float
    offset: float
    blend_start: Optional[float] = None
    blend_end: Optional[float] = None
    from_pass: bool
    to_pass: bool


class GradientStop(BaseModel):
    model_config = ConfigDict(extra="forbid")

    offset: float
    color: str


class ThresholdGradient(BaseModel):
    model_config = ConfigDict(extra="forbid")

    crossings: List[Crossing] = Field(default_factory=list)
    stops: List[GradientStop] = Field(default_factory=list)
    point_pass: List[Optional[bool]] = Field(default_factory=list)


def point_positions(n: int, padding: float = 0.5) -> List[float]:
    """Fractional x positions of n evenly spaced points (d3 scalePoint with padding)."""
    if n <= 0:
        return []
    step = 1.0 / (n - 1 + 2 * padding)
    return [(i + padding) * step for i in range(n)]


def _crossing_t(y0: float, y1: float, threshold: float) -> float:
    if y1 == y0:
        return 0.5
    t = (threshold - y0) / (y1 - y0)
    return max(0.0, min(1.0, t))


def compute_crossings(
    points: Sequence[Tuple[float, Optional[float]]],
    config: ThresholdConfig,
    *,
    positions: Optional[Sequence[float]] = None,
) -> ThresholdGradient:
    """
    points: (x, y) pairs in series order; y may be None (skipped).
    positions: fractional horizontal position of each point; defaults to point_positions.
    """
    pos = list(positions) if positions is not None else point_positions(len(points))
    if len(pos) != len(points):
        raise ValueError("positions must align with points")

    flags = [config.passes(to_float(y)) for _, y in points]
    valid = [i for i, f in enumerate(flags) if f is not None]
    if not valid:
        return ThresholdGradient(point_pass=flags)

    bw = config.blend_width
    crossings: List[Crossing] = []
    stops: List[GradientStop] = []

    prev: Optional[int] = None
    for b in valid:
        a = prev
        prev = b
        if a is not None and flags[a] != flags[b]:
            x0, y0 = float(points[a][0]), float(points[a][1])
            x1, y1 = float(points[b][0]), float(points[b][1])
            t = _crossing_t(y0, y1, config.value)
            offset = (pos[a] + t * (pos[b] - pos[a])) * 100.0
            prev_color = config.color_for(flags[a])
            next_color = config.color_for(flags[b])
            if bw > 0:
                start, end = max(0.0, offset - bw), min(100.0, offset + bw)
                stops.append(GradientStop(offset=start, color=prev_color))
                stops.append(GradientStop(offset=end, color=next_color))
            else:
                start = end = None
                stops.append(GradientStop(offset=offset, color=prev_color))
                stops.append(GradientStop(offset=offset, color=next_color))
            crossings.append(
                Crossing(
                    segment=a,
                    t=t,
                    x=x0 + t * (x1 - x0),
                    offset=offset,
                    blend_start=start,
                    blend_end=end,
                    from_pass=bool(flags[a]),
                    to_pass=bool(flags[b]),
                )
            )
        stops.append(GradientStop(offset=pos[b] * 100.0, color=config.color_for(flags[b])))

    # sort is stable; equal offsets keep push order
    stops.sort(key=lambda s: s.offset)
    return ThresholdGradient(crossings=crossings, stops=stops, point_pass=flags)
