# ==============================
# Threshold Blend Tests
# ==============================
from __future__ import annotations

import pytest

from datalys.transforms.threshold import (
    FAIL_COLOR,
    PASS_COLOR,
    ThresholdConfig,
    compute_crossings,
    point_positions,
)


def test_modes() -> None:
    above = ThresholdConfig(value=50)
    below = ThresholdConfig(value=50, mode="below")
    equals = ThresholdConfig(value=50, mode="equals")
    assert above.passes(50) is True and above.passes(49) is False
    assert below.passes(50) is True and below.passes(51) is False
    assert equals.passes(50) is True and equals.passes(50.1) is False
    assert above.passes(None) is None


def test_blend_width_is_clamped_and_aliases_accepted() -> None:
    cfg = ThresholdConfig.model_validate({"value": 1, "blendWidth": 80, "passColor": "green"})
    assert cfg.blend_width == 50
    assert cfg.pass_color == "green"
    assert ThresholdConfig(value=1, blend_width=-3).blend_width == 0


def test_point_positions_use_half_padding() -> None:
    assert point_positions(2) == [0.25, 0.75]
    assert point_positions(1) == [0.5]
    assert point_positions(0) == []


def test_crossing_interpolates_exact_x() -> None:
    gradient = compute_crossings([(0, 40), (1, 60)], ThresholdConfig(value=50), positions=[0.0, 1.0])
    assert len(gradient.crossings) == 1
    crossing = gradient.crossings[0]
    assert crossing.x == pytest.approx(0.5)
    assert crossing.offset == pytest.approx(50)
    assert (crossing.blend_start, crossing.blend_end) == (45, 55)
    assert (crossing.from_pass, crossing.to_pass) == (False, True)
    assert [s.offset for s in gradient.stops] == [0, 45, 55, 100]
    assert [s.color for s in gradient.stops] == [FAIL_COLOR, FAIL_COLOR, PASS_COLOR, PASS_COLOR]


def test_points_inside_blend_span_keep_their_own_stops() -> None:
    gradient = compute_crossings([(0, 40), (1, 60)], ThresholdConfig(value=50, blend_width=30))
    assert [(s.offset, s.color) for s in gradient.stops] == [
        (pytest.approx(20), FAIL_COLOR),
        (pytest.approx(25), FAIL_COLOR),
        (pytest.approx(75), PASS_COLOR),
        (pytest.approx(80), PASS_COLOR),
    ]


def test_zero_blend_width_is_hard_transition() -> None:
    gradient = compute_crossings(
        [(0, 40), (1, 60)],
        ThresholdConfig(value=45, blend_width=0),
        positions=[0.0, 1.0],
    )
    crossing = gradient.crossings[0]
    assert crossing.offset == pytest.approx(25)
    assert crossing.blend_start is None and crossing.blend_end is None
    middle = gradient.stops[1:3]
    assert middle[0].offset == middle[1].offset
    assert (middle[0].color, middle[1].color) == (FAIL_COLOR, PASS_COLOR)


def test_blend_span_is_clipped_to_chart() -> None:
    gradient = compute_crossings([(0, 60), (1, 40)], ThresholdConfig(value=59, blend_width=10), positions=[0.0, 1.0])
    assert gradient.crossings[0].blend_start == 0
    assert gradient.stops[0].color == PASS_COLOR


def test_no_crossing_single_color() -> None:
    gradient = compute_crossings([(0, 60), (1, 70), (2, 80)], ThresholdConfig(value=50))
    assert gradient.crossings == []
    assert [s.color for s in gradient.stops] == [PASS_COLOR, PASS_COLOR, PASS_COLOR]
    assert [s.offset for s in gradient.stops] == pytest.approx([100 / 6, 50, 500 / 6])
    assert gradient.point_pass == [True, True, True]


def test_missing_points_are_skipped() -> None:
    gradient = compute_crossings([(0, 40), (1, None), (2, 60)], ThresholdConfig(value=50))
    assert gradient.point_pass == [False, None, True]
    assert len(gradient.crossings) == 1
    assert gradient.crossings[0].segment == 0
    assert gradient.crossings[0].x == pytest.approx(1.0)


def test_all_missing_has_no_stops() -> None:
    gradient = compute_crossings([(0, None)], ThresholdConfig(value=1))
    assert gradient.stops == []
    assert gradient.point_pass == [None]


def test_positions_must_align() -> None:
    with pytest.raises(ValueError):
        compute_crossings([(0, 1), (1, 2)], ThresholdConfig(value=1), positions=[0.5])
