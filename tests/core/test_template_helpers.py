# ==============================
# Formatting Helper Tests
# ==============================
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from datalys.templating.helpers import (
    format_currency,
    format_date,
    format_display,
    format_number,
    format_percent,
)
from datalys.transforms.aggregates import NO_DATA
from datalys.utils.text import pretty_print_text


@pytest.mark.parametrize(
    "value, digits, expected",
    [
        (1234, None, "1,234"),
        (1234.5678, None, "1,234.568"),
        (2.5, None, "2.5"),
        (2.0, None, "2"),
        (3.14159, 2, "3.14"),
        (-0.001, 1, "0.0"),
        ("42", None, "42"),
    ],
)
def test_format_number(value, digits, expected) -> None:
    assert format_number(value, digits) == expected


def test_format_percent_and_currency() -> None:
    assert format_percent(0.1234) == "12.3%"
    assert format_percent(0.1234, 2) == "12.34%"
    assert format_currency(5) == "$5.00"
    assert format_currency(1000, "£", 0) == "£1,000"


def test_no_data_passes_through() -> None:
    assert format_number(NO_DATA) is NO_DATA
    assert format_percent(float("nan")) is NO_DATA
    assert format_currency(NO_DATA) is NO_DATA
    assert format_date(NO_DATA) is NO_DATA


def test_non_numbers_raise_value_error() -> None:
    with pytest.raises(ValueError):
        format_number("abc")
    with pytest.raises(ValueError):
        format_date("someday")


def test_format_display_modes() -> None:
    assert format_display(1234.567, "number", precision=1) == "1,234.6"
    assert format_display(1234.5, "currency", currency_symbol="€") == "€1,234.5"
    assert format_display(0.4567, "percent", precision=1) == "45.7%"
    when = datetime(2024, 1, 2, tzinfo=timezone.utc)
    assert format_display(when, "date", date_format="MM/DD/YYYY") == "01/02/2024"


def test_pretty_print_text() -> None:
    assert pretty_print_text("net_sales") == "Net Sales"
    assert pretty_print_text("REGION name") == "Region Name"
    assert pretty_print_text("long_column_name", max_length=4) == "Long..."
    assert pretty_print_text("keep_me", proper_case=False, replace_underscores=False) == "keep_me"
