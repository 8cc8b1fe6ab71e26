from datetime import date

import pytest

from classes.exceptions import ValidationError
from classes.validators import (
    is_finite_number,
    normalize_holiday_flag,
    normalize_manual_weekday,
    optional_trimmed,
    parse_iso_date,
    parse_weekday_label,
    resolve_class_weekday,
    resolve_download_count,
    sanitize_text,
    validate_day_type,
)


def test_parse_iso_date():
    assert parse_iso_date(" 2025-04-07 ") == date(2025, 4, 7)
    assert parse_iso_date(date(2025, 4, 7)) == date(2025, 4, 7)
    with pytest.raises(ValidationError, match="start_date"):
        parse_iso_date("2025-02-30", "start_date")
    with pytest.raises(ValidationError):
        parse_iso_date(20250407)


def test_validate_day_type():
    assert validate_day_type("reserve_day") == "reserve_day"
    with pytest.raises(ValidationError):
        validate_day_type("holiday")


def test_finite_numbers():
    assert is_finite_number(3)
    assert is_finite_number(2.5)
    assert not is_finite_number(True)
    assert not is_finite_number(float("nan"))
    assert not is_finite_number("3")


def test_manual_weekday():
    assert normalize_manual_weekday(1) == 1
    assert normalize_manual_weekday(7.0) == 7
    assert normalize_manual_weekday(0) is None
    assert normalize_manual_weekday(8) is None
    assert normalize_manual_weekday(2.5) is None
    assert normalize_manual_weekday("3") is None


def test_resolve_class_weekday_falls_back_to_calendar():
    thursday = date(2025, 4, 10)

    assert resolve_class_weekday(1, thursday) == 1
    assert resolve_class_weekday(None, thursday) == 4
    assert resolve_class_weekday(9, thursday, fallback=2) == 2


def test_holiday_flag():
    assert normalize_holiday_flag(1) == 1
    assert normalize_holiday_flag(2) == 2
    assert normalize_holiday_flag(0) == 2
    assert normalize_holiday_flag(3) is None
    assert normalize_holiday_flag(None) is None


def test_small_helpers():
    assert optional_trimmed("  a ") == "a"
    assert optional_trimmed("   ") is None
    assert optional_trimmed(5) is None
    assert resolve_download_count(3.7) == 3
    assert resolve_download_count(-1) == 0
    assert resolve_download_count(None) == 0
    assert sanitize_text(" <b>bold</b> ") == "bold"
    assert sanitize_text(None) == ""


@pytest.mark.parametrize("label,expected", [
    ("月", 1), ("火曜", 2), ("水曜日", 3), ("Thu", 4), ("friday", 5), (6, 6), ("日", 7),
    ("", None), ("someday", None), (0, None), (None, None),
])
def test_parse_weekday_label(label, expected):
    assert parse_weekday_label(label) == expected
