import math
from datetime import date

import bleach

from classes.exceptions import ValidationError
from models.calendar_days import DayType


def parse_iso_date(value, field_name="date"):
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a YYYY-MM-DD string.")
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError(f"{field_name} must be a YYYY-MM-DD string.")


def validate_day_type(value):
    if value not in DayType.ALL:
        raise ValidationError(f"type must be one of: {', '.join(DayType.ALL)}.")
    return value


def is_finite_number(value):
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def to_finite_number(value):
    return value if is_finite_number(value) else None


def derive_weekday(day):
    """ISO weekday of a date: Monday = 1 .. Sunday = 7."""
    return day.isoweekday()


def normalize_manual_weekday(value):
    """Return a manual class weekday (1..7) or None when the value is not usable."""
    if is_finite_number(value) and int(value) == value and 1 <= value <= 7:
        return int(value)
    return None


def resolve_class_weekday(value, day, fallback=None):
    manual = normalize_manual_weekday(value)
    if manual is not None:
        return manual
    manual = normalize_manual_weekday(fallback)
    if manual is not None:
        return manual
    return derive_weekday(day)


def optional_trimmed(value):
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def resolve_download_count(value):
    if is_finite_number(value) and value >= 0:
        return int(math.floor(value))
    return 0


def normalize_holiday_flag(value):
    """Term holiday flag: 1 = vacation term, 2 = instruction term (0 is read as 2)."""
    if not is_finite_number(value):
        return None
    if value == 1:
        return 1
    if value in (0, 2):
        return 2
    return None


def sanitize_text(value):
    """Strip markup from free text that ends up on public calendar pages."""
    if not isinstance(value, str):
        return ""
    return bleach.clean(value.strip(), tags=[], strip=True)


def validate_length(field_name, value, max_length):
    if len(value) > max_length:
        raise ValidationError(f"{field_name} must be {max_length} characters or fewer.")


WEEKDAY_LABELS = {
    "月": 1, "火": 2, "水": 3, "木": 4, "金": 5, "土": 6, "日": 7,
    "mon": 1, "tue": 2, "wed": 3, "thu": 4, "fri": 5, "sat": 6, "sun": 7,
    "monday": 1, "tuesday": 2, "wednesday": 3, "thursday": 4,
    "friday": 5, "saturday": 6, "sunday": 7,
}


def parse_weekday_label(value):
    """Weekday number from 1..7, a Japanese day character (月, 月曜, 月曜日) or an English name."""
    if is_finite_number(value):
        return normalize_manual_weekday(value)
    if not isinstance(value, str):
        return None
    label = value.strip()
    if label.endswith("曜日"):
        label = label[:-2]
    elif label.endswith("曜"):
        label = label[:-1]
    return WEEKDAY_LABELS.get(label.lower())
