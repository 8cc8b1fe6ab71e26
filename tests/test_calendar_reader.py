import pytest

from classes.calendar_reader import (
    list_publishable_calendars,
    normalize_term,
    parse_notification_reasons,
    read_calendar_with_all_days,
    require_term,
    sort_terms_key,
)
from classes.day_reconciler import CalendarDayReconciler
from classes.exceptions import NotFoundError
from models import db
from models.calendar_terms import CalendarTerm


def test_read_calendar_with_all_days(calendar_id, term_ids):
    CalendarDayReconciler.set_days_bulk(calendar_id, [
        {"date": "2025-04-10", "type": "class_day", "term_id": term_ids["Spring Semester"],
         "class_weekday": 1, "notification_reasons": "3", "description": "  "},
        {"date": "2025-04-07", "type": "class_day"},
    ])

    data = read_calendar_with_all_days(calendar_id)

    assert data["calendar"]["id"] == calendar_id
    assert data["calendar"]["disable_saturday"] is False
    first, second = data["days"]
    assert first["date"] == "2025-04-07"
    assert first["class_weekday"] == 1
    assert first["manual_class_weekday"] is None
    assert first["term_name"] is None
    assert second["class_weekday"] == 1
    assert second["manual_class_weekday"] == 1
    assert second["term_name"] == "Spring Semester"
    assert second["notification_reasons"] == ["3"]
    assert second["description"] is None


def test_read_missing_calendar(app):
    assert read_calendar_with_all_days(404) is None


def test_normalize_term(calendar_id, term_ids):
    summer = db.session.get(CalendarTerm, term_ids["Summer Break"])
    assert normalize_term(summer)["is_holiday"] is True

    summer.holiday_flag = 0
    assert normalize_term(summer)["is_holiday"] is False

    summer.holiday_flag = None
    assert normalize_term(summer)["is_holiday"] is None

    summer.name = "  "
    assert normalize_term(summer) is None


def test_require_term_checks_calendar(calendar_id, term_ids):
    assert require_term(calendar_id, term_ids["Fall Semester"]).name == "Fall Semester"
    with pytest.raises(NotFoundError):
        require_term(calendar_id + 1, term_ids["Fall Semester"])


def test_list_publishable_calendars(calendar_id):
    assert list_publishable_calendars("U001", 2025) == []


def test_parse_notification_reasons():
    assert parse_notification_reasons("1, 3,") == ["1", "3"]
    assert parse_notification_reasons([1, " 4 "]) == ["1", "4"]
    assert parse_notification_reasons(None) == []


def test_sort_terms_key_puts_missing_order_last():
    keys = [sort_terms_key(None, "A"), sort_terms_key(2, "B"), sort_terms_key(1, "C")]
    assert sorted(keys) == [(1, "C"), (2, "B"), (float("inf"), "A")]
