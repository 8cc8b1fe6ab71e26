from datetime import date

import pytest

from classes.day_reconciler import CalendarDayReconciler
from classes.exceptions import NotFoundError, ValidationError
from models.calendar_days import CalendarDay, DayType


def _day(calendar_id, iso):
    return CalendarDay.query.filter_by(calendar_id=calendar_id, date=date.fromisoformat(iso)).one()


def test_set_days_bulk_inserts_with_defaults(calendar_id):
    result = CalendarDayReconciler.set_days_bulk(calendar_id, [{"date": "2025-04-07", "type": "class_day"}])

    assert result == {"updated": 1}
    day = _day(calendar_id, "2025-04-07")
    assert day.type == DayType.CLASS_DAY
    assert day.is_holiday is False
    assert day.class_weekday is None


def test_set_days_bulk_keeps_values_missing_from_entry(calendar_id, term_ids):
    spring = term_ids["Spring Semester"]
    CalendarDayReconciler.set_days_bulk(calendar_id, [{
        "date": "2025-04-07",
        "type": "class_day",
        "term_id": spring,
        "description": "Orientation",
        "class_weekday": 3,
    }])

    CalendarDayReconciler.set_days_bulk(calendar_id, [{"date": "2025-04-07", "type": "exam_day"}])

    day = _day(calendar_id, "2025-04-07")
    assert day.type == DayType.EXAM_DAY
    assert day.description == "Orientation"
    assert day.class_weekday == 3
    assert day.term_id == spring


def test_set_days_bulk_normalizes_fields(calendar_id):
    CalendarDayReconciler.set_days_bulk(calendar_id, [{
        "date": "2025-04-08",
        "type": "class_day",
        "description": "   ",
        "class_weekday": 9,
        "notification_reasons": " 1,3 ",
    }])

    day = _day(calendar_id, "2025-04-08")
    assert day.description is None
    assert day.class_weekday is None
    assert day.notification_reasons == "1,3"


def test_set_days_bulk_collapses_repeated_dates(calendar_id):
    CalendarDayReconciler.set_days_bulk(calendar_id, [
        {"date": "2025-04-09", "type": "class_day"},
        {"date": "2025-04-09", "type": "reserve_day"},
    ])

    rows = CalendarDay.query.filter_by(calendar_id=calendar_id).all()
    assert len(rows) == 1
    assert rows[0].type == DayType.RESERVE_DAY


def test_set_days_bulk_rejects_foreign_term_and_bad_type(calendar_id):
    with pytest.raises(ValidationError):
        CalendarDayReconciler.set_days_bulk(calendar_id, [{"date": "2025-04-09", "term_id": 9999}])
    with pytest.raises(ValidationError):
        CalendarDayReconciler.set_days_bulk(calendar_id, [{"date": "2025-04-09", "type": "holiday"}])
    with pytest.raises(ValidationError):
        CalendarDayReconciler.set_days_bulk(calendar_id, [{"date": "04/09/2025", "type": "class_day"}])


def test_set_days_bulk_unknown_calendar(app):
    with pytest.raises(NotFoundError):
        CalendarDayReconciler.set_days_bulk(404, [])


def test_manual_edit_keeps_holiday_and_class_order(calendar_id):
    CalendarDayReconciler.set_days_bulk(calendar_id, [{
        "date": "2025-05-05",
        "type": "class_day",
        "is_holiday": True,
        "national_holiday_name": "Children's Day",
        "class_order": 4,
        "class_weekday": 1,
    }])

    CalendarDayReconciler.upsert_calendar_day(calendar_id, "2025-05-05", "class_day", class_weekday=4)
    day = _day(calendar_id, "2025-05-05")
    assert day.class_weekday == 4
    assert day.class_order == 4
    assert day.is_holiday is True
    assert day.national_holiday_name == "Children's Day"

    CalendarDayReconciler.upsert_calendar_day(calendar_id, "2025-05-05", "cancelled_day", class_weekday=4)
    day = _day(calendar_id, "2025-05-05")
    assert day.type == DayType.CANCELLED_DAY
    assert day.class_weekday is None
    assert day.class_order is None
    assert day.national_holiday_name == "Children's Day"


def test_set_calendar_days_batch(calendar_id, term_ids):
    result = CalendarDayReconciler.set_calendar_days_batch(calendar_id, [
        {"date": "2025-04-07", "type": "class_day", "term_id": term_ids["Spring Semester"]},
        {"date": "2025-04-08", "type": "reserve_day", "description": " Makeup "},
        {"date": "2025-04-07", "type": "exam_day"},
    ])

    assert result == {"processed": 3}
    assert CalendarDay.query.filter_by(calendar_id=calendar_id).count() == 2
    assert _day(calendar_id, "2025-04-07").type == DayType.EXAM_DAY
    assert _day(calendar_id, "2025-04-08").description == "Makeup"


def test_update_day_type_creates_and_keeps_omitted_values(calendar_id, term_ids):
    CalendarDayReconciler.update_day_type(calendar_id, "2025-04-10", "class_day",
                                          term_id=term_ids["Spring Semester"], description="Lab")
    day = _day(calendar_id, "2025-04-10")
    # Thursday
    assert day.class_weekday == 4

    CalendarDayReconciler.update_day_type(calendar_id, "2025-04-10", "reserve_day")
    day = _day(calendar_id, "2025-04-10")
    assert day.type == DayType.RESERVE_DAY
    assert day.term_id == term_ids["Spring Semester"]
    assert day.description == "Lab"

    CalendarDayReconciler.update_day_type(calendar_id, "2025-04-10", "class_day", day_of_week=1, description=None)
    day = _day(calendar_id, "2025-04-10")
    assert day.class_weekday == 1
    assert day.description is None


def test_update_period(calendar_id, term_ids):
    CalendarDayReconciler.set_days_bulk(calendar_id, [{"date": "2025-04-08", "class_weekday": 5}])

    result = CalendarDayReconciler.update_period(
        calendar_id, "2025-04-07", "2025-04-09", "class_day", term_id=term_ids["Spring Semester"]
    )

    assert result == {
        "updated_count": 3,
        "date_range": {"start": "2025-04-07", "end": "2025-04-09"},
    }
    assert _day(calendar_id, "2025-04-07").class_weekday == 1
    assert _day(calendar_id, "2025-04-08").class_weekday == 5
    assert _day(calendar_id, "2025-04-09").term_id == term_ids["Spring Semester"]


def test_update_period_rejects_inverted_range(calendar_id):
    with pytest.raises(ValidationError):
        CalendarDayReconciler.update_period(calendar_id, "2025-04-10", "2025-04-07", "class_day")


def test_update_period_stays_inside_fiscal_year(calendar_id):
    with pytest.raises(ValidationError, match="fiscal year"):
        CalendarDayReconciler.update_period(calendar_id, "1900-01-01", "2999-12-31", "class_day")
    with pytest.raises(ValidationError):
        CalendarDayReconciler.update_period(calendar_id, "2026-03-30", "2026-04-01", "class_day")

    assert CalendarDay.query.filter_by(calendar_id=calendar_id).count() == 0
    result = CalendarDayReconciler.update_period(calendar_id, "2025-04-01", "2026-03-31", "cancelled_day")
    assert result["updated_count"] == 365


def test_set_weekly_holiday(calendar_id):
    CalendarDayReconciler.set_days_bulk(calendar_id, [
        {"date": "2025-04-05", "type": "class_day", "class_weekday": 6, "class_order": 1},
        {"date": "2025-04-06", "type": "class_day"},
        {"date": "2025-04-07", "type": "class_day"},
    ])

    result = CalendarDayReconciler.set_weekly_holiday(calendar_id, "sunday")

    assert result == {"updated_count": 1}
    assert _day(calendar_id, "2025-04-06").type == DayType.CANCELLED_DAY
    assert _day(calendar_id, "2025-04-05").type == DayType.CLASS_DAY

    CalendarDayReconciler.set_weekly_holiday(calendar_id, "saturday")
    saturday = _day(calendar_id, "2025-04-05")
    assert saturday.type == DayType.CANCELLED_DAY
    assert saturday.class_weekday is None
    assert saturday.class_order is None


def test_set_weekly_holiday_errors(calendar_id):
    with pytest.raises(ValidationError):
        CalendarDayReconciler.set_weekly_holiday(calendar_id, "friday")
    with pytest.raises(NotFoundError):
        CalendarDayReconciler.set_weekly_holiday(404, "sunday")


def test_clear_calendar_days(calendar_id):
    CalendarDayReconciler.set_days_bulk(calendar_id, [
        {"date": "2025-04-07", "type": "class_day"},
        {"date": "2025-04-08", "type": "class_day"},
    ])

    assert CalendarDayReconciler.clear_calendar_days(calendar_id) == {"deleted_count": 2}
    assert CalendarDay.query.filter_by(calendar_id=calendar_id).count() == 0


def test_apply_holidays_only_touches_holiday_fields(calendar_id):
    CalendarDayReconciler.set_days_bulk(calendar_id, [
        {"date": "2025-04-29", "type": "class_day", "description": "Keep me"},
        {"date": "2025-04-30", "type": "class_day", "is_holiday": True, "national_holiday_name": "Stale"},
    ])

    result = CalendarDayReconciler.apply_holidays(calendar_id, [{"date": "2025-04-29", "name": "Showa Day"}])

    assert result == {"updated_count": 2}
    showa = _day(calendar_id, "2025-04-29")
    assert showa.is_holiday is True
    assert showa.national_holiday_name == "Showa Day"
    assert showa.type == DayType.CLASS_DAY
    assert showa.description == "Keep me"
    stale = _day(calendar_id, "2025-04-30")
    assert stale.is_holiday is False
    assert stale.national_holiday_name is None


def test_list_calendar_days_reports_manual_and_effective_weekday(calendar_id, term_ids):
    CalendarDayReconciler.set_days_bulk(calendar_id, [
        {"date": "2025-04-10", "type": "class_day", "class_weekday": 1, "term_id": term_ids["Spring Semester"]},
        {"date": "2025-04-11", "type": "class_day"},
    ])

    days = CalendarDayReconciler.list_calendar_days(calendar_id)

    assert [day["date"] for day in days] == ["2025-04-10", "2025-04-11"]
    assert days[0]["class_weekday"] == 1
    assert days[0]["effective_class_weekday"] == 1
    assert days[0]["term_name"] == "Spring Semester"
    assert days[1]["class_weekday"] is None
    assert days[1]["effective_class_weekday"] == 5


def test_list_term_assignments_in_range(calendar_id, term_ids):
    CalendarDayReconciler.set_days_bulk(calendar_id, [
        {"date": "2025-04-07", "term_id": term_ids["Spring Semester"]},
        {"date": "2025-04-08"},
        {"date": "2025-04-20", "term_id": term_ids["Spring Semester"]},
    ])

    rows = CalendarDayReconciler.list_term_assignments_in_range(calendar_id, "2025-04-01", "2025-04-10")

    assert rows == [{"date": "2025-04-07", "term_id": term_ids["Spring Semester"], "term_name": "Spring Semester"}]
    assert CalendarDayReconciler.list_term_assignments_in_range(calendar_id, "2025-04-10", "2025-04-01") == []
