"""
Read side of the calendar store.

Rows written over several releases do not always have the same shape (blank
names, stray weekday values, reason codes stored as a single string), so every
read goes through the normalizers here before it reaches a client.
"""
import logging

from classes.exceptions import NotFoundError
from classes.validators import (
    normalize_holiday_flag,
    normalize_manual_weekday,
    optional_trimmed,
    resolve_class_weekday,
    resolve_download_count,
    to_finite_number,
)
from models import db
from models.calendars import Calendar
from models.calendar_days import CalendarDay
from models.calendar_terms import CalendarTerm

logger = logging.getLogger(__name__)


def require_calendar(calendar_id):
    calendar = db.session.get(Calendar, calendar_id)
    if not calendar:
        raise NotFoundError("Calendar not found.")
    return calendar


def require_term(calendar_id, term_id):
    term = db.session.get(CalendarTerm, term_id)
    if not term or term.calendar_id != calendar_id:
        raise NotFoundError("Term not found in this calendar.")
    return term


def term_name_map(calendar_id):
    """term id -> trimmed term name, skipping terms with a blank name."""
    names = {}
    for term in CalendarTerm.query.filter_by(calendar_id=calendar_id).all():
        trimmed = optional_trimmed(term.name)
        if trimmed:
            names[term.id] = trimmed
    return names


def sort_terms_key(order, name):
    return (order if order is not None else float("inf"), name)


def normalize_term(term):
    name = optional_trimmed(term.name)
    if not name:
        return None
    flag = normalize_holiday_flag(term.holiday_flag)
    return {
        "id": term.id,
        "name": name,
        "order": to_finite_number(term.order),
        "short_name": optional_trimmed(term.short_name),
        "class_count": to_finite_number(term.class_count),
        "is_holiday": None if flag is None else flag == 1,
    }


def normalize_calendar(calendar):
    data = calendar.to_dict()
    data["download_count"] = resolve_download_count(calendar.download_count)
    data["creator_id"] = optional_trimmed(calendar.creator_id)
    data["disable_saturday"] = calendar.disable_saturday is True
    return data


def parse_notification_reasons(value):
    if isinstance(value, (list, tuple)):
        return [str(reason).strip() for reason in value if str(reason).strip()]
    if isinstance(value, str):
        return [reason.strip() for reason in value.split(",") if reason.strip()]
    return []


def to_day_view(day, term_names):
    """Client-facing day shape; class_weekday is the effective weekday."""
    return {
        "date": day.date.isoformat(),
        "type": day.type,
        "term_id": day.term_id,
        "term_name": term_names.get(day.term_id) if day.term_id else None,
        "description": optional_trimmed(day.description),
        "is_holiday": day.is_holiday is True,
        "national_holiday_name": optional_trimmed(day.national_holiday_name),
        "class_weekday": resolve_class_weekday(day.class_weekday, day.date),
        "manual_class_weekday": normalize_manual_weekday(day.class_weekday),
        "class_order": day.class_order,
        "notification_reasons": parse_notification_reasons(day.notification_reasons),
    }


def read_calendar_with_all_days(calendar_id):
    calendar = db.session.get(Calendar, calendar_id)
    if not calendar:
        return None

    term_names = term_name_map(calendar_id)
    days = (
        CalendarDay.query
        .filter_by(calendar_id=calendar_id)
        .order_by(CalendarDay.date)
        .all()
    )
    logger.debug("Read calendar %s with %d days", calendar_id, len(days))
    return {
        "calendar": normalize_calendar(calendar),
        "days": [to_day_view(day, term_names) for day in days],
    }


def list_publishable_calendars(university_code, fiscal_year):
    calendars = Calendar.query.filter_by(
        university_code=university_code,
        fiscal_year=fiscal_year,
        is_publishable=True,
    ).all()
    return [normalize_calendar(calendar) for calendar in calendars]
