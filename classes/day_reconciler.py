import logging
from collections import defaultdict
from datetime import timedelta

from classes.calendar_reader import require_calendar, term_name_map
from classes.exceptions import ValidationError
from classes.validators import (
    derive_weekday,
    is_finite_number,
    normalize_holiday_flag,
    normalize_manual_weekday,
    optional_trimmed,
    parse_iso_date,
    resolve_class_weekday,
    validate_day_type,
)
from models import db
from models.calendar_days import CalendarDay, DayType
from models.calendar_terms import CalendarTerm, HOLIDAY_TERM

logger = logging.getLogger(__name__)

_UNSET = object()

WEEKLY_HOLIDAY_TARGETS = {"saturday": 6, "sunday": 7}

REASON_HOLIDAY_CLASS = 1
REASON_CANCELLED = 2
REASON_SUBSTITUTED_WEEKDAY = 3
REASON_TERM_START = 4

TERM_START_LOOKBACK_DAYS = 7


def _calendar_term_ids(calendar_id):
    return {
        term_id for (term_id,) in
        db.session.query(CalendarTerm.id).filter_by(calendar_id=calendar_id).all()
    }


def _check_term_id(term_id, term_ids):
    if term_id is None:
        return None
    if isinstance(term_id, bool) or not isinstance(term_id, int) or term_id not in term_ids:
        raise ValidationError("term_id does not belong to this calendar.")
    return term_id


def _normalize_class_order(value):
    if value is None:
        return None
    if not is_finite_number(value) or int(value) != value or value < 1:
        raise ValidationError("class_order must be a positive integer.")
    return int(value)


def _normalize_bulk_entry(entry, term_ids):
    """Only the keys present in the entry end up in the returned dict."""
    values = {}
    if "type" in entry:
        values["type"] = validate_day_type(entry["type"])
    if "term_id" in entry:
        values["term_id"] = _check_term_id(entry["term_id"], term_ids)
    if "description" in entry:
        values["description"] = optional_trimmed(entry["description"])
    if "class_weekday" in entry:
        values["class_weekday"] = normalize_manual_weekday(entry["class_weekday"])
    if "is_holiday" in entry:
        values["is_holiday"] = entry["is_holiday"] is True
    if "national_holiday_name" in entry:
        values["national_holiday_name"] = optional_trimmed(entry["national_holiday_name"])
    if "class_order" in entry:
        values["class_order"] = _normalize_class_order(entry["class_order"])
    if "notification_reasons" in entry:
        values["notification_reasons"] = optional_trimmed(entry["notification_reasons"])
    return values


def _find_day(calendar_id, day_date):
    return CalendarDay.query.filter_by(calendar_id=calendar_id, date=day_date).first()


def _new_day(calendar_id, day_date, day_type=DayType.UNSPECIFIED):
    day = CalendarDay(
        calendar_id=calendar_id,
        date=day_date,
        type=day_type,
        is_holiday=False,
    )
    db.session.add(day)
    return day


def _is_vacation_flag(flag):
    return normalize_holiday_flag(flag) == HOLIDAY_TERM


class CalendarDayReconciler:
    """Writes per-date rows keyed by (calendar, date) and derives class order."""

    @staticmethod
    def set_days_bulk(calendar_id, days):
        require_calendar(calendar_id)
        if not isinstance(days, list):
            raise ValidationError("days must be a list.")

        term_ids = _calendar_term_ids(calendar_id)
        existing = {
            day.date: day
            for day in CalendarDay.query.filter_by(calendar_id=calendar_id).all()
        }

        for entry in days:
            if not isinstance(entry, dict):
                raise ValidationError("Each day entry must be an object.")
            day_date = parse_iso_date(entry.get("date"))
            values = _normalize_bulk_entry(entry, term_ids)

            day = existing.get(day_date)
            if day is None:
                day = _new_day(calendar_id, day_date)
                existing[day_date] = day
            for key, value in values.items():
                setattr(day, key, value)

        db.session.commit()
        logger.info("Bulk upserted %d days into calendar %s", len(days), calendar_id)
        return {"updated": len(days)}

    @staticmethod
    def _apply_manual_edit(calendar_id, entry, term_ids):
        day_date = parse_iso_date(entry.get("date"))
        day_type = validate_day_type(entry.get("type"))
        term_id = _check_term_id(entry.get("term_id"), term_ids)
        is_class_day = day_type == DayType.CLASS_DAY

        day = _find_day(calendar_id, day_date)
        previous_order = day.class_order if day is not None else None
        if day is None:
            day = _new_day(calendar_id, day_date, day_type)

        # holiday flag and holiday name belong to the holiday sync, leave them alone
        day.type = day_type
        day.term_id = term_id
        day.class_weekday = normalize_manual_weekday(entry.get("class_weekday")) if is_class_day else None
        day.class_order = previous_order if is_class_day else None
        day.description = optional_trimmed(entry.get("description"))
        day.notification_reasons = optional_trimmed(entry.get("notification_reasons"))
        return day

    @staticmethod
    def upsert_calendar_day(calendar_id, date, type, term_id=None, class_weekday=None,
                            description=None, notification_reasons=None):
        require_calendar(calendar_id)
        day = CalendarDayReconciler._apply_manual_edit(
            calendar_id,
            {
                "date": date,
                "type": type,
                "term_id": term_id,
                "class_weekday": class_weekday,
                "description": description,
                "notification_reasons": notification_reasons,
            },
            _calendar_term_ids(calendar_id),
        )
        db.session.commit()
        return day.to_dict()

    @staticmethod
    def set_calendar_days_batch(calendar_id, entries):
        require_calendar(calendar_id)
        if not isinstance(entries, list):
            raise ValidationError("entries must be a list.")

        term_ids = _calendar_term_ids(calendar_id)
        for entry in entries:
            if not isinstance(entry, dict):
                raise ValidationError("Each day entry must be an object.")
            CalendarDayReconciler._apply_manual_edit(calendar_id, entry, term_ids)
            # flush so a repeated date in the same batch finds the pending row
            db.session.flush()

        db.session.commit()
        return {"processed": len(entries)}

    @staticmethod
    def update_day_type(calendar_id, date, type, term_id=_UNSET, day_of_week=_UNSET,
                        description=_UNSET):
        require_calendar(calendar_id)
        day_date = parse_iso_date(date)
        day_type = validate_day_type(type)

        day = _find_day(calendar_id, day_date)
        if day is None:
            day = _new_day(calendar_id, day_date, day_type)

        day.type = day_type
        if term_id is not _UNSET:
            day.term_id = _check_term_id(term_id, _calendar_term_ids(calendar_id))
        requested_weekday = None if day_of_week is _UNSET else day_of_week
        day.class_weekday = resolve_class_weekday(requested_weekday, day_date, day.class_weekday)
        if description is not _UNSET:
            day.description = optional_trimmed(description)

        db.session.commit()
        return day.to_dict()

    @staticmethod
    def update_period(calendar_id, start, end, type, term_id=_UNSET):
        calendar = require_calendar(calendar_id)
        start_date = parse_iso_date(start, "start_date")
        end_date = parse_iso_date(end, "end_date")
        if start_date > end_date:
            raise ValidationError("start_date must be on or before end_date.")
        if start_date < calendar.fiscal_start or end_date > calendar.fiscal_end:
            raise ValidationError(
                f"The period must fall within the fiscal year ({calendar.fiscal_start} to {calendar.fiscal_end})."
            )
        day_type = validate_day_type(type)
        if term_id is not _UNSET:
            term_id = _check_term_id(term_id, _calendar_term_ids(calendar_id))

        existing = {
            day.date: day
            for day in CalendarDay.query.filter(
                CalendarDay.calendar_id == calendar_id,
                CalendarDay.date >= start_date,
                CalendarDay.date <= end_date,
            ).all()
        }

        updated = 0
        current = start_date
        while current <= end_date:
            day = existing.get(current)
            if day is None:
                day = _new_day(calendar_id, current, day_type)
            day.type = day_type
            if term_id is not _UNSET:
                day.term_id = term_id
            day.class_weekday = resolve_class_weekday(None, current, day.class_weekday)
            updated += 1
            current += timedelta(days=1)

        db.session.commit()
        logger.info("Set %d days of calendar %s to %s", updated, calendar_id, day_type)
        return {
            "updated_count": updated,
            "date_range": {"start": start_date.isoformat(), "end": end_date.isoformat()},
        }

    @staticmethod
    def set_weekly_holiday(calendar_id, target):
        require_calendar(calendar_id)
        weekday = WEEKLY_HOLIDAY_TARGETS.get(target)
        if weekday is None:
            raise ValidationError("target must be 'saturday' or 'sunday'.")

        updated = 0
        for day in CalendarDay.query.filter_by(calendar_id=calendar_id).all():
            if derive_weekday(day.date) != weekday:
                continue
            day.type = DayType.CANCELLED_DAY
            day.class_weekday = None
            day.class_order = None
            updated += 1

        db.session.commit()
        return {"updated_count": updated}

    @staticmethod
    def clear_calendar_days(calendar_id):
        require_calendar(calendar_id)
        deleted = CalendarDay.query.filter_by(calendar_id=calendar_id).delete()
        db.session.commit()
        logger.info("Cleared %d days from calendar %s", deleted, calendar_id)
        return {"deleted_count": deleted}

    @staticmethod
    def assign_class_order(calendar_id):
        require_calendar(calendar_id)
        days = (
            CalendarDay.query
            .filter_by(calendar_id=calendar_id)
            .order_by(CalendarDay.date)
            .all()
        )
        term_flags = {
            term.id: term.holiday_flag
            for term in CalendarTerm.query.filter_by(calendar_id=calendar_id).all()
        }
        instruction_terms = {
            term_id for term_id, flag in term_flags.items() if not _is_vacation_flag(flag)
        }

        day_by_date = {day.date: day for day in days}
        term_first_dates = {}
        for day in days:
            if day.term_id in instruction_terms and day.term_id not in term_first_dates:
                term_first_dates[day.term_id] = day.date

        reasons_by_date = {
            day.date: _notification_reasons(
                day, instruction_terms, term_flags, term_first_dates, day_by_date
            )
            for day in days
        }

        groups = defaultdict(list)
        for day in days:
            if day.type == DayType.CLASS_DAY:
                weekday = resolve_class_weekday(day.class_weekday, day.date)
                groups[(day.term_id, weekday)].append(day)

        updated = cleared = notified = 0
        for group in groups.values():
            group.sort(key=lambda d: d.date)
            for order, day in enumerate(group, start=1):
                if day.class_order != order:
                    day.class_order = order
                    updated += 1

        for day in days:
            if day.type != DayType.CLASS_DAY and day.class_order is not None:
                day.class_order = None
                cleared += 1
            reasons = reasons_by_date[day.date]
            if (day.notification_reasons or None) != reasons:
                day.notification_reasons = reasons
                notified += 1

        db.session.commit()
        logger.info(
            "Class order for calendar %s: %d updated, %d cleared, %d reason changes",
            calendar_id, updated, cleared, notified,
        )
        return {
            "updated_count": updated,
            "cleared_count": cleared,
            "notified_count": notified,
        }

    @staticmethod
    def apply_holidays(calendar_id, holidays):
        require_calendar(calendar_id)
        names = {}
        for holiday in holidays or []:
            names[parse_iso_date(holiday.get("date"))] = optional_trimmed(holiday.get("name")) or ""

        updated = 0
        for day in CalendarDay.query.filter_by(calendar_id=calendar_id).all():
            is_holiday = day.date in names
            name = names.get(day.date) or None
            if day.is_holiday != is_holiday or day.national_holiday_name != name:
                day.is_holiday = is_holiday
                day.national_holiday_name = name
                updated += 1

        db.session.commit()
        return {"updated_count": updated}

    @staticmethod
    def list_calendar_days(calendar_id):
        require_calendar(calendar_id)
        term_names = term_name_map(calendar_id)
        days = (
            CalendarDay.query
            .filter_by(calendar_id=calendar_id)
            .order_by(CalendarDay.date)
            .all()
        )
        result = []
        for day in days:
            data = day.to_dict()
            data["term_name"] = term_names.get(day.term_id)
            data["class_weekday"] = normalize_manual_weekday(day.class_weekday)
            data["effective_class_weekday"] = resolve_class_weekday(day.class_weekday, day.date)
            result.append(data)
        return result

    @staticmethod
    def list_term_assignments_in_range(calendar_id, start, end):
        start_date = parse_iso_date(start, "start_date")
        end_date = parse_iso_date(end, "end_date")
        if start_date > end_date:
            return []

        term_names = term_name_map(calendar_id)
        days = (
            CalendarDay.query
            .filter(
                CalendarDay.calendar_id == calendar_id,
                CalendarDay.date >= start_date,
                CalendarDay.date <= end_date,
                CalendarDay.term_id.isnot(None),
            )
            .order_by(CalendarDay.date)
            .all()
        )
        return [
            {
                "date": day.date.isoformat(),
                "term_id": day.term_id,
                "term_name": term_names.get(day.term_id),
            }
            for day in days
        ]


def _is_term_start(day, term_first_dates, term_flags, day_by_date):
    if term_first_dates.get(day.term_id) == day.date:
        return True

    for offset in range(1, TERM_START_LOOKBACK_DAYS + 1):
        previous = day_by_date.get(day.date - timedelta(days=offset))
        if previous is None or previous.term_id is None:
            continue
        return (
            previous.term_id != day.term_id
            and _is_vacation_flag(term_flags.get(previous.term_id))
            and not _is_vacation_flag(term_flags.get(day.term_id))
        )
    return False


def _notification_reasons(day, instruction_terms, term_flags, term_first_dates, day_by_date):
    calendar_weekday = derive_weekday(day.date)
    manual_weekday = normalize_manual_weekday(day.class_weekday)
    in_instruction_term = day.term_id is not None and day.term_id in instruction_terms
    class_or_exam = day.type in (DayType.CLASS_DAY, DayType.EXAM_DAY)

    reasons = []
    if day.is_holiday is True and class_or_exam:
        reasons.append(REASON_HOLIDAY_CLASS)
    if (in_instruction_term and day.type == DayType.CANCELLED_DAY
            and day.is_holiday is not True and calendar_weekday != 7):
        reasons.append(REASON_CANCELLED)
    if (in_instruction_term and class_or_exam
            and manual_weekday is not None and manual_weekday != calendar_weekday):
        reasons.append(REASON_SUBSTITUTED_WEEKDAY)
    if in_instruction_term and _is_term_start(day, term_first_dates, term_flags, day_by_date):
        reasons.append(REASON_TERM_START)

    return ",".join(str(reason) for reason in reasons) or None
