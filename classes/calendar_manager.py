import logging
import math
import re

from sqlalchemy.exc import SQLAlchemyError

from classes.calendar_reader import (
    list_publishable_calendars,
    normalize_term,
    read_calendar_with_all_days,
    require_calendar,
    sort_terms_key,
)
from classes.day_reconciler import CalendarDayReconciler
from classes.exceptions import ConflictError, NotFoundError, ValidationError
from classes.term_manager import TermManager
from classes.validators import (
    derive_weekday,
    is_finite_number,
    normalize_manual_weekday,
    optional_trimmed,
    parse_iso_date,
    resolve_download_count,
    sanitize_text,
    to_finite_number,
    validate_length,
)
from models import db
from models.calendars import Calendar
from models.calendar_days import CalendarDay, DayType
from models.calendar_terms import CalendarTerm, INSTRUCTION_TERM
from models.universities import University, UniversityCampus
from utils.holidays import enumerate_fiscal_dates, fiscal_range, get_fiscal_holidays, validate_fiscal_year

logger = logging.getLogger(__name__)

MAX_SEARCH_LIMIT = 50
DEFAULT_SEARCH_LIMIT = 50
MEMO_PREVIEW_LENGTH = 20
MAX_NOTE_LENGTH = 10000
WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat")

CALENDAR_TITLE_SUFFIX = re.compile(
    r"(学年暦|年度カレンダー|カレンダー|年間予定表?|\s*academic calendar|\s*calendar)$",
    re.IGNORECASE,
)


def derive_university_name(calendar_name):
    trimmed = (calendar_name or "").strip()
    if not trimmed:
        return ""
    return CALENDAR_TITLE_SUFFIX.sub("", trimmed).strip() or trimmed


def clamp_limit(limit, maximum=MAX_SEARCH_LIMIT, default=DEFAULT_SEARCH_LIMIT):
    raw = limit if is_finite_number(limit) else default
    return max(1, min(math.floor(raw), maximum))


def _memo_preview(memo):
    if not isinstance(memo, str):
        return None
    collapsed = " ".join(memo.split())
    return collapsed[:MEMO_PREVIEW_LENGTH] or None


def _clean_note(field_name, value):
    cleaned = sanitize_text(value)
    validate_length(field_name, cleaned, MAX_NOTE_LENGTH)
    return cleaned


def _sanitize_initial_terms(terms):
    sanitized = []
    for term in terms or []:
        if not isinstance(term, dict):
            continue
        name = optional_trimmed(term.get("name"))
        if not name:
            continue
        order = term.get("order")
        class_count = term.get("class_count")
        flag = term.get("holiday_flag")
        sanitized.append({
            "name": name,
            "order": math.trunc(order) if is_finite_number(order) and order >= 0 else None,
            "short_name": optional_trimmed(term.get("short_name")),
            "class_count": math.trunc(class_count) if is_finite_number(class_count) and class_count >= 0 else None,
            "holiday_flag": flag if flag in (1, 2) and not isinstance(flag, bool) else None,
        })
    sanitized.sort(key=lambda term: sort_terms_key(term["order"], term["name"]))
    return sanitized


def _calendar_rows(calendars):
    """Listing rows with a resolved university name and campus office status."""
    codes = {calendar.university_code for calendar in calendars if calendar.university_code}
    info = {}
    for code in codes:
        university = University.query.filter_by(code=code).first()
        campuses = UniversityCampus.query.filter_by(university_code=code).all()
        info[code] = {
            "name": optional_trimmed(university.name) if university else None,
            "all_campuses_have_office_code": bool(campuses) and all(
                optional_trimmed(campus.office_code) for campus in campuses
            ),
        }

    rows = []
    for calendar in calendars:
        university_info = info.get(calendar.university_code, {})
        university_name = (
            university_info.get("name")
            or derive_university_name(calendar.name)
            or optional_trimmed(calendar.university_code)
            or calendar.name.strip()
        )
        rows.append({
            "id": calendar.id,
            "name": calendar.name,
            "fiscal_year": calendar.fiscal_year,
            "university_code": calendar.university_code,
            "updated_at": calendar.updated_at,
            "download_count": resolve_download_count(calendar.download_count),
            "creator_id": optional_trimmed(calendar.creator_id),
            "university_name": university_name,
            "is_publishable": calendar.is_publishable is True,
            "all_campuses_have_office_code": university_info.get("all_campuses_have_office_code", False),
            "memo_preview": _memo_preview(calendar.memo),
        })
    return rows


def _sort_rows(rows):
    # university code asc, newest update first, then name
    rows.sort(key=lambda row: row["name"])
    rows.sort(key=lambda row: row["updated_at"], reverse=True)
    rows.sort(key=lambda row: row["university_code"] or "")
    return rows


def _top_rows_by_download_count(fiscal_year, limit, include_unpublishable):
    query = Calendar.query.filter_by(fiscal_year=fiscal_year)
    if not include_unpublishable:
        query = query.filter_by(is_publishable=True)
    calendars = query.order_by(Calendar.download_count.desc()).limit(limit).all()
    rows = _sort_rows(_calendar_rows(calendars))
    rows.sort(key=lambda row: row["download_count"], reverse=True)
    return rows[:limit]


def _campus_views(university_code):
    code = optional_trimmed(university_code)
    if not code:
        return []
    university = University.query.filter_by(code=code).first()
    default_name = optional_trimmed(university.name) if university else None

    views = []
    for campus in UniversityCampus.query.filter_by(university_code=code).all():
        name = optional_trimmed(campus.campus_name)
        if not name:
            base = optional_trimmed(campus.university_name) or default_name
            name = f"{base} Campus" if base else ""
        views.append({
            "campus_name": name,
            "office_code": campus.office_code,
            "office_name": campus.office_name,
            "class10_code": campus.class10_code,
            "class10_name": campus.class10_name,
        })
    return views


class CalendarManager:

    @staticmethod
    def create_calendar(name, fiscal_year, university_code=None, memo=None, input_information=None,
                        creator_id=None, disable_saturday=False, terms=None):
        name = optional_trimmed(name)
        if not name:
            raise ValidationError("Calendar name is required.")
        validate_length("name", name, 255)
        validate_fiscal_year(fiscal_year)
        university_code = optional_trimmed(university_code)

        duplicate = Calendar.query.filter_by(
            university_code=university_code, fiscal_year=fiscal_year, name=name
        ).first()
        if duplicate:
            return duplicate.id

        fiscal_start, fiscal_end = fiscal_range(fiscal_year)
        calendar = Calendar(
            name=name,
            university_code=university_code,
            fiscal_year=fiscal_year,
            fiscal_start=fiscal_start,
            fiscal_end=fiscal_end,
            download_count=0,
            creator_id=optional_trimmed(creator_id),
            is_publishable=False,
            memo=_clean_note("memo", memo),
            input_information=_clean_note("input_information", input_information),
            disable_saturday=disable_saturday is True,
        )
        db.session.add(calendar)
        db.session.flush()

        seen = set()
        fallback_order = 1
        for term in _sanitize_initial_terms(terms):
            if term["name"] in seen:
                continue
            seen.add(term["name"])
            order = term["order"] if term["order"] is not None else fallback_order
            fallback_order = max(fallback_order, order + 1)
            db.session.add(CalendarTerm(
                calendar_id=calendar.id,
                name=term["name"],
                order=order,
                short_name=term["short_name"],
                class_count=term["class_count"],
                holiday_flag=term["holiday_flag"] or INSTRUCTION_TERM,
            ))

        db.session.commit()
        logger.info("Created calendar %s (%s, %s)", calendar.id, name, fiscal_year)
        return calendar.id

    @staticmethod
    def ensure_calendar(name, fiscal_year, fiscal_start, fiscal_end):
        start = parse_iso_date(fiscal_start, "fiscal_start")
        end = parse_iso_date(fiscal_end, "fiscal_end")
        existing = Calendar.query.filter_by(fiscal_year=fiscal_year, name=name).first()
        if existing:
            existing.download_count = resolve_download_count(existing.download_count)
            existing.creator_id = optional_trimmed(existing.creator_id)
            existing.disable_saturday = existing.disable_saturday is True
            db.session.commit()
            return existing.id

        calendar = Calendar(
            name=name,
            fiscal_year=fiscal_year,
            fiscal_start=start,
            fiscal_end=end,
            download_count=0,
            is_publishable=False,
            memo="",
            input_information="",
            disable_saturday=False,
        )
        db.session.add(calendar)
        db.session.commit()
        return calendar.id

    @staticmethod
    def initialize_calendar_days(calendar_id, fiscal_year):
        require_calendar(calendar_id)
        if CalendarDay.query.filter_by(calendar_id=calendar_id).first():
            return {"initialized": False, "days_inserted": 0, "from_cache": True}

        result = get_fiscal_holidays(fiscal_year)
        holiday_names = {holiday["date"]: holiday["name"] for holiday in result["holidays"]}

        days = []
        for day in enumerate_fiscal_dates(fiscal_year):
            name = holiday_names.get(day.isoformat())
            days.append({
                "date": day.isoformat(),
                "type": DayType.UNSPECIFIED,
                "is_holiday": name is not None,
                "national_holiday_name": name,
                "class_weekday": derive_weekday(day),
            })

        CalendarDayReconciler.set_days_bulk(calendar_id, days)
        return {
            "initialized": True,
            "days_inserted": len(days),
            "from_cache": result["from_cache"],
        }

    @staticmethod
    def refresh_calendar_holidays(calendar_id, force_refresh=False):
        calendar = require_calendar(calendar_id)
        result = get_fiscal_holidays(calendar.fiscal_year, force_refresh=force_refresh)
        applied = CalendarDayReconciler.apply_holidays(calendar_id, result["holidays"])
        return {
            "updated_count": applied["updated_count"],
            "holiday_count": len(result["holidays"]),
            "from_cache": result["from_cache"],
        }

    @staticmethod
    def get_calendar(calendar_id):
        calendar = db.session.get(Calendar, calendar_id)
        if not calendar or calendar.is_publishable is not True:
            return None

        data = read_calendar_with_all_days(calendar_id)
        terms = [entry for entry in (normalize_term(term) for term in calendar.terms) if entry]
        terms.sort(key=lambda term: sort_terms_key(term["order"], term["name"]))
        data["terms"] = terms
        data["campuses"] = _campus_views(calendar.university_code)
        return data

    @staticmethod
    def get_calendar_with_tracking(calendar_id):
        """
        Public download: same payload as get_calendar, then bumps download_count.

        The returned calendar carries the count read before this download.
        """
        data = CalendarManager.get_calendar(calendar_id)
        if data is None:
            return None
        calendar = db.session.get(Calendar, calendar_id)
        calendar.download_count = resolve_download_count(calendar.download_count) + 1
        db.session.commit()
        return data

    @staticmethod
    def list_calendars(university_code, fiscal_year):
        return list_publishable_calendars(university_code, fiscal_year)

    @staticmethod
    def search_calendars_by_university_name(q, fiscal_year, limit=None, include_unpublishable=False):
        keyword = (q or "").strip()
        limit = clamp_limit(limit)

        if not keyword:
            return _top_rows_by_download_count(fiscal_year, limit, include_unpublishable)

        universities = (
            University.query
            .filter(University.name.contains(keyword))
            .order_by(University.name)
            .limit(limit)
            .all()
        )
        if not universities:
            return []

        query = Calendar.query.filter(
            Calendar.university_code.in_([university.code for university in universities]),
            Calendar.fiscal_year == fiscal_year,
        )
        if not include_unpublishable:
            query = query.filter(Calendar.is_publishable.is_(True))
        calendars = query.all()
        if not calendars:
            return []
        return _sort_rows(_calendar_rows(calendars))[:limit]

    @staticmethod
    def list_top_calendars_by_download_count(fiscal_year, limit=None, include_unpublishable=False):
        rows = _top_rows_by_download_count(fiscal_year, clamp_limit(limit), include_unpublishable)
        return [
            {
                "calendar_id": row["id"],
                "calendar_name": row["name"],
                "university_name": row["university_name"].strip() or derive_university_name(row["name"]),
            }
            for row in rows
        ]

    @staticmethod
    def delete_calendar(calendar_id):
        calendar = require_calendar(calendar_id)
        deleted_days = CalendarDay.query.filter_by(calendar_id=calendar_id).count()
        deleted_terms = CalendarTerm.query.filter_by(calendar_id=calendar_id).count()
        db.session.delete(calendar)
        db.session.commit()
        logger.info("Deleted calendar %s (%d days, %d terms)", calendar_id, deleted_days, deleted_terms)
        return {"deleted_days": deleted_days, "deleted_terms": deleted_terms}

    @staticmethod
    def rename_calendar(calendar_id, name):
        calendar = require_calendar(calendar_id)
        normalized = optional_trimmed(name)
        if not normalized:
            raise ValidationError("Calendar name is required.")
        validate_length("name", normalized, 255)
        if normalized == calendar.name:
            return {"renamed": False, "name": calendar.name}

        duplicate = Calendar.query.filter_by(
            university_code=calendar.university_code,
            fiscal_year=calendar.fiscal_year,
            name=normalized,
        ).first()
        if duplicate and duplicate.id != calendar.id:
            raise ConflictError("A calendar with the same name already exists.")

        calendar.name = normalized
        db.session.commit()
        return {"renamed": True, "name": normalized}

    @staticmethod
    def update_calendar_notes(calendar_id, memo=None, input_information=None, disable_saturday=False):
        calendar = require_calendar(calendar_id)
        calendar.memo = _clean_note("memo", memo)
        calendar.input_information = _clean_note("input_information", input_information)
        calendar.disable_saturday = disable_saturday is True
        db.session.commit()
        return {"calendar_id": calendar.id}

    @staticmethod
    def get_calendar_metadata(calendar_id):
        calendar = db.session.get(Calendar, calendar_id)
        if not calendar:
            return None
        return {
            "id": calendar.id,
            "name": calendar.name,
            "fiscal_year": calendar.fiscal_year,
            "memo": calendar.memo or "",
            "input_information": calendar.input_information or "",
            "download_count": resolve_download_count(calendar.download_count),
            "creator_id": optional_trimmed(calendar.creator_id),
        }

    @staticmethod
    def set_publishable_status(calendar_id, is_publishable, force_publish=False, disable_saturday_override=None):
        calendar = require_calendar(calendar_id)
        if isinstance(disable_saturday_override, bool):
            saturday_disabled = disable_saturday_override
        else:
            saturday_disabled = calendar.disable_saturday is True
        weekday_indexes = range(5) if saturday_disabled else range(6)

        if is_publishable:
            summary = TermManager.get_calendar_summary(calendar_id)
            stats = [entry for entry in summary["term_summaries"] if entry["term_id"] is not None]
            if not stats:
                raise ValidationError("No term has class days yet. Assign terms and try again.")

            reference = [stats[0]["weekday_counts"][index] for index in weekday_indexes]
            mismatched = any(
                entry["weekday_counts"][index] != reference[offset]
                for entry in stats
                for offset, index in enumerate(weekday_indexes)
            )
            if mismatched and not force_publish:
                raise ValidationError("Class day counts differ between terms.")

            zero_weekdays = [WEEKDAY_NAMES[index] for offset, index in enumerate(weekday_indexes)
                             if reference[offset] == 0]
            if zero_weekdays and not force_publish:
                raise ValidationError(f"Some weekdays have no class days ({', '.join(zero_weekdays)}).")

        calendar.is_publishable = bool(is_publishable)
        db.session.commit()
        logger.info("Calendar %s publishable=%s (forced=%s)", calendar_id, calendar.is_publishable, bool(force_publish))
        return {"calendar_id": calendar.id, "is_publishable": calendar.is_publishable}

    @staticmethod
    def copy_calendar_data(target_calendar_id, source_calendar_id):
        if target_calendar_id == source_calendar_id:
            raise ValidationError("A calendar cannot be copied onto itself.")

        target = db.session.get(Calendar, target_calendar_id)
        if not target:
            raise NotFoundError("Target calendar not found.")
        source = db.session.get(Calendar, source_calendar_id)
        if not source:
            raise NotFoundError("Source calendar not found.")

        source_terms = sorted(source.terms, key=lambda term: sort_terms_key(to_finite_number(term.order), term.name))
        source_days = sorted(source.days, key=lambda day: day.date)

        try:
            CalendarDay.query.filter_by(calendar_id=target.id).delete(synchronize_session=False)
            CalendarTerm.query.filter_by(calendar_id=target.id).delete(synchronize_session=False)
            db.session.expire(target, ["days", "terms"])

            term_id_map = {}
            for term in source_terms:
                copied = CalendarTerm(
                    calendar_id=target.id,
                    name=term.name,
                    order=to_finite_number(term.order),
                    short_name=optional_trimmed(term.short_name),
                    class_count=to_finite_number(term.class_count),
                    holiday_flag=term.holiday_flag,
                )
                db.session.add(copied)
                db.session.flush()
                term_id_map[term.id] = copied.id

            for day in source_days:
                class_order = day.class_order if is_finite_number(day.class_order) else None
                db.session.add(CalendarDay(
                    calendar_id=target.id,
                    date=day.date,
                    type=day.type,
                    term_id=term_id_map.get(day.term_id),
                    description=optional_trimmed(day.description),
                    is_holiday=day.is_holiday is True,
                    national_holiday_name=optional_trimmed(day.national_holiday_name),
                    class_weekday=normalize_manual_weekday(day.class_weekday),
                    class_order=max(1, class_order) if class_order is not None else None,
                    notification_reasons=optional_trimmed(day.notification_reasons),
                ))

            target.memo = source.memo or ""
            target.input_information = source.input_information or ""
            target.disable_saturday = source.disable_saturday is True
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Copying calendar %s onto %s failed", source_calendar_id, target_calendar_id)
            raise

        logger.info("Copied %d terms and %d days from calendar %s to %s",
                    len(source_terms), len(source_days), source_calendar_id, target_calendar_id)
        return {"term_count": len(source_terms), "day_count": len(source_days)}
