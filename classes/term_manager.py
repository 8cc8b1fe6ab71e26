import logging
import math

from classes.calendar_reader import require_calendar, sort_terms_key
from classes.exceptions import ConflictError, NotFoundError, ValidationError
from classes.validators import (
    derive_weekday,
    is_finite_number,
    normalize_holiday_flag,
    normalize_manual_weekday,
    optional_trimmed,
    parse_weekday_label,
    resolve_class_weekday,
    to_finite_number,
)
from models import db
from models.calendar_days import CalendarDay, DayType
from models.calendar_terms import CalendarTerm, INSTRUCTION_TERM

logger = logging.getLogger(__name__)

UNNAMED_TERM = "Untitled term"
UNASSIGNED_TERM = "Unassigned"

# key, label, names a vacation term may carry
VACATIONS = (
    ("spring_break", "Spring Break", ("Spring Break", "春休み")),
    ("summer_break", "Summer Break", ("Summer Break", "夏休み")),
    ("winter_break", "Winter Break", ("Winter Break", "冬休み")),
)

UPDATABLE_TERM_FIELDS = ("name", "order", "short_name", "class_count", "holiday_flag")


def _sanitized_term(term):
    """Listing shape: numeric holiday flag, blank names dropped."""
    name = optional_trimmed(term.name)
    if not name:
        return None
    return {
        "id": term.id,
        "name": name,
        "order": to_finite_number(term.order),
        "short_name": optional_trimmed(term.short_name),
        "class_count": to_finite_number(term.class_count),
        "holiday_flag": normalize_holiday_flag(term.holiday_flag),
    }


def _next_order(terms):
    orders = [term.order for term in terms if is_finite_number(term.order)]
    return (max(orders) if orders else 0) + 1


def _non_negative_int(field_name, value):
    if not is_finite_number(value):
        raise ValidationError(f"{field_name} must be a number.")
    truncated = math.trunc(value)
    if truncated < 0:
        raise ValidationError(f"{field_name} must be 0 or greater.")
    return truncated


def _term_meta(calendar_id):
    meta = {}
    for term in CalendarTerm.query.filter_by(calendar_id=calendar_id).all():
        meta[term.id] = {
            "name": optional_trimmed(term.name) or UNNAMED_TERM,
            "order": to_finite_number(term.order),
        }
    return meta


class TermManager:

    @staticmethod
    def list_terms(calendar_id):
        terms = CalendarTerm.query.filter_by(calendar_id=calendar_id).all()
        sanitized = [entry for entry in (_sanitized_term(term) for term in terms) if entry]
        sanitized.sort(key=lambda entry: sort_terms_key(entry["order"], entry["name"]))
        return sanitized

    @staticmethod
    def add_term(calendar_id, name):
        require_calendar(calendar_id)
        normalized = optional_trimmed(name)
        if not normalized:
            raise ValidationError("Term name is required.")

        terms = CalendarTerm.query.filter_by(calendar_id=calendar_id).all()
        for term in terms:
            if optional_trimmed(term.name) == normalized:
                return {"added": False, "term": _sanitized_term(term)}

        term = CalendarTerm(
            calendar_id=calendar_id,
            name=normalized,
            order=_next_order(terms),
            holiday_flag=INSTRUCTION_TERM,
        )
        db.session.add(term)
        db.session.commit()
        logger.info("Added term %r to calendar %s", normalized, calendar_id)
        return {"added": True, "term": _sanitized_term(term)}

    @staticmethod
    def remove_term(calendar_id, term_id):
        term = db.session.get(CalendarTerm, term_id)
        if not term or term.calendar_id != calendar_id:
            return False

        # days keep their type, they just lose the term
        CalendarDay.query.filter_by(calendar_id=calendar_id, term_id=term_id).update(
            {CalendarDay.term_id: None}, synchronize_session=False
        )
        db.session.delete(term)
        db.session.commit()
        return True

    @staticmethod
    def upsert_many(calendar_id, names):
        require_calendar(calendar_id)
        terms = CalendarTerm.query.filter_by(calendar_id=calendar_id).all()
        existing = {optional_trimmed(term.name) for term in terms}
        next_order = _next_order(terms)

        added = 0
        for name in names or []:
            normalized = optional_trimmed(name)
            if not normalized or normalized in existing:
                continue
            db.session.add(CalendarTerm(
                calendar_id=calendar_id,
                name=normalized,
                order=next_order,
                holiday_flag=INSTRUCTION_TERM,
            ))
            existing.add(normalized)
            next_order += 1
            added += 1

        db.session.commit()
        return added

    @staticmethod
    def update_term(calendar_id, term_id, patch):
        term = db.session.get(CalendarTerm, term_id)
        if not term:
            raise NotFoundError("Term not found.")
        if term.calendar_id != calendar_id:
            raise ValidationError("Terms of another calendar cannot be edited.")

        unknown = set(patch) - set(UPDATABLE_TERM_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown term fields: {', '.join(sorted(unknown))}.")

        updates = {}
        if "name" in patch:
            normalized = optional_trimmed(patch["name"])
            if not normalized:
                raise ValidationError("Term name is required.")
            if normalized != term.name:
                duplicate = CalendarTerm.query.filter_by(calendar_id=calendar_id, name=normalized).first()
                if duplicate and duplicate.id != term.id:
                    raise ConflictError("A term with the same name already exists.")
                updates["name"] = normalized

        if "order" in patch:
            value = patch["order"]
            updates["order"] = None if value is None else _non_negative_int("order", value)

        if "short_name" in patch:
            updates["short_name"] = optional_trimmed(patch["short_name"])

        if "class_count" in patch:
            value = patch["class_count"]
            updates["class_count"] = None if value is None else _non_negative_int("class_count", value)

        if "holiday_flag" in patch:
            value = patch["holiday_flag"]
            if value is None:
                updates["holiday_flag"] = None
            else:
                flag = normalize_holiday_flag(value)
                if flag is None:
                    raise ValidationError("holiday_flag must be 1 or 2.")
                updates["holiday_flag"] = flag

        for key, value in updates.items():
            setattr(term, key, value)
        if updates:
            db.session.commit()
        return {"updated": bool(updates)}

    @staticmethod
    def upsert_preset_terms(calendar_id, terms):
        require_calendar(calendar_id)
        existing_terms = CalendarTerm.query.filter_by(calendar_id=calendar_id).all()
        existing_by_name = {optional_trimmed(term.name): term for term in existing_terms}
        next_order = _next_order(existing_terms)

        added = updated = 0
        for preset in terms or []:
            name = optional_trimmed(preset.get("name"))
            if not name:
                continue
            short_name = optional_trimmed(preset.get("short_name"))
            flag = normalize_holiday_flag(preset.get("holiday_flag"))

            existing = existing_by_name.get(name)
            if existing:
                changed = False
                if existing.name != name:
                    existing.name = name
                    changed = True
                if optional_trimmed(existing.short_name) != short_name:
                    existing.short_name = short_name
                    changed = True
                if flag is not None and normalize_holiday_flag(existing.holiday_flag) != flag:
                    existing.holiday_flag = flag
                    changed = True
                if changed:
                    updated += 1
                continue

            term = CalendarTerm(
                calendar_id=calendar_id,
                name=name,
                short_name=short_name,
                order=next_order,
                holiday_flag=flag or INSTRUCTION_TERM,
            )
            db.session.add(term)
            existing_by_name[name] = term
            next_order += 1
            added += 1

        db.session.commit()
        return {"added": added, "updated": updated}

    @staticmethod
    def get_calendar_summary(calendar_id):
        """
        Per-term class day counts by weekday (Mon..Sat) and vacation lengths.

        Class days are counted on their assigned weekday, so a Monday
        schedule held on a holiday Thursday counts as a Monday.
        """
        calendar = require_calendar(calendar_id)
        saturday_disabled = calendar.disable_saturday is True
        meta = _term_meta(calendar_id)

        stats = {}
        class_days = CalendarDay.query.filter_by(calendar_id=calendar_id, type=DayType.CLASS_DAY).all()
        for day in class_days:
            counts = stats.setdefault(day.term_id, [0] * 6)
            weekday = resolve_class_weekday(day.class_weekday, day.date)
            if weekday == 7 or (saturday_disabled and weekday == 6):
                continue
            counts[weekday - 1] += 1

        summaries = []
        for term_id, counts in stats.items():
            if term_id is None:
                name, order = UNASSIGNED_TERM, None
            else:
                term_meta = meta.get(term_id, {})
                name, order = term_meta.get("name", UNNAMED_TERM), term_meta.get("order")
            summaries.append({"term_id": term_id, "term_name": name, "weekday_counts": counts, "order": order})
        summaries.sort(key=lambda entry: sort_terms_key(entry["order"], entry["term_name"]))
        for entry in summaries:
            del entry["order"]

        label_to_key = {alias: key for key, _, aliases in VACATIONS for alias in aliases}
        vacation_counts = {key: 0 for key, _, _ in VACATIONS}
        cancelled_days = CalendarDay.query.filter_by(calendar_id=calendar_id, type=DayType.CANCELLED_DAY).all()
        for day in cancelled_days:
            if day.term_id is None:
                continue
            key = label_to_key.get(meta.get(day.term_id, {}).get("name"))
            if key:
                vacation_counts[key] += 1

        return {
            "term_summaries": summaries,
            "vacation_summaries": [
                {"key": key, "label": label, "count": vacation_counts[key]}
                for key, label, _ in VACATIONS
            ],
        }

    @staticmethod
    def get_unique_terms(calendar_id):
        meta = _term_meta(calendar_id)
        term_ids = set()
        include_unassigned = False
        for (term_id,) in db.session.query(CalendarDay.term_id).filter_by(calendar_id=calendar_id).all():
            if term_id is None:
                include_unassigned = True
            else:
                term_ids.add(term_id)

        entries = [
            {
                "term_id": term_id,
                "name": meta.get(term_id, {}).get("name", UNNAMED_TERM),
                "order": meta.get(term_id, {}).get("order"),
            }
            for term_id in term_ids
        ]
        entries.sort(key=lambda entry: sort_terms_key(entry["order"], entry["name"]))
        if include_unassigned:
            entries.append({"term_id": None, "name": UNASSIGNED_TERM, "order": None})
        return [{"term_id": entry["term_id"], "name": entry["name"]} for entry in entries]

    @staticmethod
    def get_term_weekday_dates(calendar_id, term_id, weekday):
        target = parse_weekday_label(weekday)
        if target is None:
            return []

        term_name = None
        if term_id is not None:
            term = db.session.get(CalendarTerm, term_id)
            term_name = (optional_trimmed(term.name) if term else None) or UNNAMED_TERM

        days = (
            CalendarDay.query
            .filter_by(calendar_id=calendar_id, type=DayType.CLASS_DAY, term_id=term_id)
            .order_by(CalendarDay.date)
            .all()
        )
        result = []
        for day in days:
            assigned = resolve_class_weekday(day.class_weekday, day.date)
            if assigned != target:
                continue
            result.append({
                "date": day.date.isoformat(),
                "type": day.type,
                "term_id": day.term_id,
                "term_name": term_name,
                "calendar_weekday": derive_weekday(day.date),
                "assigned_weekday": assigned,
                "class_weekday": normalize_manual_weekday(day.class_weekday),
                "class_order": day.class_order,
                "notification_reasons": optional_trimmed(day.notification_reasons),
            })
        return result
