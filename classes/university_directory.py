import logging

from classes.exceptions import NotFoundError, ValidationError
from classes.validators import is_finite_number, optional_trimmed
from models import db
from models.universities import UNIVERSITY_TYPES, University, UniversityCampus

logger = logging.getLogger(__name__)

TYPE_ALIASES = {"国立": "national", "公立": "public", "私立": "private"}

CAMPUS_FIELDS = (
    "university_name", "prefecture", "city", "postal_code", "address",
    "office_code", "office_name", "class10_code", "class10_name",
)
# maintained through update_campus_codes, a bulk import never overwrites them
CAMPUS_CODE_FIELDS = ("office_code", "office_name", "class10_code", "class10_name")

DEFAULT_SEARCH_LIMIT = 20
MAX_SEARCH_LIMIT = 100


def _university_values(row):
    code = optional_trimmed(row.get("code"))
    name = optional_trimmed(row.get("name"))
    if not code or not name:
        raise ValidationError("Each university needs a code and a name.")

    values = {"code": code, "name": name}
    if "prefecture" in row:
        values["prefecture"] = optional_trimmed(row["prefecture"])
    if "type" in row:
        university_type = TYPE_ALIASES.get(row["type"], row["type"])
        if university_type is not None and university_type not in UNIVERSITY_TYPES:
            raise ValidationError(f"type must be one of: {', '.join(UNIVERSITY_TYPES)}.")
        values["type"] = university_type
    if "capacity" in row:
        capacity = row["capacity"]
        if capacity is not None and not is_finite_number(capacity):
            raise ValidationError("capacity must be a number.")
        values["capacity"] = int(capacity) if capacity is not None else None
    return values


def _campus_values(row):
    university_code = optional_trimmed(row.get("university_code"))
    campus_name = row.get("campus_name")
    if not university_code or not isinstance(campus_name, str):
        raise ValidationError("Each campus needs a university_code and a campus_name.")

    values = {"university_code": university_code, "campus_name": campus_name.strip()}
    for field in CAMPUS_FIELDS:
        if field in row:
            values[field] = optional_trimmed(row[field])
    return values


class UniversityDirectory:

    @staticmethod
    def bulk_upsert(rows):
        inserted = updated = 0
        for row in rows:
            values = _university_values(row)
            existing = University.query.filter_by(code=values["code"]).first()
            if existing:
                for key, value in values.items():
                    setattr(existing, key, value)
                updated += 1
            else:
                db.session.add(University(**values))
                inserted += 1
            db.session.flush()

        db.session.commit()
        logger.info("Universities upserted: %d inserted, %d updated", inserted, updated)
        return {"inserted": inserted, "updated": updated}

    @staticmethod
    def bulk_upsert_campuses(rows):
        inserted = updated = 0
        for row in rows:
            values = _campus_values(row)
            existing = UniversityCampus.query.filter_by(
                university_code=values["university_code"], campus_name=values["campus_name"]
            ).first()
            if existing:
                for key, value in values.items():
                    if key not in CAMPUS_CODE_FIELDS:
                        setattr(existing, key, value)
                updated += 1
            else:
                db.session.add(UniversityCampus(**values))
                inserted += 1
            db.session.flush()

        db.session.commit()
        logger.info("Campuses upserted: %d inserted, %d updated", inserted, updated)
        return {"inserted": inserted, "updated": updated}

    @staticmethod
    def search_by_name(q, limit=None):
        """Prefix matches first, topped up with substring matches."""
        keyword = (q or "").strip()
        limit = max(1, min(int(limit) if is_finite_number(limit) else DEFAULT_SEARCH_LIMIT, MAX_SEARCH_LIMIT))
        if not keyword:
            return []

        prefix = (
            University.query
            .filter(University.name.startswith(keyword))
            .order_by(University.name)
            .limit(limit)
            .all()
        )
        rows = list(prefix)
        if len(rows) < limit:
            extra = (
                University.query
                .filter(University.name.contains(keyword), ~University.name.startswith(keyword))
                .order_by(University.name)
                .limit(limit - len(rows))
                .all()
            )
            rows.extend(extra)
        return [university.to_dict() for university in rows]

    @staticmethod
    def get_by_code(code):
        university = University.query.filter_by(code=code).first()
        return university.to_dict() if university else None

    @staticmethod
    def list_campuses_by_university_code(university_code):
        campuses = (
            UniversityCampus.query
            .filter_by(university_code=university_code)
            .order_by(UniversityCampus.campus_name)
            .all()
        )
        return [campus.to_dict() for campus in campuses]

    @staticmethod
    def update_campus_codes(campus_id, codes):
        campus = db.session.get(UniversityCampus, campus_id)
        if not campus:
            raise NotFoundError("Campus not found.")

        unknown = set(codes) - set(CAMPUS_CODE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown campus fields: {', '.join(sorted(unknown))}.")

        for key, value in codes.items():
            setattr(campus, key, optional_trimmed(value))
        db.session.commit()
        return campus.to_dict()
