import pytest

from classes.exceptions import NotFoundError, ValidationError
from classes.university_directory import UniversityDirectory
from models.universities import UniversityCampus

UNIVERSITIES = [
    {"code": "U001", "name": "Example University", "prefecture": "Tokyo", "type": "国立", "capacity": 12000},
    {"code": "U002", "name": "Example Arts College", "type": "private"},
    {"code": "U003", "name": "North Example Institute", "type": "public"},
]


def test_bulk_upsert_inserts_then_updates(app):
    assert UniversityDirectory.bulk_upsert(UNIVERSITIES) == {"inserted": 3, "updated": 0}

    result = UniversityDirectory.bulk_upsert([{"code": "U001", "name": "Example National University"}])

    assert result == {"inserted": 0, "updated": 1}
    university = UniversityDirectory.get_by_code("U001")
    assert university["name"] == "Example National University"
    assert university["type"] == "national"
    assert university["prefecture"] == "Tokyo"


def test_bulk_upsert_validation(app):
    with pytest.raises(ValidationError):
        UniversityDirectory.bulk_upsert([{"code": "U009"}])
    with pytest.raises(ValidationError):
        UniversityDirectory.bulk_upsert([{"code": "U009", "name": "X", "type": "online"}])
    with pytest.raises(ValidationError):
        UniversityDirectory.bulk_upsert([{"code": "U009", "name": "X", "capacity": "many"}])


def test_search_by_name_prefix_first(app):
    UniversityDirectory.bulk_upsert(UNIVERSITIES)

    rows = UniversityDirectory.search_by_name("Example")

    assert [row["code"] for row in rows] == ["U002", "U001", "U003"]
    assert [row["code"] for row in UniversityDirectory.search_by_name("Example", limit=1)] == ["U002"]
    assert UniversityDirectory.search_by_name("  ") == []


def test_get_by_code_missing(app):
    assert UniversityDirectory.get_by_code("nope") is None


def test_campus_import_keeps_codes(app):
    UniversityDirectory.bulk_upsert_campuses([{"university_code": "U001", "campus_name": "Main", "city": "Bunkyo"}])
    campus = UniversityCampus.query.one()
    UniversityDirectory.update_campus_codes(campus.id, {"office_code": " 130000 ", "office_name": "Tokyo"})

    result = UniversityDirectory.bulk_upsert_campuses([
        {"university_code": "U001", "campus_name": " Main ", "city": "Meguro", "office_code": "999999"},
        {"university_code": "U001", "campus_name": "Annex"},
    ])

    assert result == {"inserted": 1, "updated": 1}
    campuses = UniversityDirectory.list_campuses_by_university_code("U001")
    assert [campus["campus_name"] for campus in campuses] == ["Annex", "Main"]
    main = campuses[1]
    assert main["city"] == "Meguro"
    assert main["office_code"] == "130000"
    assert main["office_name"] == "Tokyo"


def test_campus_validation(app):
    with pytest.raises(ValidationError):
        UniversityDirectory.bulk_upsert_campuses([{"campus_name": "Main"}])
    with pytest.raises(NotFoundError):
        UniversityDirectory.update_campus_codes(404, {"office_code": "1"})

    UniversityDirectory.bulk_upsert_campuses([{"university_code": "U001", "campus_name": "Main"}])
    campus = UniversityCampus.query.one()
    with pytest.raises(ValidationError):
        UniversityDirectory.update_campus_codes(campus.id, {"city": "Elsewhere"})
