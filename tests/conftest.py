import pytest

from app import create_app
from classes.calendar_manager import CalendarManager
from classes.term_manager import TermManager
from models import db
from utils.tokens import get_jwt_token

DEFAULT_TERMS = [
    {"name": "Spring Semester", "order": 1},
    {"name": "Summer Break", "order": 2, "holiday_flag": 1},
    {"name": "Fall Semester", "order": 3},
]


class FakeResponse:
    def __init__(self, payload=None, status_code=200, text=""):
        self._payload = payload
        self.status_code = status_code
        self.text = text

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers(app):
    token = get_jwt_token({"user_id": 1, "role": "admin"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def student_headers(app):
    token = get_jwt_token({"user_id": 2, "role": "student"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def calendar_id(app):
    return CalendarManager.create_calendar(
        "Example University Academic Calendar",
        2025,
        university_code="U001",
        terms=DEFAULT_TERMS,
    )


@pytest.fixture
def term_ids(calendar_id):
    return {term["name"]: term["id"] for term in TermManager.list_terms(calendar_id)}
