import json

import pytest
import requests

from classes.exceptions import ConfigurationError, UpstreamServiceError, ValidationError
from tests.conftest import FakeResponse
from utils.class_import import (
    build_prompt,
    import_classes,
    normalize_credits,
    normalize_period,
    sanitize_candidates,
)

TERMS = [{"id": 11, "name": "Spring Semester"}, {"id": 12, "name": "Fall Semester"}]


def _completion(content):
    if not isinstance(content, str):
        content = json.dumps(content, ensure_ascii=False)
    return FakeResponse({"choices": [{"message": {"content": content}}]})


@pytest.fixture
def stub_post(monkeypatch):
    state = {"response": None, "calls": []}

    def fake_post(url, headers, json, timeout):
        state["calls"].append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if isinstance(state["response"], Exception):
            raise state["response"]
        return state["response"]

    monkeypatch.setattr("utils.class_import.requests.post", fake_post)
    return state


def test_import_classes_normalizes_model_output(app, stub_post):
    stub_post["response"] = _completion({"classes": [
        {
            "className": "Linear Algebra",
            "classType": "in_person",
            "termNames": ["Spring Semester", "Spring Semester", "Fall Semester"],
            "weeklySlots": [{"dayOfWeek": "月", "period": 2}, {"dayOfWeek": "木曜", "period": "3"}],
            "location": " Room 101 ",
            "teacher": "",
            "credits": "2",
            "isFullyOnDemand": False,
        },
        {
            "className": "Data Ethics",
            "classType": "on_demand",
            "termNames": ["Fall Semester"],
            "weeklySlots": [{"dayOfWeek": "水", "period": 0}],
            "isFullyOnDemand": False,
        },
        {
            "className": "Seminar",
            "classType": "online",
            "termNames": [],
            "weeklySlots": [{"dayOfWeek": "someday", "period": 1}],
            "isFullyOnDemand": False,
        },
    ]})

    classes = import_classes("Linear Algebra Mon 2 ...", TERMS)

    assert classes[0] == {
        "class_name": "Linear Algebra",
        "class_type": "in_person",
        "term_ids": [11, 12],
        "term_names": ["Spring Semester", "Fall Semester"],
        "weekly_slots": [{"day_of_week": 1, "period": 2}, {"day_of_week": 4, "period": 3}],
        "location": "Room 101",
        "teacher": None,
        "credits": 2,
        "is_fully_on_demand": False,
    }
    assert classes[1]["weekly_slots"] == [{"day_of_week": 3, "period": "OD"}]
    assert classes[2]["weekly_slots"] == []
    assert classes[2]["is_fully_on_demand"] is True


def test_request_uses_json_mode_and_term_candidates(app, stub_post):
    stub_post["response"] = _completion([])

    assert import_classes("nothing here", TERMS) == []

    call = stub_post["calls"][0]
    assert call["headers"]["Authorization"] == "Bearer test-fireworks-key"
    assert call["json"]["response_format"] == {"type": "json_object"}
    prompt = call["json"]["messages"][0]["content"]
    assert "- Spring Semester" in prompt
    assert prompt.endswith("nothing here")


def test_unknown_term_name_fails_conversion(app, stub_post):
    stub_post["response"] = _completion([{
        "className": "Physics",
        "classType": "in_person",
        "termNames": ["Winter Intensive"],
        "weeklySlots": [],
        "isFullyOnDemand": True,
    }])

    with pytest.raises(UpstreamServiceError):
        import_classes("Physics", TERMS)


@pytest.mark.parametrize("response", [
    FakeResponse({}, status_code=500, text="boom"),
    FakeResponse({"choices": []}),
    requests.Timeout("slow"),
])
def test_upstream_failures(app, stub_post, response):
    stub_post["response"] = response

    with pytest.raises(UpstreamServiceError):
        import_classes("Physics", TERMS)


@pytest.mark.parametrize("content", ["not json", json.dumps({"items": []}), json.dumps([{"className": "X"}])])
def test_bad_model_output(app, stub_post, content):
    stub_post["response"] = _completion(content)

    with pytest.raises(UpstreamServiceError):
        import_classes("Physics", TERMS)


def test_blank_text_is_rejected(app, stub_post):
    with pytest.raises(ValidationError):
        import_classes("   ", TERMS)
    assert stub_post["calls"] == []


def test_missing_api_key(app, stub_post):
    app.config["FIREWORKS_API_KEY"] = None

    with pytest.raises(ConfigurationError):
        import_classes("Physics", TERMS)


def test_sanitize_candidates():
    assert sanitize_candidates([
        {"id": 1, "name": " Spring "},
        {"id": 2, "name": "Spring"},
        {"id": None, "name": "Fall"},
        "Winter",
        {"id": 3, "name": ""},
    ]) == [{"id": 1, "name": "Spring"}]
    assert sanitize_candidates(None) == []


def test_build_prompt_without_terms():
    prompt = build_prompt("text", [])

    assert "No term candidates" in prompt
    assert '"enum": [' not in prompt.split('"termNames"')[1].split('"weeklySlots"')[0]


def test_normalizers():
    assert normalize_period("OD") == "OD"
    assert normalize_period(0) == "OD"
    assert normalize_period(" 4 ") == 4
    assert normalize_period(2.9) == 2
    assert normalize_period(True) is None
    assert normalize_period(None) is None
    assert normalize_credits(" 2 ") == 2
    assert normalize_credits("1.5 credits") == "1.5 credits"
    assert normalize_credits(1.5) == 1.5
    assert normalize_credits(" ") is None


def test_term_names_with_padding_still_match(app, stub_post):
    stub_post["response"] = _completion([{
        "className": "Statistics",
        "classType": "online",
        "termNames": [" Spring Semester "],
        "weeklySlots": [{"dayOfWeek": "火", "period": 1}],
        "isFullyOnDemand": False,
    }])

    classes = import_classes("Statistics", TERMS)

    assert classes[0]["term_names"] == ["Spring Semester"]
    assert classes[0]["term_ids"] == [11]
