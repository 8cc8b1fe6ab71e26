"""
Timetable bulk import.

Students paste their registration page as free text. The text goes to a hosted
LLM (Fireworks chat completions, JSON mode) with a fixed prompt, and the JSON it
returns is validated with pydantic and normalized into class records.
"""
import json
import logging
from typing import Any, List, Literal, Optional, Union

import requests
from flask import current_app
from pydantic import BaseModel, Field, ValidationInfo, field_validator
from pydantic import ValidationError as SchemaValidationError

from classes.exceptions import ConfigurationError, UpstreamServiceError, ValidationError
from classes.validators import optional_trimmed, parse_weekday_label

logger = logging.getLogger(__name__)

CLASS_TYPES = ("in_person", "online", "hybrid", "on_demand")
ON_DEMAND_PERIOD = "OD"

CONVERSION_FAILED = "Conversion failed. Please try again later."

SYSTEM_PROMPT = """You are a course registration assistant. From the data below, find the classes the student is registered for and output them in the given format.
- Terms are required. Pick term names from the candidates. A full-year class lists several terms.
- classType meanings:
  - in_person: taught on campus. dayOfWeek and period are required.
  - online: taught live online. dayOfWeek and period are required.
  - hybrid: mixes in-person and online. dayOfWeek and period are required.
  - on_demand: pre-recorded. If it is released on a fixed weekday, give that weekday with period 0 or 'OD'. If everything is released at once, leave weeklySlots empty and set isFullyOnDemand to true.
  Use in_person when the data does not say.
- weeklySlots.dayOfWeek must be one of 月 火 水 木 金 土 日. period is a number 1..N or 'OD'/0."""


class WeeklySlot(BaseModel):
    day_of_week: Any = Field(alias="dayOfWeek")
    period: Any = None


class ImportedClass(BaseModel):
    class_name: str = Field(alias="className")
    class_type: Literal["in_person", "online", "hybrid", "on_demand"] = Field(alias="classType")
    term_names: List[str] = Field(default_factory=list, alias="termNames")
    weekly_slots: List[WeeklySlot] = Field(default_factory=list, alias="weeklySlots")
    location: Optional[str] = None
    teacher: Optional[str] = None
    credits: Optional[Union[int, float, str]] = None
    is_fully_on_demand: bool = Field(default=False, alias="isFullyOnDemand")

    @field_validator("term_names")
    @classmethod
    def term_names_are_candidates(cls, value, info: ValidationInfo):
        candidates = (info.context or {}).get("term_names") or []
        if candidates:
            unknown = [name for name in value if name.strip() not in candidates]
            if unknown:
                raise ValueError(f"unknown term names: {', '.join(unknown)}")
        return value


def sanitize_candidates(candidates):
    """Keep well-formed {id, name} candidates, trimmed and deduplicated by name."""
    if not isinstance(candidates, list):
        return []
    seen = {}
    for candidate in candidates:
        if not isinstance(candidate, dict):
            continue
        name = optional_trimmed(candidate.get("name"))
        candidate_id = candidate.get("id")
        if name and candidate_id is not None and name not in seen:
            seen[name] = candidate_id
    return [{"id": candidate_id, "name": name} for name, candidate_id in seen.items()]


def build_schema_for_prompt(term_names):
    term_name_item = {"type": "string", "description": "term name, picked from the candidates"}
    if term_names:
        term_name_item["enum"] = term_names

    schema = {
        "type": "object",
        "properties": {
            "classes": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "className": {"type": "string", "description": "class name"},
                        "classType": {"type": "string", "enum": list(CLASS_TYPES)},
                        "termNames": {"type": "array", "items": term_name_item},
                        "weeklySlots": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "dayOfWeek": {"type": "string", "enum": ["月", "火", "水", "木", "金", "土", "日"]},
                                    "period": {"oneOf": [{"type": "number"}, {"type": "string", "enum": ["OD"]}]},
                                },
                                "required": ["dayOfWeek", "period"],
                            },
                        },
                        "location": {"type": ["string", "null"]},
                        "teacher": {"type": ["string", "null"]},
                        "credits": {"type": ["number", "string", "null"]},
                        "isFullyOnDemand": {"type": "boolean"},
                    },
                    "required": ["className", "classType", "termNames", "weeklySlots", "isFullyOnDemand"],
                },
            },
        },
        "required": ["classes"],
    }
    return json.dumps(schema, ensure_ascii=False, indent=2)


def build_prompt(text, term_names):
    if term_names:
        term_context = "Available terms (vacations excluded, use the names only):\n" + "\n".join(
            f"- {name}" for name in term_names
        )
    else:
        term_context = "No term candidates are available. Leave termNames empty when the term is unclear."

    return (
        f"{SYSTEM_PROMPT}\n{term_context}\n\n"
        "Answer with JSON only, following this JSON Schema exactly, with no extra text.\n"
        f"{build_schema_for_prompt(term_names)}\n\n"
        f"Extract the classes from this data.\n{text}"
    )


def normalize_period(value):
    if value == ON_DEMAND_PERIOD:
        return ON_DEMAND_PERIOD
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return None
        parsed = int(value)
    else:
        try:
            parsed = int(str(value).strip())
        except (TypeError, ValueError):
            return None
    return ON_DEMAND_PERIOD if parsed <= 0 else parsed


def normalize_credits(value):
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None
        try:
            return int(trimmed)
        except ValueError:
            return trimmed
    return None


def normalize_weekly_slots(slots):
    normalized = []
    for slot in slots:
        day_of_week = parse_weekday_label(slot.day_of_week)
        period = normalize_period(slot.period)
        if day_of_week and period is not None:
            normalized.append({"day_of_week": day_of_week, "period": period})
    return normalized


def normalize_class(imported, term_name_to_id):
    term_names = []
    for name in imported.term_names:
        trimmed = optional_trimmed(name)
        if trimmed and trimmed not in term_names:
            term_names.append(trimmed)

    weekly_slots = normalize_weekly_slots(imported.weekly_slots)
    return {
        "class_name": imported.class_name,
        "class_type": imported.class_type,
        "term_ids": [term_name_to_id[name] for name in term_names if name in term_name_to_id],
        "term_names": term_names,
        "weekly_slots": weekly_slots,
        "location": optional_trimmed(imported.location),
        "teacher": optional_trimmed(imported.teacher),
        "credits": normalize_credits(imported.credits),
        "is_fully_on_demand": imported.is_fully_on_demand or not weekly_slots,
    }


def _request_completion(prompt):
    config = current_app.config
    try:
        response = requests.post(
            config["FIREWORKS_ENDPOINT"],
            headers={
                "Authorization": f"Bearer {config['FIREWORKS_API_KEY']}",
                "Content-Type": "application/json",
            },
            json={
                "model": config["FIREWORKS_MODEL"],
                "messages": [{"role": "user", "content": prompt}],
                "response_format": {"type": "json_object"},
                "temperature": 0,
            },
            timeout=config.get("FIREWORKS_TIMEOUT", 60),
        )
    except requests.RequestException as e:
        logger.error("Fireworks request failed: %s", e)
        raise UpstreamServiceError(CONVERSION_FAILED) from e

    if response.status_code != 200:
        logger.error("Fireworks answered %s: %s", response.status_code, response.text[:500])
        raise UpstreamServiceError(CONVERSION_FAILED)

    try:
        return response.json()["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as e:
        logger.error("Unexpected Fireworks response shape: %s", e)
        raise UpstreamServiceError(CONVERSION_FAILED) from e


def parse_model_output(content, term_names):
    try:
        payload = json.loads(content)
    except (TypeError, ValueError) as e:
        logger.error("Model output is not JSON: %s", e)
        raise UpstreamServiceError(CONVERSION_FAILED) from e

    if isinstance(payload, dict):
        payload = payload.get("classes")
    if not isinstance(payload, list):
        logger.error("Model output has no class list")
        raise UpstreamServiceError(CONVERSION_FAILED)

    try:
        return [
            ImportedClass.model_validate(item, context={"term_names": term_names})
            for item in payload
        ]
    except SchemaValidationError as e:
        logger.error("Model output failed validation: %s", e)
        raise UpstreamServiceError(CONVERSION_FAILED) from e


def import_classes(text, term_candidates=None):
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Input is empty. Please paste your class list.")
    if not current_app.config.get("FIREWORKS_API_KEY"):
        raise ConfigurationError("The Fireworks API key is not configured.")

    candidates = sanitize_candidates(term_candidates or [])
    term_names = [candidate["name"] for candidate in candidates]
    term_name_to_id = {candidate["name"]: candidate["id"] for candidate in candidates}

    content = _request_completion(build_prompt(text, term_names))
    classes = parse_model_output(content, term_names)

    normalized = [normalize_class(item, term_name_to_id) for item in classes]
    logger.info("Imported %d classes from %d characters of text", len(normalized), len(text))
    return normalized
