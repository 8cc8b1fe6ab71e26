"""
National holidays for a school year.

The public holiday API serves one static ``{"YYYY-MM-DD": "name"}`` map that
covers several years. A school (fiscal) year runs from April 1 to March 31,
so every lookup filters the map down to that window. Results are kept in the
holiday_cache table, one row per fiscal year.
"""
import datetime
import logging

import requests
from flask import current_app

from classes.exceptions import UpstreamServiceError, ValidationError
from models import db
from models.holiday_cache import HolidayCache

logger = logging.getLogger(__name__)

MIN_FISCAL_YEAR = 1900
MAX_FISCAL_YEAR = 2999


def validate_fiscal_year(year):
    if isinstance(year, bool) or not isinstance(year, int):
        raise ValidationError("fiscal_year must be an integer.")
    if not MIN_FISCAL_YEAR <= year <= MAX_FISCAL_YEAR:
        raise ValidationError(f"fiscal_year must be between {MIN_FISCAL_YEAR} and {MAX_FISCAL_YEAR}.")
    return year


def fiscal_range(year):
    return datetime.date(year, 4, 1), datetime.date(year + 1, 3, 31)


def enumerate_fiscal_dates(year):
    start, end = fiscal_range(year)
    return [start + datetime.timedelta(days=offset) for offset in range((end - start).days + 1)]


def fetch_holidays_from_source(year):
    url = current_app.config["HOLIDAYS_API_URL"]
    timeout = current_app.config.get("HOLIDAYS_API_TIMEOUT", 10)

    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        logger.error("Holiday API request failed: %s", e)
        raise UpstreamServiceError("Failed to fetch national holidays.") from e

    if response.status_code != 200:
        logger.error("Holiday API answered %s", response.status_code)
        raise UpstreamServiceError("Failed to fetch national holidays.")

    try:
        raw = response.json()
    except ValueError as e:
        raise UpstreamServiceError("Holiday API returned invalid JSON.") from e
    if not isinstance(raw, dict):
        raise UpstreamServiceError("Holiday API returned an unexpected payload.")

    start, end = fiscal_range(year)
    start_key, end_key = start.isoformat(), end.isoformat()
    # ISO date strings compare in calendar order
    return [
        {"date": day, "name": name}
        for day, name in sorted(raw.items())
        if start_key <= day <= end_key
    ]


def get_fiscal_holidays(year, force_refresh=False):
    validate_fiscal_year(year)
    cached = HolidayCache.query.filter_by(fiscal_year=year).first()

    if cached and not force_refresh:
        return {
            "holidays": cached.holidays,
            "from_cache": True,
            "fetched_at": cached.fetched_at.isoformat(),
        }

    holidays = fetch_holidays_from_source(year)
    now = datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)
    had_cache = cached is not None

    if cached:
        cached.holidays = holidays
        cached.fetched_at = now
    else:
        db.session.add(HolidayCache(fiscal_year=year, holidays=holidays, fetched_at=now))
    db.session.commit()

    logger.info("Cached %d holidays for fiscal year %s", len(holidays), year)
    return {
        "holidays": holidays,
        "from_cache": had_cache,
        "fetched_at": now.isoformat(),
    }
