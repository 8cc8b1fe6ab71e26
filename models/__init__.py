from flask_sqlalchemy import SQLAlchemy

# Initialize SQLAlchemy
db = SQLAlchemy()

# Import models
from models.universities import University, UniversityCampus

from models.calendars import Calendar
from models.calendar_terms import CalendarTerm
from models.calendar_days import CalendarDay, DayType

from models.holiday_cache import HolidayCache
