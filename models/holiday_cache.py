from models import db

class HolidayCache(db.Model):
    __tablename__ = "holiday_cache"

    id = db.Column(db.Integer, primary_key=True)
    fiscal_year = db.Column(db.Integer, nullable=False, unique=True)
    holidays = db.Column(db.JSON, nullable=False, default=list)  # [{"date": "YYYY-MM-DD", "name": ...}]
    fetched_at = db.Column(db.DateTime, nullable=False)

    def __repr__(self):
        return f"<HolidayCache {self.fiscal_year} ({len(self.holidays or [])} holidays)>"
