from models import db
from sqlalchemy.orm import relationship


class DayType:
    UNSPECIFIED = "unspecified"
    CLASS_DAY = "class_day"
    EXAM_DAY = "exam_day"
    RESERVE_DAY = "reserve_day"
    CANCELLED_DAY = "cancelled_day"

    ALL = (UNSPECIFIED, CLASS_DAY, EXAM_DAY, RESERVE_DAY, CANCELLED_DAY)


class CalendarDay(db.Model):
    __tablename__ = "calendar_days"

    id = db.Column(db.Integer, primary_key=True)
    calendar_id = db.Column(db.Integer, db.ForeignKey("calendars.id"), nullable=False)
    date = db.Column(db.Date, nullable=False)
    type = db.Column(db.String(20), nullable=False, default=DayType.UNSPECIFIED)
    term_id = db.Column(db.Integer, db.ForeignKey("calendar_terms.id"), nullable=True)
    description = db.Column(db.Text, nullable=True)
    is_holiday = db.Column(db.Boolean, nullable=False, default=False)
    national_holiday_name = db.Column(db.String(100), nullable=True)
    class_weekday = db.Column(db.Integer, nullable=True)  # manual override, 1 = Monday .. 7 = Sunday
    class_order = db.Column(db.Integer, nullable=True)
    notification_reasons = db.Column(db.String(32), nullable=True)
    updated_at = db.Column(db.DateTime, default=db.func.now(), onupdate=db.func.now(), nullable=False)

    calendar = relationship("Calendar", back_populates="days")
    term = relationship("CalendarTerm")

    __table_args__ = (
        db.UniqueConstraint('calendar_id', 'date', name='uq_calendar_day_date'),
        db.Index('ix_calendar_days_calendar_type', 'calendar_id', 'type'),
    )

    def __repr__(self):
        return f"<CalendarDay {self.date} {self.type}>"

    def to_dict(self):
        return {
            "id": self.id,
            "calendar_id": self.calendar_id,
            "date": self.date.isoformat(),
            "type": self.type,
            "term_id": self.term_id,
            "description": self.description,
            "is_holiday": self.is_holiday,
            "national_holiday_name": self.national_holiday_name,
            "class_weekday": self.class_weekday,
            "class_order": self.class_order,
            "notification_reasons": self.notification_reasons,
        }
