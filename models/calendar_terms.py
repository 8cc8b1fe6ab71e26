from models import db
from sqlalchemy.orm import relationship

HOLIDAY_TERM = 1
INSTRUCTION_TERM = 2

class CalendarTerm(db.Model):
    __tablename__ = "calendar_terms"

    id = db.Column(db.Integer, primary_key=True)
    calendar_id = db.Column(db.Integer, db.ForeignKey("calendars.id"), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    order = db.Column(db.Integer, nullable=True)
    short_name = db.Column(db.String(50), nullable=True)
    class_count = db.Column(db.Integer, nullable=True)
    holiday_flag = db.Column(db.Integer, nullable=True, default=INSTRUCTION_TERM)
    created_at = db.Column(db.DateTime, default=db.func.now(), nullable=False)
    updated_at = db.Column(db.DateTime, default=db.func.now(), onupdate=db.func.now(), nullable=False)

    calendar = relationship("Calendar", back_populates="terms")

    __table_args__ = (
        db.UniqueConstraint('calendar_id', 'name', name='uq_calendar_term_name'),
    )

    def __repr__(self):
        return f"<CalendarTerm {self.name} (calendar {self.calendar_id})>"
