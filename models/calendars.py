from models import db
from sqlalchemy.orm import relationship

class Calendar(db.Model):
    __tablename__ = "calendars"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    fiscal_year = db.Column(db.Integer, nullable=False, index=True)
    university_code = db.Column(db.String(32), nullable=True, index=True)
    fiscal_start = db.Column(db.Date, nullable=False)
    fiscal_end = db.Column(db.Date, nullable=False)
    download_count = db.Column(db.Integer, nullable=False, default=0)
    creator_id = db.Column(db.String(128), nullable=True)
    is_publishable = db.Column(db.Boolean, nullable=False, default=False)
    memo = db.Column(db.Text, nullable=False, default="")
    input_information = db.Column(db.Text, nullable=False, default="")
    disable_saturday = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=db.func.now(), nullable=False)
    updated_at = db.Column(db.DateTime, default=db.func.now(), onupdate=db.func.now(), nullable=False)

    days = relationship("CalendarDay", back_populates="calendar", cascade="all, delete-orphan")
    terms = relationship("CalendarTerm", back_populates="calendar", cascade="all, delete-orphan")

    __table_args__ = (
        db.UniqueConstraint('university_code', 'fiscal_year', 'name', name='uq_calendar_university_year_name'),
    )

    def __repr__(self):
        return f"<Calendar {self.name} ({self.fiscal_year})>"

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "fiscal_year": self.fiscal_year,
            "university_code": self.university_code,
            "fiscal_start": self.fiscal_start.isoformat(),
            "fiscal_end": self.fiscal_end.isoformat(),
            "download_count": self.download_count,
            "creator_id": self.creator_id,
            "is_publishable": self.is_publishable,
            "memo": self.memo,
            "input_information": self.input_information,
            "disable_saturday": self.disable_saturday,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
