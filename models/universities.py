from models import db

UNIVERSITY_TYPES = ("national", "public", "private")

class University(db.Model):
    __tablename__ = 'universities'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    prefecture = db.Column(db.String(50), nullable=True)
    type = db.Column(db.String(20), nullable=True)
    capacity = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, default=db.func.now(), nullable=False)
    updated_at = db.Column(db.DateTime, default=db.func.now(), onupdate=db.func.now(), nullable=False)

    def __repr__(self):
        return f"<University {self.code} {self.name}>"

    def to_dict(self):
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "prefecture": self.prefecture,
            "type": self.type,
            "capacity": self.capacity,
        }


class UniversityCampus(db.Model):
    __tablename__ = 'university_campuses'

    id = db.Column(db.Integer, primary_key=True)
    university_code = db.Column(db.String(32), nullable=False, index=True)
    campus_name = db.Column(db.String(255), nullable=False)
    university_name = db.Column(db.String(255), nullable=True)
    prefecture = db.Column(db.String(50), nullable=True)
    city = db.Column(db.String(100), nullable=True)
    postal_code = db.Column(db.String(16), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    office_code = db.Column(db.String(32), nullable=True)
    office_name = db.Column(db.String(100), nullable=True)
    class10_code = db.Column(db.String(32), nullable=True)
    class10_name = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime, default=db.func.now(), nullable=False)
    updated_at = db.Column(db.DateTime, default=db.func.now(), onupdate=db.func.now(), nullable=False)

    __table_args__ = (
        db.UniqueConstraint('university_code', 'campus_name', name='uq_university_campus'),
    )

    def __repr__(self):
        return f"<UniversityCampus {self.university_code} {self.campus_name}>"

    def to_dict(self):
        return {
            "id": self.id,
            "university_code": self.university_code,
            "campus_name": self.campus_name,
            "university_name": self.university_name,
            "prefecture": self.prefecture,
            "city": self.city,
            "postal_code": self.postal_code,
            "address": self.address,
            "office_code": self.office_code,
            "office_name": self.office_name,
            "class10_code": self.class10_code,
            "class10_name": self.class10_name,
        }
