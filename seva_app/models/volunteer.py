# seva_app/models/volunteer.py
"""
Volunteer and registration models
"""

from sqlalchemy import Index

from .base import BaseModel, db


class Volunteer(BaseModel):
    """A volunteer record keyed by the six-digit SAI Connect ID"""

    __tablename__ = "volunteers_volunteers"

    id = db.Column(db.Integer, primary_key=True)
    sai_connect_id = db.Column(db.String(6), unique=True, nullable=False, index=True)
    serial_number = db.Column(db.String(50), nullable=True)
    full_name = db.Column(db.String(200), nullable=False, index=True)
    age = db.Column(db.Integer, nullable=True)
    gender = db.Column(db.String(20), nullable=True)
    aadhar_number = db.Column(db.String(12), nullable=True)
    mobile_number = db.Column(db.String(10), nullable=True, index=True)
    sss_district = db.Column(db.String(100), nullable=True, index=True)
    samiti_or_bhajan_mandli = db.Column(db.String(200), nullable=True)
    education = db.Column(db.String(200), nullable=True)
    special_qualifications = db.Column(db.Text, nullable=True)
    sevadal_training_certificate = db.Column(db.Boolean, default=False, nullable=False)
    past_prashanti_service = db.Column(db.Boolean, default=False, nullable=False)
    last_service_location = db.Column(db.String(200), nullable=True)
    other_service_location = db.Column(db.String(200), nullable=True)
    prashanti_arrival = db.Column(db.Date, nullable=True)
    prashanti_departure = db.Column(db.Date, nullable=True)
    duty_point = db.Column(db.String(200), nullable=True)
    is_cancelled = db.Column(db.Boolean, default=False, nullable=False, index=True)

    registration = db.relationship(
        "RegisteredVolunteer",
        back_populates="volunteer",
        uselist=False,
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("idx_volunteer_district_cancelled", "sss_district", "is_cancelled"),)

    def __repr__(self):
        return f"<Volunteer {self.sai_connect_id} {self.full_name}>"

    @property
    def status(self):
        """Dashboard status: cancelled, registered, or active"""
        if self.is_cancelled:
            return "cancelled"
        if self.registration is not None:
            return "registered"
        return "active"

    def to_dict(self):
        return {
            "sai_connect_id": self.sai_connect_id,
            "serial_number": self.serial_number,
            "full_name": self.full_name,
            "age": self.age,
            "gender": self.gender,
            "aadhar_number": self.aadhar_number,
            "mobile_number": self.mobile_number,
            "sss_district": self.sss_district,
            "samiti_or_bhajan_mandli": self.samiti_or_bhajan_mandli,
            "education": self.education,
            "special_qualifications": self.special_qualifications,
            "sevadal_training_certificate": self.sevadal_training_certificate,
            "past_prashanti_service": self.past_prashanti_service,
            "last_service_location": self.last_service_location,
            "other_service_location": self.other_service_location,
            "prashanti_arrival": self.prashanti_arrival.isoformat() if self.prashanti_arrival else None,
            "prashanti_departure": self.prashanti_departure.isoformat() if self.prashanti_departure else None,
            "duty_point": self.duty_point,
            "is_cancelled": self.is_cancelled,
            "status": self.status,
            "registration": self.registration.to_dict() if self.registration else None,
        }


class RegisteredVolunteer(BaseModel):
    """Batch and service location assigned to a confirmed volunteer"""

    __tablename__ = "registered_volunteers"

    id = db.Column(db.Integer, primary_key=True)
    sai_connect_id = db.Column(
        db.String(6),
        db.ForeignKey("volunteers_volunteers.sai_connect_id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )
    batch = db.Column(db.String(100), nullable=True)
    service_location = db.Column(db.String(200), nullable=True)

    volunteer = db.relationship("Volunteer", back_populates="registration")

    def __repr__(self):
        return f"<RegisteredVolunteer {self.sai_connect_id} batch={self.batch}>"

    def to_dict(self):
        return {
            "sai_connect_id": self.sai_connect_id,
            "batch": self.batch,
            "service_location": self.service_location,
        }
