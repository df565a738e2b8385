# seva_app/services/volunteer_service.py
"""
Volunteer Service - dashboard statistics, volunteer records, cancellation and registration
"""

import re
from datetime import date

from flask import current_app
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from seva_app.models import RegisteredVolunteer, Volunteer, db

SAI_CONNECT_ID_PATTERN = re.compile(r"^\d{6}$")
MOBILE_NUMBER_PATTERN = re.compile(r"^\d{10}$")
AADHAR_NUMBER_PATTERN = re.compile(r"^\d{12}$")
SEARCH_LIMIT = 50

TEXT_FIELDS = (
    "serial_number",
    "full_name",
    "gender",
    "aadhar_number",
    "mobile_number",
    "sss_district",
    "samiti_or_bhajan_mandli",
    "education",
    "special_qualifications",
    "last_service_location",
    "other_service_location",
    "duty_point",
)
FLAG_FIELDS = ("sevadal_training_certificate", "past_prashanti_service", "is_cancelled")
DATE_FIELDS = ("prashanti_arrival", "prashanti_departure")
EDITABLE_FIELDS = TEXT_FIELDS + FLAG_FIELDS + DATE_FIELDS + ("age",)

# Read-only keys of Volunteer.to_dict() that clients echo back on update
READ_ONLY_FIELDS = ("registration", "registered_volunteers", "status")


class VolunteerServiceError(ValueError):
    """Base error for volunteer operations rejected by business rules"""


class VolunteerNotFound(VolunteerServiceError):
    def __init__(self, sai_connect_id):
        super().__init__(f"Volunteer {sai_connect_id} not found")
        self.sai_connect_id = sai_connect_id


class VolunteerCancelled(VolunteerServiceError):
    """Raised when registering a volunteer whose participation was cancelled"""


class VolunteerAlreadyRegistered(VolunteerServiceError):
    """Raised when the volunteer already has a batch assignment"""


class VolunteerAlreadyExists(VolunteerServiceError):
    def __init__(self, sai_connect_id):
        super().__init__(f"Volunteer {sai_connect_id} already exists")
        self.sai_connect_id = sai_connect_id


def _clean_text(value):
    if value is None:
        return None
    return str(value).strip() or None


def _require_connect_id(sai_connect_id):
    sai_connect_id = _clean_text(sai_connect_id) or ""
    if not SAI_CONNECT_ID_PATTERN.match(sai_connect_id):
        raise VolunteerServiceError("SAI Connect ID must be 6 digits")
    return sai_connect_id


def _parse_flag(field, value):
    if isinstance(value, bool):
        return value
    text = (_clean_text(value) or "").lower()
    if text in {"true", "yes", "1"}:
        return True
    if text in {"false", "no", "0", ""}:
        return False
    raise VolunteerServiceError(f"{field} must be true or false")


def _parse_date(field, value):
    text = _clean_text(value)
    if text is None:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        raise VolunteerServiceError(f"{field} must be a date in YYYY-MM-DD format") from None


def _clean_fields(data):
    """Validate an incoming volunteer payload into column values"""
    unknown = sorted(set(data) - set(EDITABLE_FIELDS) - set(READ_ONLY_FIELDS) - {"sai_connect_id"})
    if unknown:
        raise VolunteerServiceError(f"Unknown volunteer fields: {', '.join(unknown)}")

    values = {}
    for field in TEXT_FIELDS:
        if field in data:
            values[field] = _clean_text(data[field])
    for field in FLAG_FIELDS:
        if field in data:
            values[field] = _parse_flag(field, data[field])
    for field in DATE_FIELDS:
        if field in data:
            values[field] = _parse_date(field, data[field])
    if "age" in data:
        values["age"] = None if _clean_text(data["age"]) is None else _parse_age(data["age"])

    if "full_name" in values and not values["full_name"]:
        raise VolunteerServiceError("Full name is required")
    if values.get("mobile_number") and not MOBILE_NUMBER_PATTERN.match(values["mobile_number"]):
        raise VolunteerServiceError("Mobile number must be 10 digits")
    if values.get("aadhar_number") and not AADHAR_NUMBER_PATTERN.match(values["aadhar_number"]):
        raise VolunteerServiceError("Aadhar number must be 12 digits")
    return values


def _commit_volunteer(sai_connect_id):
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise VolunteerAlreadyExists(sai_connect_id) from None


def get_volunteer_stats():
    """Counts shown on the dashboard tiles"""
    total = db.session.query(func.count(Volunteer.id)).scalar() or 0
    not_coming = db.session.query(func.count(Volunteer.id)).filter(Volunteer.is_cancelled.is_(True)).scalar() or 0
    registered = db.session.query(func.count(RegisteredVolunteer.id)).scalar() or 0
    return {
        "total_volunteers": total,
        "coming": total - not_coming,
        "not_coming": not_coming,
        "registered": registered,
    }


def get_volunteer(sai_connect_id):
    volunteer = Volunteer.query.filter_by(sai_connect_id=sai_connect_id).first()
    if volunteer is None:
        raise VolunteerNotFound(sai_connect_id)
    return volunteer


def search_volunteers(query=None, limit=SEARCH_LIMIT):
    """Case-insensitive search over name, SAI Connect ID, mobile number and district"""
    volunteers = Volunteer.query
    query = (query or "").strip()
    if query:
        term = f"%{query}%"
        volunteers = volunteers.filter(
            or_(
                Volunteer.full_name.ilike(term),
                Volunteer.sai_connect_id.ilike(term),
                Volunteer.mobile_number.ilike(term),
                Volunteer.sss_district.ilike(term),
            )
        )
    return volunteers.order_by(Volunteer.full_name).limit(limit).all()


def create_volunteer(data):
    """
    Add a single volunteer record.

    ``sai_connect_id`` and ``full_name`` are required; any other editable
    column may be supplied. Registration details are ignored here and go
    through ``register_volunteer``.
    """
    sai_connect_id = _require_connect_id(data.get("sai_connect_id"))
    values = _clean_fields(data)
    if not values.get("full_name"):
        raise VolunteerServiceError("Full name is required")
    if Volunteer.query.filter_by(sai_connect_id=sai_connect_id).first() is not None:
        raise VolunteerAlreadyExists(sai_connect_id)

    volunteer = Volunteer(sai_connect_id=sai_connect_id, **values)
    db.session.add(volunteer)
    _commit_volunteer(sai_connect_id)
    current_app.logger.info("Volunteer created", extra={"volunteer_sai_connect_id": sai_connect_id})
    return volunteer


def update_volunteer(sai_connect_id, data):
    """Apply a partial update; the SAI Connect ID itself cannot change"""
    volunteer = get_volunteer(sai_connect_id)
    if "sai_connect_id" in data and _clean_text(data["sai_connect_id"]) != volunteer.sai_connect_id:
        raise VolunteerServiceError("SAI Connect ID cannot be changed")

    values = _clean_fields(data)
    for field, value in values.items():
        setattr(volunteer, field, value)
    _commit_volunteer(sai_connect_id)
    current_app.logger.info(
        "Volunteer updated",
        extra={"volunteer_sai_connect_id": sai_connect_id, "volunteer_fields": sorted(values)},
    )
    return volunteer


def delete_volunteer(sai_connect_id):
    """Remove a volunteer together with any registration"""
    volunteer = get_volunteer(sai_connect_id)
    db.session.delete(volunteer)
    db.session.commit()
    current_app.logger.info("Volunteer deleted", extra={"volunteer_sai_connect_id": sai_connect_id})


def cancel_volunteer(sai_connect_id):
    """Mark a volunteer as not coming and drop any batch registration"""
    volunteer = get_volunteer(sai_connect_id)
    if volunteer.registration is not None:
        db.session.delete(volunteer.registration)
        volunteer.registration = None
    volunteer.is_cancelled = True
    db.session.commit()
    current_app.logger.info(
        "Volunteer cancelled",
        extra={"volunteer_sai_connect_id": sai_connect_id},
    )
    return volunteer


def _parse_age(age):
    try:
        value = int(str(age).strip())
    except (TypeError, ValueError):
        value = None
    low = int(current_app.config.get("IMPORTER_AGE_MIN", 18))
    high = int(current_app.config.get("IMPORTER_AGE_MAX", 100))
    if value is None or not low <= value <= high:
        raise VolunteerServiceError(f"Age must be between {low} and {high}")
    return value


def register_volunteer(sai_connect_id, age, batch=None, service_location=None):
    """
    Assign a batch and service location to an existing, active volunteer.

    The submitted age replaces the stored one.
    """
    sai_connect_id = _require_connect_id(sai_connect_id)
    age_value = _parse_age(age)

    volunteer = get_volunteer(sai_connect_id)
    if volunteer.is_cancelled:
        raise VolunteerCancelled("Volunteer has been cancelled")
    if volunteer.registration is not None:
        raise VolunteerAlreadyRegistered("Volunteer is already registered")

    volunteer.age = age_value
    registration = RegisteredVolunteer(
        sai_connect_id=sai_connect_id,
        batch=_clean_text(batch),
        service_location=_clean_text(service_location),
    )
    volunteer.registration = registration
    db.session.add(registration)
    db.session.commit()
    current_app.logger.info(
        "Volunteer registered",
        extra={"volunteer_sai_connect_id": sai_connect_id, "volunteer_batch": registration.batch},
    )
    return registration
