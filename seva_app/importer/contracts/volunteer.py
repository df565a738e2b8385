"""Canonical volunteer upload contract.

A single source of truth for the spreadsheet columns the upload pipeline
understands: header spellings (English and Hindi), value types, required
fields, and the digit/range constraints applied during validation.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from typing import Iterable, Mapping, Tuple


class FieldType(str, enum.Enum):
    """Value types a canonical field can be coerced to."""

    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DATE = "date"


@dataclass(frozen=True)
class DigitRule:
    """
    Fixed-length numeric identifier constraint.

    Attributes:
        length: Required digit count after non-digits are stripped.
        pad_short: Left-pad short values with zeros (primary identifier only).
        drop_single_digit: Treat a lone digit as noise and drop the field.
    """

    length: int
    pad_short: bool = False
    drop_single_digit: bool = False


@dataclass(frozen=True)
class FieldSpec:
    """Metadata describing a canonical upload field."""

    key: str
    label: str
    type: FieldType = FieldType.STRING
    required: bool = False
    aliases: Tuple[str, ...] = ()
    digits: DigitRule | None = None
    bounds: Tuple[int, int] | None = None

    def headers(self) -> Tuple[str, ...]:
        """Return the canonical key, display label, and aliases for matching."""

        return (self.key, self.label, *self.aliases)


def normalize_header(header: object | None) -> str:
    """Normalize a header cell for comparison (case/space/underscore agnostic)."""

    if header is None:
        return ""
    token = str(header).strip().lstrip("\ufeff").strip().lower()
    for char in (" ", "-", "."):
        token = token.replace(char, "_")
    while "__" in token:
        token = token.replace("__", "_")
    return token.strip("_")


DEFAULT_TRUTHY_TOKENS: frozenset[str] = frozenset({"yes", "y", "true", "1", "हाँ", "हां"})


@dataclass(frozen=True)
class UploadSchema:
    """
    Closed set of field descriptors plus the header alias table built from them.

    Instances are immutable; build a new schema (``with_bounds``) rather than
    mutating a shared one.
    """

    fields: Tuple[FieldSpec, ...]
    unique_key: str
    truthy_tokens: frozenset[str] = DEFAULT_TRUTHY_TOKENS
    alias_map: Mapping[str, str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        keys = [spec.key for spec in self.fields]
        if len(keys) != len(set(keys)):
            raise ValueError("Upload schema declares the same field key more than once.")
        if self.unique_key not in keys:
            raise ValueError(f"Unique key '{self.unique_key}' is not a declared field.")

        mapping: dict[str, str] = {}
        for spec in self.fields:
            for header in spec.headers():
                token = normalize_header(header)
                existing = mapping.get(token)
                if existing is not None and existing != spec.key:
                    raise ValueError(f"Header alias '{header}' maps to both '{existing}' and '{spec.key}'.")
                mapping[token] = spec.key
        object.__setattr__(self, "alias_map", mapping)
        object.__setattr__(self, "truthy_tokens", frozenset(token.strip().lower() for token in self.truthy_tokens))

    def get(self, key: str) -> FieldSpec:
        for spec in self.fields:
            if spec.key == key:
                return spec
        raise KeyError(key)

    @property
    def required_fields(self) -> Tuple[FieldSpec, ...]:
        return tuple(spec for spec in self.fields if spec.required)

    @property
    def boolean_fields(self) -> Tuple[FieldSpec, ...]:
        return tuple(spec for spec in self.fields if spec.type is FieldType.BOOLEAN)

    def resolve(self, header: object | None) -> str | None:
        """Return the canonical key for a raw header, or ``None`` when unrecognized."""

        token = normalize_header(header)
        if not token:
            return None
        return self.alias_map.get(token)

    def with_bounds(self, key: str, bounds: Tuple[int, int]) -> "UploadSchema":
        low, high = bounds
        if low > high:
            raise ValueError(f"Invalid bounds for '{key}': {low} > {high}.")
        self.get(key)
        fields = tuple(replace(spec, bounds=(low, high)) if spec.key == key else spec for spec in self.fields)
        return UploadSchema(fields=fields, unique_key=self.unique_key, truthy_tokens=self.truthy_tokens)

    def supported_headers(self) -> dict[str, Tuple[str, ...]]:
        return {spec.key: spec.headers() for spec in self.fields}


VOLUNTEER_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec(
        key="serial_number",
        label="Serial Number",
        aliases=("SerialNumber", "S No", "Sr No", "क्रम संख्या"),
    ),
    FieldSpec(
        key="sai_connect_id",
        label="SAI Connect ID",
        required=True,
        aliases=("SaiConnectId", "Connect ID", "साई कनेक्ट आईडी", "कनेक्ट आईडी"),
        digits=DigitRule(length=6, pad_short=True),
    ),
    FieldSpec(
        key="full_name",
        label="Full Name",
        required=True,
        aliases=("FullName", "Name", "पूरा नाम", "नाम"),
    ),
    FieldSpec(
        key="age",
        label="Age",
        type=FieldType.INTEGER,
        aliases=("उम्र", "आयु"),
        bounds=(18, 100),
    ),
    FieldSpec(
        key="gender",
        label="Gender",
        aliases=("लिंग",),
    ),
    FieldSpec(
        key="aadhar_number",
        label="Aadhar Number",
        aliases=("AadharNumber", "Aadhaar Number", "Aadhaar", "आधार नंबर", "आधार संख्या"),
        digits=DigitRule(length=12, drop_single_digit=True),
    ),
    FieldSpec(
        key="mobile_number",
        label="Mobile Number",
        aliases=("MobileNumber", "Mobile", "Phone", "मोबाइल नंबर", "मोबाइल"),
        digits=DigitRule(length=10, drop_single_digit=True),
    ),
    FieldSpec(
        key="sss_district",
        label="SSS District",
        aliases=("SSSDistrict", "District", "जिला", "ज़िला"),
    ),
    FieldSpec(
        key="samiti_or_bhajan_mandli",
        label="Samiti / Bhajan Mandli",
        aliases=("Samiti", "BhajanMandli", "Bhajan Mandli", "समिति", "भजन मंडली"),
    ),
    FieldSpec(
        key="education",
        label="Education",
        aliases=("शिक्षा",),
    ),
    FieldSpec(
        key="special_qualifications",
        label="Special Qualifications",
        aliases=("SpecialQualifications", "Qualifications", "विशेष योग्यता"),
    ),
    FieldSpec(
        key="sevadal_training_certificate",
        label="Sevadal Training Certificate",
        type=FieldType.BOOLEAN,
        aliases=("SevadalTraining", "Sevadal Training", "सेवादल प्रशिक्षण प्रमाणपत्र"),
    ),
    FieldSpec(
        key="past_prashanti_service",
        label="Past Prashanti Service",
        type=FieldType.BOOLEAN,
        aliases=("PastService", "Past Service", "पूर्व प्रशांति सेवा"),
    ),
    FieldSpec(
        key="last_service_location",
        label="Last Service Location",
        aliases=("LastServiceLocation", "अंतिम सेवा स्थान"),
    ),
    FieldSpec(
        key="other_service_location",
        label="Other Service Location",
        aliases=("OtherServiceLocation", "अन्य सेवा स्थान"),
    ),
    FieldSpec(
        key="prashanti_arrival",
        label="Prashanti Arrival",
        type=FieldType.DATE,
        aliases=("PrashantiArrival", "Arrival Date", "आगमन तिथि"),
    ),
    FieldSpec(
        key="prashanti_departure",
        label="Prashanti Departure",
        type=FieldType.DATE,
        aliases=("PrashantiDeparture", "Departure Date", "प्रस्थान तिथि"),
    ),
    FieldSpec(
        key="duty_point",
        label="Duty Point",
        aliases=("DutyPoint", "ड्यूटी पॉइंट"),
    ),
    FieldSpec(
        key="is_cancelled",
        label="Cancelled",
        type=FieldType.BOOLEAN,
        aliases=("IsCancelled", "रद्द"),
    ),
)

VOLUNTEER_UPLOAD_SCHEMA = UploadSchema(fields=VOLUNTEER_FIELDS, unique_key="sai_connect_id")


def get_volunteer_upload_schema(*, age_bounds: Tuple[int, int] | None = None) -> UploadSchema:
    """Return the volunteer schema, optionally with overridden age bounds."""

    if age_bounds is None:
        return VOLUNTEER_UPLOAD_SCHEMA
    return VOLUNTEER_UPLOAD_SCHEMA.with_bounds("age", age_bounds)


def describe_headers(schema: UploadSchema, keys: Iterable[str]) -> Tuple[str, ...]:
    """Map canonical keys to their display labels for user-facing messages."""

    return tuple(schema.get(key).label for key in keys)
