"""
Field validation for the three site forms.

Every validator is a pure function returning either ``Accepted`` (with the
normalised fields and, for quotes, the accepted files) or ``Rejected`` with
a single reason code. Checks run in a fixed order and the first failure
wins, so the same input always yields the same reason.

Reason codes
------------
spam        honeypot field filled in
validation  required field missing or e-mail malformed
phone       phone number malformed
service     assessment service type not offered
date        assessment date malformed, impossible or in the past
time        assessment time slot not offered
location    assessment metro area not served
severity    assessment damage level unknown
files       more than MAX_FILES attachments
total       attachments larger than MAX_TOTAL_UPLOAD_BYTES combined
size        an attachment larger than MAX_UPLOAD_BYTES
type        an attachment that is not PNG, JPEG or SVG
"""

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Mapping, Optional, Union

from app.models.submission import SubmittedFile

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

HONEYPOT_FIELD = "website"

QUOTE_FIELDS = ("fullName", "phone", "email", "serviceType", "address", "description", HONEYPOT_FIELD)
ASSESSMENT_FIELDS = (
    "serviceType", "fullName", "phone", "preferredDate", "preferredTime",
    "location", "severity", "notes", HONEYPOT_FIELD,
)
CALLBACK_FIELDS = ("callbackEmail", HONEYPOT_FIELD)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^[+()\d\s-]{7,20}$", re.ASCII)
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$", re.ASCII)

MAX_FILES = 5
MAX_UPLOAD_BYTES = 5 * 1024 * 1024
MAX_TOTAL_UPLOAD_BYTES = 15 * 1024 * 1024
ALLOWED_UPLOAD_TYPES = frozenset({"image/png", "image/jpeg", "image/svg+xml"})
ALLOWED_UPLOAD_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".svg"})

OVERSIZE_FILE_REASON = "File exceeds 5MB limit."
UNSUPPORTED_FILE_REASON = "Unsupported file type."

# value -> label shown in notifications
ASSESSMENT_SERVICES = {
    "flood": "Flood Damage",
    "fire": "Fire Recovery",
}
ASSESSMENT_TIME_SLOTS = ("09:00", "11:30", "14:00")
METRO_AREAS = {
    "johannesburg": "Johannesburg",
    "cape-town": "Cape Town",
    "durban": "Durban",
    "pretoria": "Pretoria",
    "port-elizabeth": "Port Elizabeth",
}
SEVERITY_LEVELS = {
    "minor": "Minor",
    "moderate": "Moderate",
    "critical": "Critical",
}


# ---------------------------------------------------------------------------
# Outcome types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Accepted:
    fields: dict[str, str]
    files: list[SubmittedFile] = field(default_factory=list)


@dataclass(frozen=True)
class Rejected:
    reason: str


ValidationOutcome = Union[Accepted, Rejected]


@dataclass
class RejectedFile:
    file: SubmittedFile
    reason: str

    @property
    def name(self) -> str:
        return self.file.filename or "Attachment"


@dataclass
class FileScan:
    """Partition of the non-empty uploads into accepted and rejected files."""

    accepted: list[SubmittedFile] = field(default_factory=list)
    rejected: list[RejectedFile] = field(default_factory=list)

    @property
    def accepted_bytes(self) -> int:
        return sum(f.size for f in self.accepted)

    @property
    def rejected_bytes(self) -> int:
        return sum(r.file.size for r in self.rejected)

    def rejection_reason(self) -> Optional[str]:
        """Aggregate reason for the whole set: type problems outrank size."""
        reasons = {r.reason for r in self.rejected}
        if UNSUPPORTED_FILE_REASON in reasons:
            return "type"
        if OVERSIZE_FILE_REASON in reasons:
            return "size"
        return None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def normalize_fields(raw: Mapping, names: Iterable[str]) -> dict[str, str]:
    """
    Pick ``names`` out of a posted form, trimming strings.

    Absent fields and non-string values (e.g. a file posted under a text
    field's name) normalise to "".
    """
    normalized: dict[str, str] = {}
    for name in names:
        value = raw.get(name)
        normalized[name] = value.strip() if isinstance(value, str) else ""
    return normalized


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value))


def is_valid_phone(value: str) -> bool:
    return bool(PHONE_RE.match(value))


def parse_booking_date(value: str) -> Optional[date]:
    """Parse a strict YYYY-MM-DD string; None for anything else (incl. Feb 30)."""
    if not ISO_DATE_RE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _file_type_allowed(upload: SubmittedFile) -> bool:
    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    if content_type in ALLOWED_UPLOAD_TYPES:
        return True
    filename = (upload.filename or "").lower()
    return any(filename.endswith(ext) for ext in ALLOWED_UPLOAD_EXTENSIONS)


def non_empty_files(files: Iterable[SubmittedFile]) -> list[SubmittedFile]:
    return [f for f in files if f is not None and f.size > 0]


def scan_files(files: Iterable[SubmittedFile]) -> FileScan:
    """
    Sort every non-empty upload into accepted or rejected.

    The whole set is scanned; a bad file does not stop the scan. An oversize
    file is rejected for size and its type is not looked at.
    """
    scan = FileScan()
    for upload in non_empty_files(files):
        if upload.size > MAX_UPLOAD_BYTES:
            scan.rejected.append(RejectedFile(upload, OVERSIZE_FILE_REASON))
        elif not _file_type_allowed(upload):
            scan.rejected.append(RejectedFile(upload, UNSUPPORTED_FILE_REASON))
        else:
            scan.accepted.append(upload)
    return scan


def check_honeypot(fields: Mapping[str, str]) -> Optional[Rejected]:
    if fields.get(HONEYPOT_FIELD):
        return Rejected("spam")
    return None


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------

def validate_quote(raw: Mapping, files: Iterable[SubmittedFile] = ()) -> ValidationOutcome:
    fields = normalize_fields(raw, QUOTE_FIELDS)

    spam = check_honeypot(fields)
    if spam:
        return spam

    if not is_valid_email(fields["email"]):
        return Rejected("validation")

    if fields["phone"] and not is_valid_phone(fields["phone"]):
        return Rejected("phone")

    uploads = non_empty_files(files)
    if len(uploads) > MAX_FILES:
        return Rejected("files")

    if sum(f.size for f in uploads) > MAX_TOTAL_UPLOAD_BYTES:
        return Rejected("total")

    scan = scan_files(uploads)
    reason = scan.rejection_reason()
    if reason:
        return Rejected(reason)

    return Accepted(fields=fields, files=scan.accepted)


def validate_assessment(raw: Mapping, today: Optional[date] = None) -> ValidationOutcome:
    fields = normalize_fields(raw, ASSESSMENT_FIELDS)
    today = today or date.today()

    spam = check_honeypot(fields)
    if spam:
        return spam

    if fields["serviceType"] not in ASSESSMENT_SERVICES:
        return Rejected("service")

    if not fields["fullName"]:
        return Rejected("validation")

    if not is_valid_phone(fields["phone"]):
        return Rejected("phone")

    booking_date = parse_booking_date(fields["preferredDate"])
    if booking_date is None or booking_date < today:
        return Rejected("date")

    if fields["preferredTime"] not in ASSESSMENT_TIME_SLOTS:
        return Rejected("time")

    if fields["location"] not in METRO_AREAS:
        return Rejected("location")

    if fields["severity"] not in SEVERITY_LEVELS:
        return Rejected("severity")

    return Accepted(fields=fields)


def validate_callback(raw: Mapping) -> ValidationOutcome:
    fields = normalize_fields(raw, CALLBACK_FIELDS)

    spam = check_honeypot(fields)
    if spam:
        return spam

    if not is_valid_email(fields["callbackEmail"]):
        return Rejected("validation")

    return Accepted(fields=fields)
