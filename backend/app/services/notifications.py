"""
Notification e-mail builders.

Turns validated form fields into ``EmailPayload`` objects: the operations
notification for each form, plus the customer confirmation for quotes.
Every user-supplied value is HTML-escaped before it reaches an HTML body.
"""

import base64
import html
from typing import Sequence

from app.config import Settings
from app.models.submission import EmailAttachment, EmailPayload, SubmittedFile
from app.services.validation import ASSESSMENT_SERVICES, METRO_AREAS, SEVERITY_LEVELS

COMPANY_NAME = "Dry Force"
HOTLINE = "0860 800 800"
NOT_PROVIDED = "Not provided"

QUOTE_SUBJECT = f"New Quote Request - {COMPANY_NAME}"
CONFIRMATION_SUBJECT = f"We received your request - {COMPANY_NAME}"
ASSESSMENT_SUBJECT = f"New Assessment Booking - {COMPANY_NAME}"
CALLBACK_SUBJECT = f"Callback Request - {COMPANY_NAME}"

Details = list[tuple[str, str]]


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def escape(value: str) -> str:
    return html.escape(value, quote=True)


def multiline_html(value: str) -> str:
    """Escape free text and keep its line breaks."""
    if not value:
        return NOT_PROVIDED
    return escape(value).replace("\r\n", "\n").replace("\n", "<br />")


def _kb(size: int) -> int:
    return round(size / 1024)


def _open_details_table(details: Details) -> str:
    rows = "".join(
        f"<tr><td><strong>{escape(label)}</strong></td><td>{escape(value)}</td></tr>"
        for label, value in details
    )
    return f'<table cellspacing="0" cellpadding="6" style="border-collapse:collapse;">{rows}'


def _details_text(details: Details) -> list[str]:
    return [f"{label}: {value}" for label, value in details]


def _file_label(upload: SubmittedFile) -> str:
    return upload.filename or "Attachment"


def to_attachments(files: Sequence[SubmittedFile]) -> list[EmailAttachment]:
    return [
        EmailAttachment(
            filename=upload.filename or "attachment",
            content=base64.b64encode(upload.content).decode("ascii"),
            content_type=upload.content_type or None,
        )
        for upload in files
    ]


def _internal_envelope(settings: Settings) -> dict:
    return {
        "sender": settings.from_email,
        "to": [settings.to_email],
        "cc": list(settings.cc_emails) or None,
    }


# ---------------------------------------------------------------------------
# Quote request (contact page)
# ---------------------------------------------------------------------------

def quote_details(fields: dict[str, str]) -> Details:
    return [
        ("Name", fields.get("fullName") or NOT_PROVIDED),
        ("Email", fields.get("email", "")),
        ("Phone", fields.get("phone") or NOT_PROVIDED),
        ("Service Type", fields.get("serviceType") or NOT_PROVIDED),
        ("Property Address", fields.get("address") or NOT_PROVIDED),
    ]


def build_quote_notification(
    fields: dict[str, str],
    files: Sequence[SubmittedFile],
    settings: Settings,
) -> EmailPayload:
    details = quote_details(fields)
    description = fields.get("description", "")

    if files:
        files_html = "<ul>" + "".join(
            f"<li>{escape(_file_label(f))} ({_kb(f.size)} KB)</li>" for f in files
        ) + "</ul>"
        files_text = ", ".join(f"{_file_label(f)} ({_kb(f.size)} KB)" for f in files)
    else:
        files_html = "<p>None</p>"
        files_text = "None"

    body_html = (
        "<h2>New Quote Request</h2>"
        f"<p>A new request was submitted from the {COMPANY_NAME} website.</p>"
        f"{_open_details_table(details)}"
        f"<tr><td><strong>Damage Description</strong></td><td>{multiline_html(description)}</td></tr>"
        "</table>"
        "<p><strong>Attachments:</strong></p>"
        f"{files_html}"
    )
    body_text = "\n".join([
        "New Quote Request",
        "",
        *_details_text(details),
        f"Damage Description: {description or NOT_PROVIDED}",
        f"Attachments: {files_text}",
    ])

    return EmailPayload(
        **_internal_envelope(settings),
        reply_to=fields.get("email") or None,
        subject=QUOTE_SUBJECT,
        html=body_html,
        text=body_text,
        attachments=to_attachments(files) or None,
    )


def build_quote_confirmation(
    fields: dict[str, str],
    files: Sequence[SubmittedFile],
    settings: Settings,
) -> EmailPayload:
    details = quote_details(fields)
    first_name = (fields.get("fullName") or "").split(" ")[0] or "there"
    thanks = (
        f"Thank you for contacting {COMPANY_NAME}. We have received your request "
        "and our team will be in touch soon."
    )
    urgent = f"If this is urgent, please call us on {HOTLINE}."

    summary_html = "".join(
        f"<li><strong>{escape(label)}:</strong> {escape(value)}</li>" for label, value in details
    )
    files_html = ""
    files_text: list[str] = []
    if files:
        names = [_file_label(f) for f in files]
        files_html = "<p><strong>Attachments received:</strong> " + ", ".join(escape(n) for n in names) + "</p>"
        files_text = [f"Attachments received: {', '.join(names)}"]

    body_html = (
        f"<p>Hi {escape(first_name)},</p>"
        f"<p>{thanks}</p>"
        "<p><strong>Request summary:</strong></p>"
        f"<ul>{summary_html}</ul>"
        f"{files_html}"
        f"<p>{urgent}</p>"
    )
    body_text = "\n".join([
        f"Hi {first_name},",
        "",
        thanks,
        "",
        "Request summary:",
        *_details_text(details),
        *files_text,
        "",
        urgent,
    ])

    return EmailPayload(
        sender=settings.from_email,
        to=[fields["email"]],
        reply_to=settings.to_email,
        subject=CONFIRMATION_SUBJECT,
        html=body_html,
        text=body_text,
    )


# ---------------------------------------------------------------------------
# Assessment booking (emergency page)
# ---------------------------------------------------------------------------

def assessment_details(fields: dict[str, str]) -> Details:
    return [
        ("Service", ASSESSMENT_SERVICES.get(fields.get("serviceType", ""), NOT_PROVIDED)),
        ("Name", fields.get("fullName") or NOT_PROVIDED),
        ("Phone", fields.get("phone") or NOT_PROVIDED),
        ("Preferred Date", fields.get("preferredDate") or NOT_PROVIDED),
        ("Preferred Time", fields.get("preferredTime") or NOT_PROVIDED),
        ("Metro Area", METRO_AREAS.get(fields.get("location", ""), NOT_PROVIDED)),
        ("Damage Level", SEVERITY_LEVELS.get(fields.get("severity", ""), NOT_PROVIDED)),
    ]


def build_assessment_notification(fields: dict[str, str], settings: Settings) -> EmailPayload:
    details = assessment_details(fields)
    notes = fields.get("notes", "")

    body_html = (
        "<h2>New Assessment Booking</h2>"
        f"<p>An assessment was booked from the {COMPANY_NAME} emergency page.</p>"
        f"{_open_details_table(details)}"
        f"<tr><td><strong>Notes</strong></td><td>{multiline_html(notes)}</td></tr>"
        "</table>"
        "<p>Please call the customer to confirm the appointment.</p>"
    )
    body_text = "\n".join([
        "New Assessment Booking",
        "",
        *_details_text(details),
        f"Notes: {notes or NOT_PROVIDED}",
        "",
        "Please call the customer to confirm the appointment.",
    ])

    return EmailPayload(
        **_internal_envelope(settings),
        subject=ASSESSMENT_SUBJECT,
        html=body_html,
        text=body_text,
    )


# ---------------------------------------------------------------------------
# Callback request (services page)
# ---------------------------------------------------------------------------

def build_callback_notification(fields: dict[str, str], settings: Settings) -> EmailPayload:
    email = fields["callbackEmail"]

    body_html = (
        "<h2>Callback Request</h2>"
        f"<p>A visitor asked {COMPANY_NAME} to get back to them.</p>"
        f"{_open_details_table([('Email', email)])}</table>"
    )
    body_text = "\n".join([
        "Callback Request",
        "",
        f"Email: {email}",
    ])

    return EmailPayload(
        **_internal_envelope(settings),
        reply_to=email,
        subject=CALLBACK_SUBJECT,
        html=body_html,
        text=body_text,
    )
