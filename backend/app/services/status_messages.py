"""
Banner sentences for the page a form submission redirects back to.

The redirect carries only ``status`` and ``reason``; the page asks
GET /api/forms/status for the sentence to show. Internal details never
reach the browser, only these fixed strings.
"""

from typing import Optional

SUCCESS_MESSAGES = {
    "quote": "Thank you! Your request has been sent. Check your inbox for a confirmation e-mail.",
    "assessment": "Your assessment is booked. Our team will call you to confirm the appointment.",
    "callback": "Thanks! We will get back to you shortly.",
}
DEFAULT_SUCCESS_MESSAGE = "Thank you! Your message has been sent."

ERROR_MESSAGES = {
    "validation": "Please fill in the required fields with valid details.",
    "service": "Please choose the type of incident.",
    "phone": "Please enter a valid phone number.",
    "date": "Please choose a valid date that is today or later.",
    "time": "Please choose one of the available time slots.",
    "location": "Please choose the metro area of the property.",
    "severity": "Please choose the estimated damage level.",
    "files": "Please attach no more than 5 photos.",
    "total": "Your photos are too large in total. Please keep uploads under 15MB.",
    "size": "Each photo must be 5MB or smaller.",
    "type": "Only PNG, JPG or SVG images can be uploaded.",
    "spam": "Your submission could not be processed.",
    "rate": "Too many submissions. Please wait a minute and try again.",
    "busy": "We are receiving a lot of requests right now. Please try again shortly.",
    "config": "This service is temporarily unavailable. Please call us on 0860 800 800.",
    "send": "We could not send your message. Please try again or call us on 0860 800 800.",
}
DEFAULT_ERROR_MESSAGE = "Something went wrong. Please try again or call us on 0860 800 800."


def describe_status(
    status: Optional[str],
    reason: Optional[str] = None,
    form: Optional[str] = None,
) -> Optional[str]:
    """
    Return the banner sentence for ``(status, reason)``, or None if there is
    nothing to show (no status in the URL or an unknown status).
    """
    if status == "success":
        return SUCCESS_MESSAGES.get(form or "", DEFAULT_SUCCESS_MESSAGE)
    if status == "error":
        return ERROR_MESSAGES.get(reason or "", DEFAULT_ERROR_MESSAGE)
    return None
