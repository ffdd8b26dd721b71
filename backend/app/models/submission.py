"""
Pydantic models for form submissions and outbound notification e-mails.

Models:
  SubmittedFile     - one uploaded file, already read into memory
  Submission        - one posted form (quote, assessment or callback)
  EmailAttachment   - attachment entry in a Resend send request
  EmailPayload      - Resend send request body
  SubmissionResult  - terminal (status, reason) of a submission
  FormStatusResponse - GET /api/forms/status response
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

FormKind = Literal["quote", "assessment", "callback"]


class SubmittedFile(BaseModel):
    """A single uploaded file, held as raw bytes for the life of the request."""

    filename: str
    content: bytes
    content_type: str = ""

    @property
    def size(self) -> int:
        return len(self.content)


class Submission(BaseModel):
    """
    One user-originated form post.

    ``fields`` holds trimmed string values; absent fields are normalised to
    "" by the router before the model is built. Nothing here is persisted.
    """

    kind: FormKind
    fields: dict[str, str] = {}
    files: list[SubmittedFile] = []
    client_ip: str = "unknown"


class EmailAttachment(BaseModel):
    filename: str
    content: str            # base64-encoded file bytes
    content_type: Optional[str] = None


class EmailPayload(BaseModel):
    """
    Body of a Resend ``POST /emails`` request.

    ``from`` is a Python keyword so the field is stored as ``sender`` and
    serialised under its alias. Optional keys are dropped from the JSON body
    rather than sent as null.
    """

    model_config = {"populate_by_name": True}

    sender: str = Field(alias="from")
    to: list[str]
    cc: Optional[list[str]] = None
    reply_to: Optional[str] = None
    subject: str
    html: str
    text: str
    attachments: Optional[list[EmailAttachment]] = None

    def to_request_body(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class SubmissionResult(BaseModel):
    status: Literal["success", "error"]
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"


class FormStatusResponse(BaseModel):
    """Banner text for the page that a submission redirected back to."""

    status: Optional[str] = None
    reason: Optional[str] = None
    message: Optional[str] = None
