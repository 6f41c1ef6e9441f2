from __future__ import annotations

from typing import Any

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_core import PydanticCustomError

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 80
MAX_EMAIL_LENGTH = 120
MAX_SUBJECT_LENGTH = 120
MIN_MESSAGE_LENGTH = 10
MAX_MESSAGE_LENGTH = 5000

CONTACT_FIELDS = ("name", "email", "subject", "message")

# field -> (min, max, too-short message, too-long message)
_FIELD_LIMITS: dict[str, tuple[int, int, str, str]] = {
    "name": (
        MIN_NAME_LENGTH,
        MAX_NAME_LENGTH,
        "Please enter at least 2 characters",
        "Name can be at most 80 characters",
    ),
    "message": (
        MIN_MESSAGE_LENGTH,
        MAX_MESSAGE_LENGTH,
        "Message must be at least 10 characters",
        "Message can be at most 5000 characters",
    ),
}

EMAIL_INVALID_MESSAGE = "Please enter a valid email address"
EMAIL_TOO_LONG_MESSAGE = "Email can be at most 120 characters"
SUBJECT_TOO_LONG_MESSAGE = "Subject can be at most 120 characters"

# pydantic's own messages for structural problems, reworded for the form
_ERROR_TYPE_MESSAGES: dict[str, str] = {
    "missing": "Required",
    "string_type": "Expected a string",
}


def _validate_text_field(value: str, field_name: str) -> str:
    value = value.strip()
    minimum, maximum, too_short, too_long = _FIELD_LIMITS[field_name]
    if len(value) < minimum:
        raise PydanticCustomError("string_too_short", too_short)
    if len(value) > maximum:
        raise PydanticCustomError("string_too_long", too_long)
    return value


class ContactPayload(BaseModel):
    """A contact form submission after trimming and validation."""

    model_config = ConfigDict(extra="ignore")

    name: str
    email: str
    subject: str | None = None
    message: str

    @field_validator("name", "message")
    @classmethod
    def validate_text_fields(cls, value: str, info: Any) -> str:
        return _validate_text_field(value, info.field_name)

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, value: str) -> str:
        value = value.strip()
        try:
            # Syntax only; no DNS lookup. The reserved .test TLD passes too.
            validate_email(value, check_deliverability=False, test_environment=True)
        except EmailNotValidError:
            raise PydanticCustomError("email", EMAIL_INVALID_MESSAGE) from None
        if len(value) > MAX_EMAIL_LENGTH:
            raise PydanticCustomError("string_too_long", EMAIL_TOO_LONG_MESSAGE)
        return value

    @field_validator("subject")
    @classmethod
    def normalize_subject(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value:
            return None
        if len(value) > MAX_SUBJECT_LENGTH:
            raise PydanticCustomError("string_too_long", SUBJECT_TOO_LONG_MESSAGE)
        return value


class ContactFieldErrors(BaseModel):
    """First error message per form field; ``_form`` holds the rest."""

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    email: str | None = None
    subject: str | None = None
    message: str | None = None
    form: str | None = Field(default=None, alias="_form")

    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> ContactFieldErrors:
        collected: dict[str, str] = {}
        for error in exc.errors():
            loc = error.get("loc") or ()
            field = loc[0] if loc and loc[0] in CONTACT_FIELDS else "form"
            if field not in collected:
                collected[field] = _ERROR_TYPE_MESSAGES.get(
                    error["type"], error["msg"]
                )
        return cls(**collected)

    def as_response(self) -> dict[str, str | None]:
        return self.model_dump(by_alias=True)


class ContactValidationError(Exception):
    """Raised when a submission fails validation; carries per-field errors."""

    def __init__(self, errors: ContactFieldErrors) -> None:
        super().__init__("Validation failed")
        self.errors = errors


def validate_contact(data: dict[str, Any]) -> ContactPayload:
    try:
        return ContactPayload.model_validate(data)
    except ValidationError as exc:
        raise ContactValidationError(
            ContactFieldErrors.from_validation_error(exc)
        ) from exc
