"""Contact form relay: throttle, guard, parse, validate, deliver."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from pmdev.config import Settings
from pmdev.constants import (
    ERROR_MALFORMED_JSON,
    ERROR_SEND_FAILED,
    ERROR_TOO_MANY_REQUESTS,
    ERROR_VALIDATION_FAILED,
)
from pmdev.observability.metrics import CONTACT_DELIVERY_LATENCY, CONTACT_SUBMISSIONS
from pmdev.schemas.contact import (
    ContactFieldErrors,
    ContactValidationError,
    validate_contact,
)
from pmdev.services.email_render import compose_contact_email
from pmdev.services.mailer import Mailer
from pmdev.services.rate_limit import FixedWindowRateLimiter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContactOutcome:
    """HTTP status plus JSON body for one submission."""

    status_code: int
    body: dict[str, Any] = field(default_factory=dict)
    label: str = "sent"

    @classmethod
    def ok(cls) -> ContactOutcome:
        return cls(200, {"ok": True}, "sent")

    @classmethod
    def malformed(cls) -> ContactOutcome:
        return cls(400, {"ok": False, "error": ERROR_MALFORMED_JSON}, "malformed")

    @classmethod
    def invalid(cls, errors: ContactFieldErrors) -> ContactOutcome:
        body = {
            "ok": False,
            "error": ERROR_VALIDATION_FAILED,
            "errors": errors.as_response(),
        }
        return cls(422, body, "invalid")

    @classmethod
    def throttled(cls) -> ContactOutcome:
        return cls(429, {"ok": False, "error": ERROR_TOO_MANY_REQUESTS}, "throttled")

    @classmethod
    def misconfigured(cls, required: list[str]) -> ContactOutcome:
        error = f"Server misconfigured: missing {' / '.join(required)}."
        return cls(500, {"ok": False, "error": error}, "misconfigured")

    @classmethod
    def send_failed(cls) -> ContactOutcome:
        return cls(500, {"ok": False, "error": ERROR_SEND_FAILED}, "failed")


def parse_json_object(body: bytes) -> dict[str, Any] | None:
    """Decode a JSON request body; None unless it is a JSON object."""
    try:
        data = json.loads(body)
    except (ValueError, RecursionError):
        # RecursionError: nesting deeper than the decoder can follow
        return None
    return data if isinstance(data, dict) else None


class ContactService:
    """Relay contact submissions to the site owner's inbox.

    Each step may short-circuit the rest: quota check, configuration
    guard, JSON parse, validation, then a single delivery attempt.
    """

    def __init__(
        self,
        limiter: FixedWindowRateLimiter,
        mailer: Mailer,
        settings: Settings,
    ) -> None:
        self.limiter = limiter
        self.mailer = mailer
        self.settings = settings

    async def submit(self, source: str, body: bytes) -> ContactOutcome:
        outcome = await self._submit(source, body)
        CONTACT_SUBMISSIONS.labels(outcome.label).inc()
        return outcome

    async def _submit(self, source: str, body: bytes) -> ContactOutcome:
        if not self.limiter.hit(source):
            logger.info("Contact form throttled for source=%s", source)
            return ContactOutcome.throttled()

        missing = self.settings.missing_mail_settings()
        if missing:
            logger.error("Contact form disabled, missing settings: %s", missing)
            return ContactOutcome.misconfigured(
                self.settings.required_mail_settings()
            )

        data = parse_json_object(body)
        if data is None:
            return ContactOutcome.malformed()

        try:
            payload = validate_contact(data)
        except ContactValidationError as exc:
            return ContactOutcome.invalid(exc.errors)

        message = compose_contact_email(payload, self.settings)
        backend = self.settings.email_backend
        try:
            with CONTACT_DELIVERY_LATENCY.labels(backend).time():
                await self.mailer.send(message)
        except Exception:
            logger.exception("Contact form sending failed")
            return ContactOutcome.send_failed()
        return ContactOutcome.ok()
