"""Turn a validated contact submission into an outbound email."""

from __future__ import annotations

import re

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from pmdev.config import Settings
from pmdev.constants import DEFAULT_SUBJECT, SUBJECT_MAX_LENGTH, TEMPLATES_DIR
from pmdev.schemas.contact import ContactPayload
from pmdev.services.mailer import OutboundEmail

_LINE_BREAKS = re.compile(r"[\r\n]")

_env = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(enabled_extensions=("html",)),
    undefined=StrictUndefined,
    keep_trailing_newline=True,
)


def sanitize_subject(subject: str | None) -> str | None:
    """Strip header-injection vectors: each CR/LF becomes a space, max 120."""
    if subject is None:
        return None
    return _LINE_BREAKS.sub(" ", subject)[:SUBJECT_MAX_LENGTH]


def build_subject(subject: str | None, brand: str) -> str:
    clean = sanitize_subject(subject)
    if not clean:
        return DEFAULT_SUBJECT
    return f"[{brand}] {clean}"


def _context(payload: ContactPayload) -> dict:
    return {
        "name": payload.name,
        "email": payload.email,
        "subject": payload.subject or "-",
        "message_lines": payload.message.splitlines() or [""],
        "message": payload.message,
    }


def render_text(payload: ContactPayload) -> str:
    return _env.get_template("emails/contact.txt").render(_context(payload))


def render_html(payload: ContactPayload) -> str:
    return _env.get_template("emails/contact.html").render(_context(payload))


def compose_contact_email(payload: ContactPayload, settings: Settings) -> OutboundEmail:
    return OutboundEmail(
        from_addr=settings.mail_from or "",
        to_addr=settings.mail_to or "",
        reply_to=payload.email,
        subject=build_subject(payload.subject, settings.brand_name),
        html=render_html(payload),
        text=render_text(payload),
    )
