"""Static values shared across routers and services."""

from __future__ import annotations

from pathlib import Path

PACKAGE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = PACKAGE_DIR / "templates"
STATIC_DIR = PACKAGE_DIR / "static"

# Landing page anchors, in scroll order
SECTION_IDS: tuple[str, ...] = (
    "home",
    "services",
    "projects",
    "process",
    "about",
    "contact",
)

# Outbound contact email
DEFAULT_SUBJECT = "New inquiry"
SUBJECT_MAX_LENGTH = 120

# Contact endpoint error bodies
ERROR_TOO_MANY_REQUESTS = "Too many requests"
ERROR_MALFORMED_JSON = "Malformed JSON"
ERROR_VALIDATION_FAILED = "Validation failed"
ERROR_SEND_FAILED = "Send failed"
