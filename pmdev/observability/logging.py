from __future__ import annotations

import logging
from collections.abc import Iterable
from logging.config import dictConfig

from asgi_correlation_id.context import correlation_id
from pythonjsonlogger.json import JsonFormatter

REDACTED = "***"

_FIELDS = "%(asctime)s %(levelname)s %(name)s %(message)s %(correlation_id)s"


class CorrelationIdFilter(logging.Filter):
    """Attach the current request correlation ID to each log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id.get() or "unknown"
        return True


class SecretRedactionFilter(logging.Filter):
    """Mask delivery credentials if they ever end up in a log line.

    Provider errors can echo request details back; the rendered message and
    any formatted traceback are scrubbed before a handler sees them.
    """

    def __init__(self, secrets: Iterable[str | None] = ()) -> None:
        super().__init__()
        self.secrets = [s for s in secrets if s and len(s) >= 4]

    def _scrub(self, text: str) -> str:
        for secret in self.secrets:
            text = text.replace(secret, REDACTED)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.secrets:
            return True
        message = record.getMessage()
        scrubbed = self._scrub(message)
        if scrubbed != message:
            record.msg = scrubbed
            record.args = None
        if record.exc_info:
            text = record.exc_text or logging.Formatter().formatException(
                record.exc_info
            )
            # Formatters fall back to exc_text once exc_info is cleared
            record.exc_text = self._scrub(text)
            record.exc_info = None
        return True


def configure_logging(
    level: str = "INFO",
    *,
    fmt: str = "json",
    secrets: Iterable[str | None] = (),
) -> None:
    """Route the app, uvicorn and httpx loggers through one handler.

    ``fmt`` is ``json`` for log shipping or ``console`` for local runs.
    """
    routed = {"handlers": ["default"], "level": level, "propagate": False}
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "with_correlation": {"()": CorrelationIdFilter},
                "redact": {"()": SecretRedactionFilter, "secrets": list(secrets)},
            },
            "formatters": {
                "json": {"()": JsonFormatter, "fmt": _FIELDS},
                "console": {
                    "format": (
                        "%(asctime)s %(levelname)-8s [%(correlation_id)s] "
                        "%(name)s: %(message)s"
                    )
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "console" if fmt == "console" else "json",
                    "filters": ["with_correlation", "redact"],
                }
            },
            "root": {"handlers": ["default"], "level": level},
            "loggers": {
                "uvicorn.error": dict(routed),
                "uvicorn.access": dict(routed),
                # httpx logs every request line at INFO, including the Resend URL
                "httpx": {**routed, "level": "WARNING"},
            },
        }
    )
