"""Logging, metrics and tracing wiring."""

from __future__ import annotations

from pmdev.observability.logging import configure_logging
from pmdev.observability.metrics import (
    CONTACT_DELIVERY_LATENCY,
    CONTACT_SUBMISSIONS,
    NOTICE_DISMISSALS,
    MetricsMiddleware,
    metrics_response,
)
from pmdev.observability.tracing import configure_tracing

__all__ = [
    "CONTACT_DELIVERY_LATENCY",
    "CONTACT_SUBMISSIONS",
    "NOTICE_DISMISSALS",
    "MetricsMiddleware",
    "configure_logging",
    "configure_tracing",
    "metrics_response",
]
