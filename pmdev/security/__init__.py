"""Security façade for rate limiting and headers middleware."""

from pmdev.middleware.security import SecurityHeadersMiddleware  # noqa: F401

from .rate_limit import LOOPBACK_SOURCE, client_source_key, limiter  # noqa: F401

__all__ = [
    "LOOPBACK_SOURCE",
    "client_source_key",
    "limiter",
    "SecurityHeadersMiddleware",
]
