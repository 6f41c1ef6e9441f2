from __future__ import annotations

from slowapi import Limiter
from starlette.requests import Request

LOOPBACK_SOURCE = "127.0.0.1"


def client_source_key(request: Request) -> str:
    """Identify the caller by the first X-Forwarded-For hop.

    The app runs behind a proxy, so ``request.client`` is the proxy itself.
    Requests without the header share the loopback bucket.
    """
    forwarded = request.headers.get("x-forwarded-for") or ""
    first_hop = forwarded.split(",")[0].strip()
    return first_hop or LOOPBACK_SOURCE


limiter = Limiter(key_func=client_source_key)
