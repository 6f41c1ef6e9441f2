from __future__ import annotations

from collections.abc import Callable, Iterable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

DEFAULT_CSP: tuple[str, ...] = (
    "default-src 'self'",
    "base-uri 'none'",
    "frame-ancestors 'none'",
    "object-src 'none'",
    "img-src 'self' data:",
    "font-src 'self'",
    "connect-src 'self'",
    "script-src 'self'",
    "style-src 'self'",
    "form-action 'self'",
    "upgrade-insecure-requests",
)


def _is_secure_request(request: Request) -> bool:
    xf_proto = request.headers.get("x-forwarded-proto")
    if xf_proto:
        return "https" in xf_proto
    return request.url.scheme == "https"


def build_csp(directives: Iterable[str]) -> str:
    return "; ".join(directive.strip() for directive in directives if directive.strip())


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Hardened response headers for the landing page and API.
    - CSP without inline allowances; scripts and styles are static files
    - HSTS only over HTTPS and never for local hosts
    - Accepts-CH so browsers send the reduced-motion client hint
    """

    def __init__(
        self,
        app,
        *,
        csp_directives: Iterable[str] | None = None,
        hsts: str = "max-age=63072000; includeSubDomains; preload",
        referrer_policy: str = "strict-origin-when-cross-origin",
        permissions_policy: str = "geolocation=(), microphone=(), camera=()",
        frame_options: str = "DENY",
        skip_hsts_hosts: set[str] | None = None,
        accept_client_hints: str | None = "Sec-CH-Prefers-Reduced-Motion",
    ) -> None:
        super().__init__(app)
        self.csp = build_csp(csp_directives or DEFAULT_CSP)
        self.hsts = hsts
        self.referrer_policy = referrer_policy
        self.permissions_policy = permissions_policy
        self.frame_options = frame_options
        self.skip_hsts_hosts = skip_hsts_hosts or {"localhost", "127.0.0.1"}
        self.accept_client_hints = accept_client_hints

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        headers = response.headers
        headers.setdefault("Content-Security-Policy", self.csp)
        if _is_secure_request(request):
            if request.url.hostname not in self.skip_hsts_hosts:
                headers.setdefault("Strict-Transport-Security", self.hsts)
        headers.setdefault("Referrer-Policy", self.referrer_policy)
        headers.setdefault("X-Content-Type-Options", "nosniff")
        headers.setdefault("X-Frame-Options", self.frame_options)
        headers.setdefault("Cross-Origin-Opener-Policy", "same-origin")
        headers.setdefault("Cross-Origin-Resource-Policy", "same-origin")
        if self.permissions_policy:
            headers.setdefault("Permissions-Policy", self.permissions_policy)
        if self.accept_client_hints:
            headers.setdefault("Accept-CH", self.accept_client_hints)
        return response
