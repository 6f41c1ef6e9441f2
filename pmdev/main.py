"""
FastAPI Application - PMDev landing page & contact relay
"""

from __future__ import annotations

import logging
import secrets
from contextlib import asynccontextmanager

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from pmdev.config import settings
from pmdev.constants import ERROR_TOO_MANY_REQUESTS, STATIC_DIR
from pmdev.content import load_site_content, site_content_path
from pmdev.middleware.security import SecurityHeadersMiddleware
from pmdev.observability import (
    MetricsMiddleware,
    configure_logging,
    configure_tracing,
    metrics_response,
)
from pmdev.routers.contact import router as contact_router
from pmdev.routers.ui import router as ui_router
from pmdev.security import limiter
from pmdev.services.rate_limit import FixedWindowRateLimiter
from pmdev.staticfiles import CachedStaticFiles

configure_logging(
    settings.log_level.upper(),
    fmt=settings.log_format,
    secrets=(settings.resend_api_key, settings.smtp_pass, settings.metrics_password),
)
logger = logging.getLogger(__name__)

IS_PROD = settings.is_production


def build_contact_limiter() -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(
        limit=settings.contact_rate_limit,
        window_seconds=settings.contact_rate_window_seconds,
        sweep_seconds=settings.contact_rate_sweep_seconds,
    )


# ==========================================
# Application Lifespan
# ==========================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application (environment=%s)", settings.environment)
    content = load_site_content()
    logger.info("Loaded site content for %s", content.brand)
    missing = settings.missing_mail_settings()
    if missing:
        # The page still works; only the contact relay answers 500
        logger.warning("Contact form misconfigured, missing: %s", ", ".join(missing))
    yield
    logger.info("Shutting down application")


# ==========================================
# Exception handlers
# ==========================================
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        {"ok": False, "error": ERROR_TOO_MANY_REQUESTS},
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        {"detail": exc.detail},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


# ==========================================
# FastAPI Application
# ==========================================
app = FastAPI(
    title=f"{settings.brand_name} landing page",
    description="Portfolio landing page with a contact relay",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None if IS_PROD else "/docs",
    redoc_url=None if IS_PROD else "/redoc",
    openapi_url=None if IS_PROD else "/openapi.json",
)
# Order: compression → rate-limit/metrics → security → correlation id
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(MetricsMiddleware)
app.add_middleware(
    SecurityHeadersMiddleware,
    referrer_policy="strict-origin-when-cross-origin",
    permissions_policy="geolocation=(), microphone=(), camera=()",
    frame_options="DENY",
)
app.add_middleware(CorrelationIdMiddleware, header_name="X-Request-ID")
app.state.limiter = limiter
app.state.contact_limiter = build_contact_limiter()
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["Accept", "Content-Type"],
    )
app.mount("/static", CachedStaticFiles(directory=str(STATIC_DIR)), name="static")
if settings.enable_tracing and settings.otlp_endpoint:
    configure_tracing(
        app,
        "pmdev-site",
        settings.otlp_endpoint,
        settings.otlp_headers,
        service_version=app.version,
        environment=settings.environment,
    )


# ==========================================
# Health & readiness
# ==========================================
@app.get("/healthz", tags=["system"], summary="Health check", response_model=dict)
async def health_check() -> dict:
    if IS_PROD:
        return {"status": "healthy"}
    return {"status": "healthy", "version": app.version}


@app.get("/readyz", tags=["system"], summary="Readiness check", response_model=dict)
async def readiness_check() -> dict:
    try:
        load_site_content()
    except Exception as exc:
        logger.exception("Site content unavailable at %s", site_content_path())
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="not ready"
        ) from exc
    ready = {"status": "ready"}
    if not IS_PROD:
        missing = settings.missing_mail_settings()
        ready["contact"] = "misconfigured" if missing else "ok"
    return ready


# ==========================================
# Metrics (optionally protected with HTTP Basic Auth)
# ==========================================
security = HTTPBasic(auto_error=False)


def verify_metrics_auth(
    credentials: HTTPBasicCredentials | None = Depends(security),
) -> None:
    """Require METRICS_USERNAME/METRICS_PASSWORD when a password is set."""
    if not settings.metrics_password:
        return
    if credentials is not None:
        correct_username = secrets.compare_digest(
            credentials.username.encode(), settings.metrics_username.encode()
        )
        correct_password = secrets.compare_digest(
            credentials.password.encode(), settings.metrics_password.encode()
        )
        if correct_username and correct_password:
            return
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid credentials",
        headers={"WWW-Authenticate": "Basic"},
    )


@app.get("/metrics", include_in_schema=False)
def metrics(_: None = Depends(verify_metrics_auth)):
    return metrics_response()


# ==========================================
# Routers
# ==========================================
app.include_router(ui_router)
app.include_router(contact_router)
