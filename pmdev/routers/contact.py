from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from pmdev.config import settings
from pmdev.security import client_source_key
from pmdev.services.contact import ContactService
from pmdev.services.mailer import Mailer, get_mailer
from pmdev.services.rate_limit import FixedWindowRateLimiter

router = APIRouter(prefix="/api", tags=["contact"])


def get_contact_limiter(request: Request) -> FixedWindowRateLimiter:
    """The limiter instance owned by the running application."""
    return request.app.state.contact_limiter


def get_contact_service(
    limiter: FixedWindowRateLimiter = Depends(get_contact_limiter),
    mailer: Mailer = Depends(get_mailer),
) -> ContactService:
    return ContactService(limiter=limiter, mailer=mailer, settings=settings)


@router.post(
    "/contact",
    summary="Relay a contact form submission by email",
    responses={
        400: {"description": "Malformed JSON"},
        422: {"description": "Validation failed, per-field errors"},
        429: {"description": "Too many requests"},
        500: {"description": "Server misconfigured or send failed"},
    },
)
async def submit_contact(
    request: Request,
    service: ContactService = Depends(get_contact_service),
) -> JSONResponse:
    # The raw body is parsed by the service so malformed JSON gets our 400
    # shape rather than FastAPI's request-validation 422.
    body = await request.body()
    outcome = await service.submit(client_source_key(request), body)
    return JSONResponse(outcome.body, status_code=outcome.status_code)
