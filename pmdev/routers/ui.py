from __future__ import annotations

import logging
from collections.abc import Mapping

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response
from pydantic import BaseModel

from pmdev.config import settings
from pmdev.constants import SECTION_IDS
from pmdev.content import load_site_content
from pmdev.observability.metrics import NOTICE_DISMISSALS
from pmdev.security import limiter
from pmdev.services.notice import (
    CookieStore,
    DismissReason,
    NoticeController,
    NoticeOptions,
    prefers_reduced_motion,
)
from pmdev.staticfiles import templates

logger = logging.getLogger(__name__)

router = APIRouter()


class DismissRequest(BaseModel):
    reason: DismissReason = DismissReason.PRIMARY


def _notice_store(request: Request, options: NoticeOptions) -> CookieStore:
    return CookieStore(
        request.cookies,
        durable=options.storage == "local",
        max_age=options.cookie_max_age,
        secure=settings.is_production,
    )


def mount_notice(
    request: Request, query: Mapping[str, str] | None = None
) -> tuple[NoticeController, CookieStore]:
    """Build a notice controller over the request cookies and mount it."""
    options = NoticeOptions.from_settings(settings)
    store = _notice_store(request, options)
    controller = NoticeController(
        options,
        store,
        on_close=lambda reason: NOTICE_DISMISSALS.labels(reason.value).inc(),
    )
    if settings.notice_enabled:
        controller.mount(query)
    return controller, store


def _notice_context(request: Request, controller: NoticeController) -> dict:
    reduced = prefers_reduced_motion(request.headers)
    durations = controller.transition_durations(reduced)
    return {
        "visible": controller.visible,
        "autofocus": controller.take_focus(),
        "duration_ms": controller.options.duration_ms,
        "animate": controller.motion_enabled(reduced),
        "backdrop_seconds": durations["backdrop"],
        "panel_seconds": durations["panel"],
    }


@router.get("/", response_class=HTMLResponse)
@limiter.limit("60/minute")
def home(request: Request) -> Response:
    content = load_site_content()
    controller, store = mount_notice(request, request.query_params)

    accept_header = request.headers.get("accept", "")
    if "text/html" in accept_header.lower():
        response: Response = templates.TemplateResponse(
            request,
            "home.html",
            {
                "site": content,
                "sections": SECTION_IDS,
                "notice": _notice_context(request, controller),
            },
        )
    else:
        response = JSONResponse(
            {
                "brand": content.brand,
                "sections": list(SECTION_IDS),
                "contact_endpoint": "/api/contact",
                "notice": {"visible": controller.visible},
            }
        )
    # The reset flag clears the seen-record; persist that on the way out
    store.apply(response)
    return response


@router.post("/api/notice/dismiss", tags=["notice"])
@limiter.limit("30/minute")
def dismiss_notice(
    request: Request, payload: DismissRequest | None = None
) -> Response:
    """Record that the visitor dismissed the demo notice."""
    controller, store = mount_notice(request)
    reason = payload.reason if payload else DismissReason.PRIMARY
    dismissed = controller.dismiss(reason)
    if dismissed:
        logger.info("Demo notice dismissed via %s", reason.value)
    response = JSONResponse(
        {"ok": True, "visible": controller.visible, "dismissed": dismissed}
    )
    store.apply(response)
    return response
