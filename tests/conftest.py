"""Test fixtures for the app, the contact limiter and the mailer."""

from __future__ import annotations

import os

# Delivery settings must exist *before* importing pmdev so the settings
# singleton sees a fully configured contact relay.
os.environ.setdefault("RESEND_API_KEY", "re_test_key")
os.environ.setdefault("MAIL_FROM", "PMDev <site@pmdev.ovh>")
os.environ.setdefault("MAIL_TO", "owner@pmdev.ovh")
os.environ.setdefault("EMAIL_BACKEND", "resend")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from pmdev.main import app  # noqa: E402
from pmdev.security.rate_limit import limiter  # noqa: E402
from pmdev.services.mailer import DeliveryError, OutboundEmail, get_mailer  # noqa: E402
from pmdev.services.rate_limit import FixedWindowRateLimiter  # noqa: E402

# Page routes use slowapi; keep it out of the way of the tests
limiter.enabled = False


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingMailer:
    """Stands in for Resend; records every message it is asked to send."""

    def __init__(self) -> None:
        self.sent: list[OutboundEmail] = []
        self.fail = False

    async def send(self, message: OutboundEmail) -> str | None:
        self.sent.append(message)
        if self.fail:
            raise DeliveryError("provider exploded: secret internals")
        return f"msg_{len(self.sent)}"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def contact_limiter(clock: FakeClock):
    original = app.state.contact_limiter
    app.state.contact_limiter = FixedWindowRateLimiter(
        limit=3, window_seconds=60.0, sweep_seconds=None, clock=clock
    )
    yield app.state.contact_limiter
    app.state.contact_limiter = original


@pytest.fixture
def mailer():
    recording = RecordingMailer()
    app.dependency_overrides[get_mailer] = lambda: recording
    yield recording
    app.dependency_overrides.pop(get_mailer, None)


@pytest.fixture
def client(contact_limiter, mailer):
    with TestClient(app) as test_client:
        yield test_client
