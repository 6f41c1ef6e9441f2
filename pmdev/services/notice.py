"""Dismissible demo notice: visibility state, seen-record persistence, expiry.

The controller decides once, on mount, whether the overlay is shown:

1. the suppress flag hides it without touching storage;
2. the reset flag clears any seen-record, then evaluation continues;
3. a seen-record that has not expired hides it;
4. otherwise it is shown.

Once shown, a click on either action, the Escape key or the auto-dismiss
timer hides it and writes a seen-record (``now + ttl``, or no expiry).
Hidden is terminal for the lifetime of a controller; a new controller
re-evaluates from storage.

Storage is best-effort. Any read, write or removal failure is logged at
DEBUG and treated as "no record"; nothing is ever raised to the caller.

In the web app the routes in ``pmdev.routers.ui`` only mount and dismiss.
The in-page signals (auto-dismiss timer, Escape key, deferred focus,
reduced motion) run in the browser counterpart ``static/js/notice.js``,
which posts each dismissal with its reason to ``/api/notice/dismiss``.
The ``Scheduler`` timer path, ``handle_key`` and ``unmount`` model the same
lifecycle for non-browser hosts (an asyncio loop is a valid scheduler) and
pin down the behaviour notice.js has to follow.
"""

from __future__ import annotations

import base64
import json
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Literal, Protocol

from starlette.responses import Response

from pmdev.config import Settings

logger = logging.getLogger(__name__)

# Browsers cap cookie lifetimes at 400 days
MAX_COOKIE_AGE_SECONDS = 400 * 24 * 60 * 60

# Base transition timings for the overlay, in seconds
TRANSITION_SECONDS: dict[str, float] = {"backdrop": 0.2, "panel": 0.25}

REDUCED_MOTION_HINT = "sec-ch-prefers-reduced-motion"


class NoticeState(str, Enum):
    SHOWN = "shown"
    HIDDEN = "hidden"


class DismissReason(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    TIMEOUT = "timeout"
    ESCAPE = "escape"


@dataclass(frozen=True)
class SeenRecord:
    """Marker that the notice was dismissed, optionally expiring."""

    expires_at_ms: int | None = None

    @classmethod
    def for_ttl(cls, now_ms: int, ttl_ms: int | None) -> SeenRecord:
        if ttl_ms is not None and ttl_ms > 0:
            return cls(expires_at_ms=now_ms + ttl_ms)
        return cls()

    def is_expired(self, now_ms: int) -> bool:
        if self.expires_at_ms is None:
            return False
        return now_ms > self.expires_at_ms

    def to_json(self) -> str:
        data = {} if self.expires_at_ms is None else {"exp": self.expires_at_ms}
        return json.dumps(data, separators=(",", ":"))

    @classmethod
    def from_json(cls, raw: str) -> SeenRecord | None:
        try:
            data = json.loads(raw)
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None
        exp = data.get("exp")
        if isinstance(exp, (int, float)) and not isinstance(exp, bool):
            return cls(expires_at_ms=int(exp))
        return cls()


class SeenStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    """Dict-backed store; one per browser profile in tests and scripts."""

    def __init__(self, data: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(data or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class CookieStore:
    """Seen-records kept in browser cookies.

    The session tier uses session cookies, the durable tier persistent
    cookies with ``max_age``. Reads come from the request cookies; writes
    are queued and copied onto a response by ``apply``.
    """

    def __init__(
        self,
        cookies: Mapping[str, str],
        *,
        durable: bool = False,
        max_age: int | None = None,
        secure: bool = False,
        path: str = "/",
    ) -> None:
        self.cookies = cookies
        self.durable = durable
        self.max_age = max_age
        self.secure = secure
        self.path = path
        self._pending: dict[str, str | None] = {}

    @staticmethod
    def encode(value: str) -> str:
        return base64.urlsafe_b64encode(value.encode("utf-8")).decode("ascii")

    @staticmethod
    def decode(value: str) -> str:
        padded = value + "=" * (-len(value) % 4)
        return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    def get(self, key: str) -> str | None:
        raw = self._pending[key] if key in self._pending else self.cookies.get(key)
        if not raw:
            return None
        return self.decode(raw)

    def set(self, key: str, value: str) -> None:
        self._pending[key] = self.encode(value)

    def remove(self, key: str) -> None:
        self._pending[key] = None

    def apply(self, response: Response) -> None:
        max_age = None
        if self.durable:
            max_age = min(
                self.max_age or MAX_COOKIE_AGE_SECONDS, MAX_COOKIE_AGE_SECONDS
            )
        for key, value in self._pending.items():
            if value is None:
                response.delete_cookie(key, path=self.path)
                continue
            response.set_cookie(
                key,
                value,
                max_age=max_age,
                path=self.path,
                secure=self.secure,
                httponly=True,
                samesite="lax",
            )
        self._pending.clear()


def read_seen(store: SeenStore, key: str) -> SeenRecord | None:
    try:
        raw = store.get(key)
    except Exception:
        logger.debug("Notice storage read failed for %s", key, exc_info=True)
        return None
    if not raw:
        return None
    return SeenRecord.from_json(raw)


def write_seen(store: SeenStore, key: str, record: SeenRecord) -> bool:
    try:
        store.set(key, record.to_json())
    except Exception:
        logger.debug("Notice storage write failed for %s", key, exc_info=True)
        return False
    return True


def clear_seen(store: SeenStore, key: str) -> bool:
    try:
        store.remove(key)
    except Exception:
        logger.debug("Notice storage removal failed for %s", key, exc_info=True)
        return False
    return True


@dataclass(frozen=True)
class NoticeOptions:
    storage_key: str = "overlay_demo_seen"
    storage: Literal["session", "local"] = "session"
    ttl_ms: int | None = None
    duration_ms: int = 7000
    suppress_param: str = "no-overlay"
    reset_param: str = "reset-overlay"
    reduce_motion: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> NoticeOptions:
        return cls(
            storage_key=settings.notice_storage_key,
            storage=settings.notice_storage,
            ttl_ms=settings.notice_ttl_ms,
            duration_ms=settings.notice_duration_ms,
            suppress_param=settings.notice_suppress_param,
            reset_param=settings.notice_reset_param,
            reduce_motion=settings.notice_reduce_motion,
        )

    @property
    def cookie_max_age(self) -> int | None:
        if self.ttl_ms is None or self.ttl_ms <= 0:
            return None
        return max(1, self.ttl_ms // 1000)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything with ``call_later``; an asyncio event loop qualifies."""

    def call_later(
        self, delay: float, callback: Callable[[], object]
    ) -> TimerHandle: ...


def prefers_reduced_motion(headers: Mapping[str, str]) -> bool:
    return headers.get(REDUCED_MOTION_HINT, "").strip().lower() == "reduce"


class NoticeController:
    """Two-state (shown/hidden) controller for one mounted notice."""

    def __init__(
        self,
        options: NoticeOptions,
        store: SeenStore,
        *,
        clock: Callable[[], float] = time.time,
        scheduler: Scheduler | None = None,
        on_close: Callable[[DismissReason], None] | None = None,
    ) -> None:
        self.options = options
        self.store = store
        self._clock = clock
        self._scheduler = scheduler
        self._on_close = on_close
        self._state = NoticeState.HIDDEN
        self._mounted = False
        self._timer: TimerHandle | None = None
        self.key_listener_active = False
        self.focus_pending = False

    @property
    def state(self) -> NoticeState:
        return self._state

    @property
    def visible(self) -> bool:
        return self._state is NoticeState.SHOWN

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    @property
    def auto_dismiss_seconds(self) -> float | None:
        if not self.visible or self.options.duration_ms <= 0:
            return None
        return self.options.duration_ms / 1000

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def mount(self, query: Mapping[str, str] | None = None) -> bool:
        """Compute the initial state; returns whether the notice is shown."""
        if self._mounted:
            raise RuntimeError("Notice controller is already mounted")
        self._mounted = True
        query = query or {}
        key = self.options.storage_key

        if query.get(self.options.suppress_param) == "1":
            return False

        if query.get(self.options.reset_param) == "1":
            clear_seen(self.store, key)

        record = read_seen(self.store, key)
        if record is not None and not record.is_expired(self._now_ms()):
            return False

        self._enter_shown()
        return True

    def _enter_shown(self) -> None:
        self._state = NoticeState.SHOWN
        self.focus_pending = True
        self.key_listener_active = True
        if self._scheduler is not None and self.options.duration_ms > 0:
            self._timer = self._scheduler.call_later(
                self.options.duration_ms / 1000, self._on_timeout
            )

    def _on_timeout(self) -> None:
        self._timer = None
        self.dismiss(DismissReason.TIMEOUT)

    def _teardown(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.key_listener_active = False
        self.focus_pending = False

    def take_focus(self) -> bool:
        """Consume the pending focus request for the primary action."""
        pending = self.focus_pending and self.visible
        self.focus_pending = False
        return pending

    def dismiss(self, reason: DismissReason = DismissReason.PRIMARY) -> bool:
        """Hide the notice and remember it; False if it was already hidden."""
        if not self.visible:
            return False
        self._teardown()
        self._state = NoticeState.HIDDEN
        record = SeenRecord.for_ttl(self._now_ms(), self.options.ttl_ms)
        write_seen(self.store, self.options.storage_key, record)
        if self._on_close is not None:
            self._on_close(reason)
        return True

    def handle_key(self, key: str) -> bool:
        if self.key_listener_active and key == "Escape":
            return self.dismiss(DismissReason.ESCAPE)
        return False

    def unmount(self) -> None:
        self._teardown()

    def motion_enabled(self, prefers_reduced: bool = False) -> bool:
        return not (self.options.reduce_motion or prefers_reduced)

    def transition_durations(self, prefers_reduced: bool = False) -> dict[str, float]:
        if self.motion_enabled(prefers_reduced):
            return dict(TRANSITION_SECONDS)
        return {name: 0.0 for name in TRANSITION_SECONDS}
