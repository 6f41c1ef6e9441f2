"""Tests for the demo notice controller and its seen-record storage."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from starlette.responses import Response

from pmdev.services.notice import (
    MAX_COOKIE_AGE_SECONDS,
    CookieStore,
    DismissReason,
    MemoryStore,
    NoticeController,
    NoticeOptions,
    NoticeState,
    SeenRecord,
    prefers_reduced_motion,
)

KEY = "overlay_demo_seen"


class FakeTimer:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.callback()


class FakeScheduler:
    def __init__(self):
        self.timers: list[FakeTimer] = []

    def call_later(self, delay, callback):
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer


class BrokenStore:
    def get(self, key):
        raise OSError("storage disabled")

    def set(self, key, value):
        raise OSError("quota exceeded")

    def remove(self, key):
        raise OSError("storage disabled")


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


def _controller(store, clock, **options):
    return NoticeController(NoticeOptions(**options), store, clock=clock)


class TestInitialState:
    def test_first_visit_shows_notice(self, store, clock):
        controller = _controller(store, clock)
        assert controller.mount() is True
        assert controller.state is NoticeState.SHOWN
        assert controller.focus_pending
        assert controller.key_listener_active

    def test_live_record_hides_notice(self, store, clock):
        store.set(KEY, SeenRecord().to_json())
        controller = _controller(store, clock)
        assert controller.mount() is False
        assert not controller.key_listener_active

    def test_suppress_flag_never_touches_storage(self, clock):
        store = MagicMock()
        controller = _controller(store, clock)
        assert controller.mount({"no-overlay": "1", "reset-overlay": "1"}) is False
        assert store.mock_calls == []

    def test_suppress_flag_needs_exact_value(self, store, clock):
        assert _controller(store, clock).mount({"no-overlay": "true"}) is True

    def test_reset_flag_clears_record_then_shows(self, store, clock):
        store.set(KEY, SeenRecord().to_json())
        controller = _controller(store, clock)
        assert controller.mount({"reset-overlay": "1"}) is True
        assert store.get(KEY) is None

    def test_custom_flag_names(self, store, clock):
        controller = _controller(store, clock, suppress_param="quiet")
        assert controller.mount({"quiet": "1"}) is False

    def test_double_mount_is_an_error(self, store, clock):
        controller = _controller(store, clock)
        controller.mount()
        with pytest.raises(RuntimeError):
            controller.mount()


class TestExpiry:
    def test_record_expires_after_ttl(self, store, clock):
        first = _controller(store, clock, ttl_ms=1000)
        first.mount()
        first.dismiss()

        clock.advance(0.5)
        assert _controller(store, clock, ttl_ms=1000).mount() is False
        clock.advance(1.0)
        assert _controller(store, clock, ttl_ms=1000).mount() is True

    def test_record_at_exact_expiry_is_still_live(self, store, clock):
        store.set(KEY, SeenRecord(expires_at_ms=int(clock() * 1000)).to_json())
        assert _controller(store, clock).mount() is False

    @pytest.mark.parametrize("ttl_ms", [None, 0, -5])
    def test_non_positive_ttl_never_expires(self, store, clock, ttl_ms):
        controller = _controller(store, clock, ttl_ms=ttl_ms)
        controller.mount()
        controller.dismiss()
        assert store.get(KEY) == "{}"
        clock.advance(10 * 365 * 24 * 3600)
        assert _controller(store, clock, ttl_ms=ttl_ms).mount() is False

    def test_dismiss_writes_expiry(self, store, clock):
        controller = _controller(store, clock, ttl_ms=5000)
        controller.mount()
        controller.dismiss()
        expected = int(clock() * 1000) + 5000
        assert store.get(KEY) == f'{{"exp":{expected}}}'


class TestCorruptRecords:
    @pytest.mark.parametrize("raw", ["{broken", "[1, 2]", '"text"', "42"])
    def test_unusable_record_counts_as_absent(self, store, clock, raw):
        store.set(KEY, raw)
        assert _controller(store, clock).mount() is True

    def test_non_numeric_expiry_never_expires(self, store, clock):
        store.set(KEY, '{"exp": "soon"}')
        assert _controller(store, clock).mount() is False

    def test_failing_store_is_swallowed(self, clock):
        controller = _controller(BrokenStore(), clock)
        assert controller.mount({"reset-overlay": "1"}) is True
        assert controller.dismiss() is True
        assert controller.state is NoticeState.HIDDEN


class TestDismissal:
    def test_dismiss_is_terminal(self, store, clock):
        closed = []
        controller = NoticeController(
            NoticeOptions(), store, clock=clock, on_close=closed.append
        )
        controller.mount()
        assert controller.dismiss(DismissReason.SECONDARY) is True
        assert controller.dismiss() is False
        assert controller.handle_key("Escape") is False
        assert closed == [DismissReason.SECONDARY]

    def test_escape_dismisses(self, store, clock):
        controller = _controller(store, clock)
        controller.mount()
        assert controller.handle_key("Enter") is False
        assert controller.handle_key("Escape") is True
        assert not controller.visible
        assert not controller.key_listener_active

    def test_timer_dismisses_after_duration(self, store, clock):
        scheduler = FakeScheduler()
        closed = []
        controller = NoticeController(
            NoticeOptions(duration_ms=7000),
            store,
            clock=clock,
            scheduler=scheduler,
            on_close=closed.append,
        )
        controller.mount()
        assert controller.timer_armed
        assert scheduler.timers[0].delay == 7.0
        scheduler.timers[0].fire()
        assert not controller.visible
        assert closed == [DismissReason.TIMEOUT]
        assert store.get(KEY) is not None

    def test_manual_dismiss_cancels_timer(self, store, clock):
        scheduler = FakeScheduler()
        controller = NoticeController(
            NoticeOptions(), store, clock=clock, scheduler=scheduler
        )
        controller.mount()
        controller.dismiss()
        assert scheduler.timers[0].cancelled
        assert not controller.timer_armed

    def test_zero_duration_disables_timer(self, store, clock):
        scheduler = FakeScheduler()
        controller = NoticeController(
            NoticeOptions(duration_ms=0), store, clock=clock, scheduler=scheduler
        )
        controller.mount()
        assert scheduler.timers == []
        assert controller.auto_dismiss_seconds is None

    def test_unmount_tears_down_without_recording(self, store, clock):
        scheduler = FakeScheduler()
        controller = NoticeController(
            NoticeOptions(), store, clock=clock, scheduler=scheduler
        )
        controller.mount()
        controller.unmount()
        assert scheduler.timers[0].cancelled
        assert not controller.key_listener_active
        assert store.get(KEY) is None

    def test_focus_is_requested_once(self, store, clock):
        controller = _controller(store, clock)
        controller.mount()
        assert controller.take_focus() is True
        assert controller.take_focus() is False


class TestMotion:
    def test_full_transitions_by_default(self, store, clock):
        controller = _controller(store, clock)
        assert controller.transition_durations() == {"backdrop": 0.2, "panel": 0.25}

    def test_reduce_motion_option(self, store, clock):
        controller = _controller(store, clock, reduce_motion=True)
        assert controller.transition_durations() == {"backdrop": 0.0, "panel": 0.0}

    def test_user_preference(self, store, clock):
        controller = _controller(store, clock)
        assert not controller.motion_enabled(prefers_reduced=True)

    def test_client_hint(self):
        assert prefers_reduced_motion({"sec-ch-prefers-reduced-motion": "reduce"})
        assert prefers_reduced_motion({"sec-ch-prefers-reduced-motion": " Reduce "})
        no_pref = {"sec-ch-prefers-reduced-motion": "no-preference"}
        assert not prefers_reduced_motion(no_pref)
        assert not prefers_reduced_motion({})


class TestCookieStore:
    def test_reads_encoded_cookie(self):
        value = CookieStore.encode('{"exp":123}')
        store = CookieStore({KEY: value})
        assert store.get(KEY) == '{"exp":123}'

    def test_pending_writes_shadow_request_cookies(self):
        store = CookieStore({KEY: CookieStore.encode("{}")})
        store.remove(KEY)
        assert store.get(KEY) is None
        store.set(KEY, '{"exp":1}')
        assert store.get(KEY) == '{"exp":1}'

    def test_durable_cookie_has_capped_max_age(self):
        store = CookieStore({}, durable=True, max_age=10 * MAX_COOKIE_AGE_SECONDS)
        store.set(KEY, "{}")
        response = Response()
        store.apply(response)
        header = response.headers["set-cookie"]
        assert f"Max-Age={MAX_COOKIE_AGE_SECONDS}" in header
        assert "HttpOnly" in header
        assert "SameSite=lax" in header
        assert not store.has_pending

    def test_session_cookie_has_no_max_age(self):
        store = CookieStore({})
        store.set(KEY, "{}")
        response = Response()
        store.apply(response)
        assert "Max-Age" not in response.headers["set-cookie"]

    def test_remove_expires_cookie(self):
        store = CookieStore({KEY: "e30"})
        store.remove(KEY)
        response = Response()
        store.apply(response)
        assert "Max-Age=0" in response.headers["set-cookie"]

    def test_garbage_cookie_counts_as_absent(self, clock):
        store = CookieStore({KEY: "%%%not-base64%%%"})
        assert _controller(store, clock).mount() is True


class TestOptions:
    def test_cookie_max_age_from_ttl(self):
        assert NoticeOptions(ttl_ms=14 * 24 * 3600 * 1000).cookie_max_age == 1209600
        assert NoticeOptions(ttl_ms=None).cookie_max_age is None
        assert NoticeOptions(ttl_ms=10).cookie_max_age == 1
