"""Tests for the contact quota and source-key derivation."""

from __future__ import annotations

import pytest
from starlette.requests import Request

from pmdev.security.rate_limit import LOOPBACK_SOURCE, client_source_key
from pmdev.services.rate_limit import FixedWindowRateLimiter


def _limiter(clock, **kwargs) -> FixedWindowRateLimiter:
    kwargs.setdefault("sweep_seconds", None)
    return FixedWindowRateLimiter(limit=3, window_seconds=60.0, clock=clock, **kwargs)


class TestFixedWindowRateLimiter:
    def test_fourth_hit_in_window_is_rejected(self, clock):
        limiter = _limiter(clock)
        assert [limiter.hit("1.2.3.4") for _ in range(4)] == [True, True, True, False]

    def test_rejected_hits_do_not_increment(self, clock):
        limiter = _limiter(clock)
        for _ in range(6):
            limiter.hit("1.2.3.4")
        assert limiter.get("1.2.3.4").count == 3

    def test_window_resets_after_it_elapses(self, clock):
        limiter = _limiter(clock)
        for _ in range(4):
            limiter.hit("1.2.3.4")
        clock.advance(60.001)
        assert limiter.hit("1.2.3.4") is True
        record = limiter.get("1.2.3.4")
        assert record.count == 1
        assert record.window_start == clock.now

    def test_window_boundary_is_exclusive(self, clock):
        limiter = _limiter(clock)
        for _ in range(3):
            limiter.hit("1.2.3.4")
        clock.advance(60.0)
        assert limiter.hit("1.2.3.4") is False

    def test_window_starts_at_first_hit(self, clock):
        limiter = _limiter(clock)
        limiter.hit("1.2.3.4")
        clock.advance(59)
        limiter.hit("1.2.3.4")
        limiter.hit("1.2.3.4")
        clock.advance(2)
        # 61s after the first hit the whole quota is available again
        assert [limiter.hit("1.2.3.4") for _ in range(4)] == [True, True, True, False]

    def test_sources_are_independent(self, clock):
        limiter = _limiter(clock)
        for _ in range(3):
            limiter.hit("1.1.1.1")
        assert limiter.hit("1.1.1.1") is False
        assert limiter.hit("2.2.2.2") is True

    def test_prune_drops_only_elapsed_windows(self, clock):
        limiter = _limiter(clock)
        limiter.hit("old")
        clock.advance(45)
        limiter.hit("recent")
        clock.advance(30)
        assert limiter.prune() == 1
        assert limiter.get("old") is None
        assert limiter.get("recent") is not None

    def test_hit_sweeps_periodically(self, clock):
        limiter = _limiter(clock, sweep_seconds=300.0)
        for source in ("a", "b", "c"):
            limiter.hit(source)
        clock.advance(301)
        limiter.hit("d")
        assert len(limiter) == 1

    def test_reset_clears_all_records(self, clock):
        limiter = _limiter(clock)
        limiter.hit("a")
        limiter.reset()
        assert len(limiter) == 0

    @pytest.mark.parametrize("kwargs", [{"limit": 0}, {"window_seconds": 0}])
    def test_invalid_configuration(self, kwargs):
        with pytest.raises(ValueError):
            FixedWindowRateLimiter(**kwargs)


def _request(headers: dict[str, str]) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
    return Request({"type": "http", "method": "POST", "path": "/", "headers": raw})


class TestClientSourceKey:
    def test_first_forwarded_hop(self):
        request = _request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
        assert client_source_key(request) == "203.0.113.7"

    def test_hop_whitespace_is_stripped(self):
        request = _request({"X-Forwarded-For": "  198.51.100.2 ,10.0.0.1"})
        assert client_source_key(request) == "198.51.100.2"

    def test_missing_header_uses_loopback(self):
        assert client_source_key(_request({})) == LOOPBACK_SOURCE

    def test_empty_header_uses_loopback(self):
        assert client_source_key(_request({"X-Forwarded-For": ""})) == "127.0.0.1"
