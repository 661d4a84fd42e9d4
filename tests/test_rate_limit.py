"""Tests for the guestbook rate limiter.

For any client key, a request within the cooldown window of the previous
accepted request is rejected; once the window has elapsed it is accepted.
"""

import pytest
from hypothesis import given, settings, strategies as st

from src.services.errors import RateLimitError
from src.services.rate_limit import InMemoryRateLimitStore, RateLimiter


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


client_key = st.from_regex(r"\A[0-9]{1,3}(\.[0-9]{1,3}){3}\Z")


class TestRateLimiter:
    """Cooldown window behavior."""

    @given(key=client_key, wait=st.floats(min_value=0, max_value=4.99))
    @settings(max_examples=100)
    def test_second_request_within_window_is_rejected(self, key: str, wait: float):
        clock = FakeClock()
        limiter = RateLimiter(window_seconds=5, clock=clock)

        limiter.check(key)
        clock.advance(wait)

        with pytest.raises(RateLimitError) as exc_info:
            limiter.check(key)
        assert exc_info.value.status_code == 429
        assert 0 < exc_info.value.retry_after <= 5

    @given(key=client_key, wait=st.floats(min_value=5, max_value=3600))
    @settings(max_examples=100)
    def test_request_after_window_is_accepted(self, key: str, wait: float):
        clock = FakeClock()
        limiter = RateLimiter(window_seconds=5, clock=clock)

        limiter.check(key)
        clock.advance(wait)

        limiter.check(key)

    def test_keys_are_independent(self):
        clock = FakeClock()
        limiter = RateLimiter(window_seconds=5, clock=clock)

        limiter.check("10.0.0.1")
        limiter.check("10.0.0.2")

        with pytest.raises(RateLimitError):
            limiter.check("10.0.0.1")

    def test_window_measured_from_last_accepted_request(self):
        clock = FakeClock()
        limiter = RateLimiter(window_seconds=5, clock=clock)

        limiter.check("k")
        clock.advance(3)
        with pytest.raises(RateLimitError):
            limiter.check("k")
        clock.advance(2)

        # 5s after the accepted request, rejected attempts notwithstanding
        limiter.check("k")

    def test_store_is_injectable_and_shared(self):
        clock = FakeClock()
        store = InMemoryRateLimitStore()
        first = RateLimiter(store=store, window_seconds=5, clock=clock)
        second = RateLimiter(store=store, window_seconds=5, clock=clock)

        first.check("k")

        with pytest.raises(RateLimitError):
            second.check("k")
        assert len(store) == 1
        assert store.get_last_request("k") == clock.now * 1000

    def test_error_message_rounds_wait_up(self):
        clock = FakeClock()
        limiter = RateLimiter(window_seconds=5, clock=clock)
        limiter.check("k")
        clock.advance(0.5)

        with pytest.raises(RateLimitError, match="wait 5 seconds"):
            limiter.check("k")

    def test_empty_injected_store_is_kept(self):
        store = InMemoryRateLimitStore()

        limiter = RateLimiter(store=store, window_seconds=5)

        assert limiter.store is store

    def test_ensure_allowed_does_not_record(self):
        clock = FakeClock()
        limiter = RateLimiter(window_seconds=5, clock=clock)

        limiter.ensure_allowed("k")
        limiter.ensure_allowed("k")

        assert limiter.store.get_last_request("k") is None
        limiter.record("k")
        with pytest.raises(RateLimitError):
            limiter.ensure_allowed("k")
