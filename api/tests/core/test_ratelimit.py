"""Unit tests for core.ratelimit module.

Tests rate limiting utilities:
- RateLimiter admits up to the limit per window, then rejects
- Privileged keys bypass the limiter without consuming quota
- Counters reset when the window rolls over
- rate_limit_exceeded_handler returns a 429 JSON response with Retry-After
"""

import json
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest
import time_machine
from fastapi import Request

from core.keys import StaticKeyStore
from core.ratelimit import (
    RATE_LIMIT_MESSAGE,
    RateLimiter,
    RateLimitExceededError,
    build_rate_limiter,
    get_request_identifier,
    rate_limit_exceeded_handler,
)
from tests.fakes import make_settings

FROZEN_TIME = datetime(2026, 3, 2, 12, 0, 0, tzinfo=UTC)


def _make_request(path: str = "/chart") -> Request:
    request = MagicMock(spec=Request)
    request.url.path = path
    return request


@pytest.mark.unit
class TestRateLimiter:
    def test_disabled_limiter_allows_everything(self):
        limiter = RateLimiter(None, StaticKeyStore())
        assert limiter.enabled is False
        assert all(limiter.check("1.2.3.4") for _ in range(100))

    def test_allows_up_to_limit_then_rejects(self):
        limiter = RateLimiter(3, StaticKeyStore())
        results = [limiter.check("1.2.3.4") for _ in range(4)]
        assert results == [True, True, True, False]

    def test_counts_each_identity_separately(self):
        limiter = RateLimiter(1, StaticKeyStore())
        assert limiter.check("1.1.1.1") is True
        assert limiter.check("2.2.2.2") is True
        assert limiter.check("1.1.1.1") is False

    def test_privileged_key_bypasses_limit(self):
        limiter = RateLimiter(1, StaticKeyStore({"secret"}))
        assert limiter.check("1.2.3.4") is True
        assert limiter.check("1.2.3.4") is False
        assert limiter.check("1.2.3.4", "secret") is True

    def test_privileged_requests_do_not_consume_quota(self):
        limiter = RateLimiter(2, StaticKeyStore({"secret"}))
        for _ in range(10):
            assert limiter.check("1.2.3.4", "secret") is True
        assert limiter.check("1.2.3.4") is True
        assert limiter.check("1.2.3.4") is True
        assert limiter.check("1.2.3.4") is False

    @pytest.mark.parametrize("supplied", ["wrong", "", None])
    def test_unknown_or_empty_key_is_limited(self, supplied):
        limiter = RateLimiter(1, StaticKeyStore({"secret"}))
        assert limiter.check("1.2.3.4", supplied) is True
        assert limiter.check("1.2.3.4", supplied) is False

    def test_window_rollover_resets_count(self):
        limiter = RateLimiter(2, StaticKeyStore())
        with time_machine.travel(FROZEN_TIME, tick=False) as traveller:
            assert limiter.check("1.2.3.4") is True
            assert limiter.check("1.2.3.4") is True
            assert limiter.check("1.2.3.4") is False

            traveller.move_to(FROZEN_TIME + timedelta(seconds=61))

            assert limiter.check("1.2.3.4") is True

    def test_retry_after_within_window(self):
        limiter = RateLimiter(1, StaticKeyStore())
        with time_machine.travel(FROZEN_TIME, tick=False):
            limiter.check("1.2.3.4")
            assert 0 < limiter.retry_after("1.2.3.4") <= 60

    def test_rejection_increments_counter(self):
        limiter = RateLimiter(1, StaticKeyStore())
        with patch("core.ratelimit.RATE_LIMIT_REJECTED_COUNTER") as counter:
            limiter.check("1.2.3.4")
            counter.add.assert_not_called()
            limiter.check("1.2.3.4")
            counter.add.assert_called_once_with(1, {"limit": 1})

    def test_concurrent_hits_are_counted_exactly(self):
        limiter = RateLimiter(10, StaticKeyStore())

        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(lambda _: limiter.check("1.2.3.4"), range(50)))

        assert results.count(True) == 10
        assert limiter.hits("1.2.3.4") == 50

    def test_hits_for_disabled_limiter(self):
        assert RateLimiter(None, StaticKeyStore()).hits("1.2.3.4") == 0

    def test_reset_clears_counters(self):
        limiter = RateLimiter(1, StaticKeyStore())
        limiter.check("1.2.3.4")
        limiter.reset()
        assert limiter.check("1.2.3.4") is True


@pytest.mark.unit
class TestBuildRateLimiter:
    def test_disabled_when_limit_unset(self):
        limiter = build_rate_limiter(make_settings(rate_limit_per_min=None))
        assert limiter.enabled is False

    def test_uses_configured_limit_and_keys(self):
        limiter = build_rate_limiter(
            make_settings(rate_limit_per_min=5, api_keys="k1,k2")
        )
        assert limiter.enabled is True
        assert limiter.limit == 5
        assert limiter.is_privileged("k2") is True
        assert limiter.is_privileged("k3") is False


@pytest.mark.unit
class TestGetRequestIdentifier:
    @patch("core.ratelimit.get_remote_address", autospec=True)
    def test_uses_remote_address(self, mock_get_remote):
        mock_get_remote.return_value = "192.168.1.1"
        request = _make_request()
        assert get_request_identifier(request) == "192.168.1.1"
        mock_get_remote.assert_called_once_with(request)


@pytest.mark.unit
class TestRateLimitExceededHandler:
    def test_returns_429_with_retry_after(self):
        exc = RateLimitExceededError("1.2.3.4", limit=60, retry_after=42)

        response = rate_limit_exceeded_handler(_make_request(), exc)

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "42"
        body = json.loads(response.body)
        assert body == {"detail": RATE_LIMIT_MESSAGE, "retry_after": 42}

    def test_other_exceptions_return_500(self):
        response = rate_limit_exceeded_handler(_make_request(), ValueError("boom"))
        assert response.status_code == 500
        assert json.loads(response.body) == {"detail": "Unexpected error"}
