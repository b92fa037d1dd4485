"""
Tests for the exception classes.
"""

import time

import httpx
import pytest

from httpx_throttled import LimiterClosedError, RateLimitHit, RateLimitInfo


class TestLimiterClosedError:

    def test_is_runtime_error(self):
        """Matches httpx, which raises RuntimeError for a closed client."""
        assert issubclass(LimiterClosedError, RuntimeError)


class TestRateLimitHit:
    """Tests for RateLimitHit."""

    def test_defaults(self):
        exc = RateLimitHit()

        assert str(exc) == "Rate limit hit"
        assert exc.retry_after is None
        assert exc.source is None
        assert exc.info is None

    def test_attributes(self):
        info = RateLimitInfo(remaining=0, used=5000, reset=1700000000)
        exc = RateLimitHit("quota exhausted", retry_after=12.5, source="github", info=info)

        assert exc.retry_after == 12.5
        assert exc.source == "github"
        assert exc.info is info

    def test_repr(self):
        exc = RateLimitHit("quota exhausted", retry_after=3, source="github")

        assert repr(exc) == "RateLimitHit('quota exhausted', retry_after=3, source='github')"

    def test_can_be_raised_and_caught(self):
        with pytest.raises(RateLimitHit, match="quota exhausted"):
            raise RateLimitHit("quota exhausted")

    def test_from_response_future_reset(self):
        reset = int(time.time()) + 120
        response = httpx.Response(403, headers={
            "x-ratelimit-remaining": "0",
            "x-ratelimit-used": "5000",
            "x-ratelimit-reset": str(reset),
        })

        exc = RateLimitHit.from_response(response, source="github")

        assert exc.info == RateLimitInfo(remaining=0, used=5000, reset=reset)
        assert 100 < exc.retry_after <= 120
        assert exc.source == "github"

    def test_from_response_elapsed_reset(self):
        response = httpx.Response(429, headers={
            "x-ratelimit-remaining": "0",
            "x-ratelimit-reset": "1700000000",
        })

        exc = RateLimitHit.from_response(response, message="slow down")

        assert str(exc) == "slow down"
        assert exc.retry_after is None

    def test_from_response_without_headers(self):
        exc = RateLimitHit.from_response(httpx.Response(429))

        assert exc.retry_after is None
        assert not exc.info.valid
