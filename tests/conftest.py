"""
Pytest configuration and fixtures for httpx_throttled tests.
"""

import asyncio
import time

import httpx
import pytest


RESET_EPOCH = 1_700_000_000


class AdvancingClock:
    """
    Epoch clock that starts ``lead`` seconds before RESET_EPOCH and then
    advances in real time, so closures last ``lead`` seconds.
    """

    def __init__(self, lead: float):
        self._base = RESET_EPOCH - lead
        self._start = time.monotonic()

    def __call__(self) -> float:
        return self._base + (time.monotonic() - self._start)


def rate_limit_headers(remaining, reset=RESET_EPOCH, used=0):
    return {
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Used": str(used),
        "X-RateLimit-Reset": str(reset),
    }


@pytest.fixture
def clock_factory():
    """Build clocks placing RESET_EPOCH a given number of seconds ahead."""
    return AdvancingClock


@pytest.fixture
def headers_factory():
    """Build x-ratelimit-* header dicts."""
    return rate_limit_headers


@pytest.fixture
def response_factory():
    """Build bare responses carrying rate limit headers."""
    def make(remaining, reset=RESET_EPOCH, used=0, status_code=200):
        return httpx.Response(
            status_code,
            headers=rate_limit_headers(remaining, reset, used),
        )
    return make


class QuotaUpstream:
    """
    Mock upstream enforcing a primary quota on whole epoch-second windows.

    Requests past the quota in the current window get a 403, as GitHub
    answers them. Use as the handler of an ``httpx.MockTransport``.
    """

    def __init__(self, quota, latency=0.01):
        self.quota = quota
        self.latency = latency
        self.used = 0
        self.reset = 0
        self.served = 0
        self.rejected = 0

    async def __call__(self, request):
        await asyncio.sleep(self.latency)

        now = time.time()
        if now >= self.reset:
            self.used = 0
            self.reset = int(now) + 1

        headers = {"x-ratelimit-reset": str(self.reset)}
        if self.used >= self.quota:
            self.rejected += 1
            headers["x-ratelimit-remaining"] = "0"
            headers["x-ratelimit-used"] = str(self.used)
            return httpx.Response(403, headers=headers, json={"message": "API rate limit exceeded"})

        self.used += 1
        self.served += 1
        headers["x-ratelimit-remaining"] = str(self.quota - self.used)
        headers["x-ratelimit-used"] = str(self.used)
        return httpx.Response(200, headers=headers, json={"name": request.url.path.rsplit("/", 1)[-1]})


@pytest.fixture
def quota_upstream():
    """Build quota-enforcing upstream handlers."""
    return QuotaUpstream
