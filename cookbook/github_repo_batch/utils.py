"""
Mock GitHub upstream for the cookbook example.

Serves ``/repos/{owner}/{name}`` with a small primary quota that resets a few
seconds after it is first used, reporting it through the usual
``x-ratelimit-*`` headers. Requests past the quota get a 403, exactly like
the real API.
"""

import asyncio
import random
import time

import httpx


class MockGitHub:
    """
    In-process stand-in for api.github.com.

    Args:
        quota: Requests allowed per window
        window_seconds: Window length
        latency: Simulated response time in seconds
    """

    def __init__(self, quota: int = 30, window_seconds: float = 3.0, latency: float = 0.05):
        self.quota = quota
        self.window_seconds = window_seconds
        self.latency = latency

        self.used = 0
        self.reset = 0
        self.active = 0
        self.max_active = 0
        self.rejected = 0

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def _roll_window(self) -> None:
        now = time.time()
        if now >= self.reset:
            self.used = 0
            # x-ratelimit-reset is whole epoch seconds
            self.reset = int(now + self.window_seconds) + 1

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.latency + random.uniform(0, 0.02))

            self._roll_window()
            headers = {
                "x-ratelimit-limit": str(self.quota),
                "x-ratelimit-reset": str(self.reset),
            }
            if self.used >= self.quota:
                self.rejected += 1
                headers["x-ratelimit-remaining"] = "0"
                headers["x-ratelimit-used"] = str(self.used)
                return httpx.Response(403, headers=headers, json={"message": "API rate limit exceeded"})

            self.used += 1
            headers["x-ratelimit-remaining"] = str(self.quota - self.used)
            headers["x-ratelimit-used"] = str(self.used)
            name = request.url.path.rsplit("/", 1)[-1]
            return httpx.Response(
                200,
                headers=headers,
                json={"name": name, "stargazers_count": random.randint(0, 5000)},
            )
        finally:
            self.active -= 1
