"""
httpx Throttled - Dual-Gate Rate Limiting Transport
===================================================

An httpx transport that keeps API clients inside both of an upstream's rate
limits: the primary quota reported through ``x-ratelimit-*`` response
headers, and the secondary cap on concurrent requests.

Features:
    - Header throttle: stops *all* admissions when the remaining quota runs
      low, until the server-reported reset time
    - Admission semaphore: bounds requests in flight
    - Timeouts and cancellation honored at both gates, no slot ever leaked
    - Drop-in httpx.AsyncBaseTransport, wraps any other async transport
    - PocketFlow batch node whose requests share one throttled client
    - Presets for the GitHub REST API

Quick Start:
    ```python
    import httpx
    from httpx_throttled import RateLimitTransport, Presets

    transport = RateLimitTransport(**Presets.GITHUB_APP_INSTALLATION)

    async with httpx.AsyncClient(
        base_url="https://api.github.com",
        transport=transport,
        headers={"Authorization": f"Bearer {token}"},
    ) as client:
        responses = await asyncio.gather(*[
            client.get(f"/repos/{repo}/issues") for repo in repos
        ])
    ```

Classes:
    RateLimitTransport: httpx transport composing both gates
    HeaderThrottle: Primary rate limit gate driven by response headers
    AdmissionSemaphore: Secondary rate limit (concurrency) gate
    RateLimitInfo: Snapshot of the x-ratelimit-* headers
    ThrottledRequestBatchNode: PocketFlow node with a throttled client
    TransportRegistry: Named transports shared per upstream installation
    Presets: Pre-configured limits for popular APIs
"""

__version__ = "0.1.0"

from .exceptions import LimiterClosedError, RateLimitHit
from .header_throttle import HeaderThrottle
from .nodes import ThrottledRequestBatchNode
from .presets import Presets, RateLimitConfig
from .rate_limit_info import RateLimitInfo
from .semaphore import AdmissionSemaphore
from .shared import TransportRegistry
from .transport import RateLimitTransport

__all__ = [
    # Version info
    "__version__",

    # Core classes
    "RateLimitTransport",
    "HeaderThrottle",
    "AdmissionSemaphore",
    "RateLimitInfo",

    # Integration
    "ThrottledRequestBatchNode",
    "TransportRegistry",

    # Configuration
    "Presets",
    "RateLimitConfig",

    # Exceptions
    "LimiterClosedError",
    "RateLimitHit",
]


def main() -> None:
    """CLI entry point - displays package info."""
    print(f"httpx Throttled v{__version__}")
    print("=" * 40)
    print(__doc__)
    print("\nAvailable Presets:")
    for name, desc in Presets.list_presets().items():
        print(f"  - {name}: {desc}")
