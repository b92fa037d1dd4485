"""
Rate Limit Info
===============

Parses the ``x-ratelimit-*`` response headers into an immutable snapshot.

GitHub (and APIs modelled on it) report the primary rate limit on every
response:

    x-ratelimit-remaining   requests left in the current window
    x-ratelimit-used        requests made in the current window
    x-ratelimit-reset       UTC epoch seconds at which the window resets

Parsing is permissive: a missing or malformed header reads as 0. A well
formed value is an optionally signed run of ASCII digits, with no padding
or digit separators.
"""

import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Mapping, Optional

import httpx

HEADER_REMAINING = "x-ratelimit-remaining"
HEADER_USED = "x-ratelimit-used"
HEADER_RESET = "x-ratelimit-reset"

_INT64_MIN = -(2 ** 63)
_INT64_MAX = 2 ** 63 - 1

# Optional sign and ASCII digits only.
_INTEGER = re.compile(r"[+-]?[0-9]+")


def _int_header(headers: Mapping[str, str], name: str) -> int:
    value = headers.get(name)
    if not value or not _INTEGER.fullmatch(value):
        return 0
    parsed = int(value)
    if parsed < _INT64_MIN or parsed > _INT64_MAX:
        return 0
    return parsed


@dataclass(frozen=True)
class RateLimitInfo:
    """
    Primary rate limit status reported by a single response.

    Attributes:
        remaining: Requests remaining in the current window
        used: Requests made in the current window
        reset: UTC epoch seconds at which the window resets

    A snapshot whose fields are all zero carries no information (the
    response had no rate limit headers) and is reported as not ``valid``.

    Example:
        ```python
        info = RateLimitInfo.from_headers(response.headers)
        if info.valid and info.remaining == 0:
            print(f"Quota exhausted until {info.reset_at:%H:%M:%S}")
        ```
    """
    remaining: int = 0
    used: int = 0
    reset: int = 0

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "RateLimitInfo":
        """
        Build a snapshot from a header mapping.

        Header names are matched case-insensitively, so plain dicts work as
        well as ``httpx.Headers``.
        """
        if not isinstance(headers, httpx.Headers):
            headers = {str(k).lower(): v for k, v in headers.items()}
        return cls(
            remaining=_int_header(headers, HEADER_REMAINING),
            used=_int_header(headers, HEADER_USED),
            reset=_int_header(headers, HEADER_RESET),
        )

    @classmethod
    def from_response(cls, response: Optional[httpx.Response]) -> "RateLimitInfo":
        """Build a snapshot from a response; ``None`` yields an empty one."""
        if response is None:
            return cls()
        return cls.from_headers(response.headers)

    @property
    def valid(self) -> bool:
        """True unless every field is zero."""
        return self.reset != 0 or self.remaining != 0 or self.used != 0

    @property
    def reset_at(self) -> datetime:
        """The moment the window resets, as an aware UTC datetime."""
        return datetime.fromtimestamp(self.reset, tz=timezone.utc)

    def time_to_reset(self, now: Optional[float] = None) -> float:
        """
        Seconds until the window resets.

        Args:
            now: Current epoch time in seconds (default: ``time.time()``)

        Returns:
            Seconds to wait; zero or negative when the reset has passed
        """
        if now is None:
            now = time.time()
        return self.reset - now
