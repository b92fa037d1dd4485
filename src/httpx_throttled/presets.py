"""
Rate Limit Presets
==================

Pre-configured limits for the GitHub REST API and generic upstreams.

These presets are based on documented rate limits. Always verify current
limits for your token type and plan.

Usage:
    ```python
    from httpx_throttled import RateLimitTransport, Presets

    transport = RateLimitTransport(**Presets.GITHUB_APP_INSTALLATION)

    # Or on a node
    class FetchIssuesNode(ThrottledRequestBatchNode):
        max_concurrent = Presets.GITHUB_ACTIONS_TOKEN["max_concurrent"]
    ```
"""

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class RateLimitConfig:
    """
    Immutable rate limit configuration.

    Attributes:
        max_concurrent: Maximum simultaneous requests (secondary limit)
        threshold: Remaining primary quota at which admissions stop,
            None = same as max_concurrent
        description: Human-readable description of this preset
    """
    max_concurrent: int
    threshold: Optional[int] = None
    description: str = ""

    def to_dict(self) -> Dict[str, int]:
        """Convert to kwargs dict for transport initialization."""
        result = {"max_concurrent": self.max_concurrent}
        if self.threshold is not None:
            result["threshold"] = self.threshold
        return result


class Presets:
    """
    Collection of rate limit presets.

    Each preset is available as both a dict (for **kwargs) and
    a RateLimitConfig object (for programmatic access).

    Example:
        ```python
        # Using dict unpacking
        transport = RateLimitTransport(**Presets.GITHUB_PERSONAL_TOKEN)

        # Using config object
        config = Presets.CONFIGS["github_actions_token"]
        transport = RateLimitTransport(**config.to_dict())
        ```

    Note:
        The threshold doubles as a safety margin: with ``max_concurrent``
        requests possibly in flight when the gate closes, stopping at
        ``remaining <= max_concurrent`` keeps the window from being overrun.
    """

    # =========================================================================
    # GitHub REST API
    # https://docs.github.com/en/rest/using-the-rest-api/rate-limits-for-the-rest-api
    # =========================================================================

    # 5000 requests/hour per installation, 100 concurrent requests
    GITHUB_APP_INSTALLATION = {
        "max_concurrent": 100,
        "threshold": 100,
    }

    # 5000 requests/hour per user, 100 concurrent requests
    GITHUB_PERSONAL_TOKEN = {
        "max_concurrent": 100,
        "threshold": 100,
    }

    # GITHUB_TOKEN in Actions: 1000 requests/hour per repository
    GITHUB_ACTIONS_TOKEN = {
        "max_concurrent": 20,
        "threshold": 20,
    }

    # 15000 requests/hour for Enterprise Cloud installations
    GITHUB_ENTERPRISE_CLOUD = {
        "max_concurrent": 100,
        "threshold": 100,
    }

    # =========================================================================
    # Generic Presets
    # Use these when you don't know the exact limits
    # =========================================================================

    CONSERVATIVE = {
        "max_concurrent": 5,
        "threshold": 5,
    }

    MODERATE = {
        "max_concurrent": 20,
        "threshold": 20,
    }

    AGGRESSIVE = {
        "max_concurrent": 50,
        "threshold": 50,
    }

    # =========================================================================
    # Typed Configuration Objects
    # =========================================================================

    CONFIGS: Dict[str, RateLimitConfig] = {
        "github_app_installation": RateLimitConfig(100, 100, "GitHub App installation"),
        "github_personal_token": RateLimitConfig(100, 100, "GitHub personal access token"),
        "github_actions_token": RateLimitConfig(20, 20, "GitHub Actions GITHUB_TOKEN"),
        "github_enterprise_cloud": RateLimitConfig(100, 100, "GitHub Enterprise Cloud installation"),
        "conservative": RateLimitConfig(5, 5, "Conservative - safe default"),
        "moderate": RateLimitConfig(20, 20, "Moderate - balanced"),
        "aggressive": RateLimitConfig(50, 50, "Aggressive - high throughput"),
    }

    @classmethod
    def get(cls, name: str) -> Dict[str, int]:
        """
        Get a preset by name (case-insensitive).

        Args:
            name: Preset name (e.g., "github_app_installation", "MODERATE")

        Returns:
            Dict with max_concurrent and threshold keys

        Raises:
            KeyError: If preset name is not found
        """
        name_lower = name.lower()
        if name_lower in cls.CONFIGS:
            return cls.CONFIGS[name_lower].to_dict()

        raise KeyError(
            f"Unknown preset: {name}. "
            f"Available: {list(cls.CONFIGS.keys())}"
        )

    @classmethod
    def list_presets(cls) -> Dict[str, str]:
        """
        List all available presets with descriptions.

        Returns:
            Dict mapping preset names to descriptions
        """
        return {name: config.description for name, config in cls.CONFIGS.items()}
