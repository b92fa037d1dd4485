"""
Shared Transports
=================

Registry for rate-limited transports shared across clients and nodes.

Rate limits belong to the upstream account (a GitHub App installation, a
user token), not to an individual client, so every client talking on behalf
of the same installation must go through the same transport.
"""

from typing import Any, Dict, Optional

import httpx

from .transport import RateLimitTransport


class TransportRegistry:
    """
    Registry for shared rate-limited transports.

    This is a singleton-style class with class methods for global access.

    Example:
        ```python
        # Register one transport per installation at app startup
        TransportRegistry.register("installation-1234", max_concurrent=100)

        # Any number of clients can share it
        async with httpx.AsyncClient(
            base_url="https://api.github.com",
            transport=TransportRegistry.get("installation-1234"),
        ) as client:
            await client.get("/installation/repositories")
        ```

    Thread Safety:
        The registry itself is not thread-safe for registration.
        Register transports during application startup before spawning
        async tasks.

    Note:
        Removing a transport from the registry does not close it. Closing
        an ``httpx.AsyncClient`` closes its transport, so a shared transport
        should be closed once, by its owner, at shutdown.
    """

    _transports: Dict[str, RateLimitTransport] = {}

    @classmethod
    def register(
        cls,
        name: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_concurrent: int = 100,
        threshold: Optional[int] = None,
        replace: bool = False,
    ) -> RateLimitTransport:
        """
        Register a named shared transport.

        Args:
            name: Unique identifier, typically the upstream installation
            transport: Wrapped transport (default: httpx.AsyncHTTPTransport())
            max_concurrent: Maximum requests in flight
            threshold: Remaining quota at which admissions stop
            replace: If True, replace existing transport with same name

        Returns:
            The registered RateLimitTransport instance

        Raises:
            ValueError: If transport already exists and replace=False
        """
        if name in cls._transports and not replace:
            raise ValueError(
                f"Transport '{name}' already exists. Use replace=True to override."
            )

        cls._transports[name] = RateLimitTransport(
            transport,
            max_concurrent=max_concurrent,
            threshold=threshold,
        )
        return cls._transports[name]

    @classmethod
    def get(cls, name: str) -> RateLimitTransport:
        """
        Get a registered transport by name.

        Raises:
            KeyError: If transport not found
        """
        if name not in cls._transports:
            raise KeyError(
                f"Transport '{name}' not found. Register it first with "
                f"TransportRegistry.register('{name}', ...) or use get_or_create()."
            )
        return cls._transports[name]

    @classmethod
    def get_or_create(
        cls,
        name: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_concurrent: int = 100,
        threshold: Optional[int] = None,
    ) -> RateLimitTransport:
        """
        Get existing transport or create new one if not exists.

        Note:
            If the transport already exists, the provided configuration
            is ignored and the existing transport is returned unchanged.
        """
        if name not in cls._transports:
            cls.register(name, transport, max_concurrent, threshold)
        return cls._transports[name]

    @classmethod
    def remove(cls, name: str) -> bool:
        """
        Remove a transport from the registry.

        Returns:
            True if removed, False if not found
        """
        if name in cls._transports:
            del cls._transports[name]
            return True
        return False

    @classmethod
    def reset(cls, name: Optional[str] = None) -> None:
        """
        Remove one transport, or all of them when name is None.
        """
        if name is None:
            cls._transports.clear()
        elif name in cls._transports:
            del cls._transports[name]

    @classmethod
    def exists(cls, name: str) -> bool:
        return name in cls._transports

    @classmethod
    def list_names(cls) -> list:
        return list(cls._transports.keys())

    @classmethod
    def list_all(cls) -> Dict[str, Dict[str, Any]]:
        """
        List all registered transports with their configurations.

        Example:
            ```python
            for name, config in TransportRegistry.list_all().items():
                print(f"{name}: {config}")
            # installation-1234: {'max_concurrent': 100, 'threshold': 100}
            ```
        """
        return {
            name: {
                "max_concurrent": transport.max_concurrent,
                "threshold": transport.threshold,
            }
            for name, transport in cls._transports.items()
        }

    @classmethod
    def stats(cls, name: str) -> Dict[str, Any]:
        """
        Get current gate state for a transport.

        Raises:
            KeyError: If transport not found
        """
        transport = cls.get(name)
        return {
            "max_concurrent": transport.max_concurrent,
            "threshold": transport.threshold,
            "in_flight": transport.semaphore.outstanding,
            "throttle_open": transport.throttle.is_open,
            "closed_until": transport.throttle.closed_until,
            "pending_observations": transport.throttle.pending,
        }
