"""HTTP client construction for upstream requests."""

from typing import Any

import httpx

from jsonpath_filter.config.upstream import UpstreamSettings
from jsonpath_filter.core.logging import get_logger


logger = get_logger(__name__)


class HTTPClientFactory:
    """Factory for the upstream HTTP client.

    Keeps timeout, connection-limit and TLS configuration in one place.
    """

    @staticmethod
    def create_client(
        settings: UpstreamSettings | None = None,
        *,
        max_keepalive_connections: int = 100,
        max_connections: int = 1000,
        **kwargs: Any,
    ) -> httpx.AsyncClient:
        """Create the upstream client.

        Args:
            settings: Upstream settings (timeouts, TLS verification)
            max_keepalive_connections: Max keep-alive connections for reuse
            max_connections: Max total concurrent connections
            **kwargs: Additional httpx.AsyncClient arguments (e.g. ``transport``)

        Returns:
            Configured httpx.AsyncClient instance
        """
        settings = settings or UpstreamSettings()

        timeout = httpx.Timeout(
            connect=settings.timeout_connect,
            read=settings.timeout_read,
            write=30.0,
            pool=30.0,
        )
        limits = httpx.Limits(
            max_keepalive_connections=max_keepalive_connections,
            max_connections=max_connections,
        )

        client_config: dict[str, Any] = {
            "timeout": timeout,
            "limits": limits,
            "verify": settings.verify_ssl,
            "follow_redirects": False,
            **kwargs,
        }

        logger.debug(
            "http_client_created",
            base_url=settings.base_url,
            timeout_connect=settings.timeout_connect,
            timeout_read=settings.timeout_read,
            verify_ssl=settings.verify_ssl,
        )
        return httpx.AsyncClient(**client_config)
