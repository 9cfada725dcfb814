"""Reverse proxy service forwarding requests to the upstream service."""

from collections.abc import Iterable

import httpx
from fastapi import Request, Response

from jsonpath_filter.core.errors import UpstreamConnectionError, UpstreamTimeoutError
from jsonpath_filter.core.logging import get_logger


logger = get_logger(__name__)


# Hop-by-hop headers are never forwarded in either direction
HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
    }
)

EXCLUDED_REQUEST_HEADERS = HOP_BY_HOP_HEADERS | {
    "host",
    # Recalculated by httpx
    "content-length",
    # The upstream is asked for identity encoding so JSON bodies can be decoded
    "accept-encoding",
}

# httpx hands back decoded content, so the upstream's framing no longer applies
EXCLUDED_RESPONSE_HEADERS = HOP_BY_HOP_HEADERS | {"content-encoding", "content-length"}


def _has_body(status_code: int) -> bool:
    return status_code >= 200 and status_code not in (204, 304)


def filter_headers(
    headers: Iterable[tuple[bytes, bytes]],
    excludes: Iterable[str],
) -> list[tuple[bytes, bytes]]:
    """Drop excluded headers, keeping order and repeated values."""
    excluded = {name.lower().encode("latin-1") for name in excludes}
    return [(name, value) for name, value in headers if name.lower() not in excluded]


class ReverseProxyService:
    """Forwards requests to ``base_url`` and returns the upstream response.

    Multi-value response headers such as ``Set-Cookie`` are preserved.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        strip_request_headers: Iterable[str] = (),
        strip_query_params: Iterable[str] = (),
    ):
        """Initialize the reverse proxy service.

        Args:
            client: HTTP client used for upstream requests
            base_url: Base URL of the upstream service
            strip_request_headers: Extra request headers not forwarded upstream
            strip_query_params: Query parameters not forwarded upstream
        """
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.request_excludes = EXCLUDED_REQUEST_HEADERS | {
            h.lower() for h in strip_request_headers
        }
        self.strip_query_params = set(strip_query_params)

    def build_url(self, request: Request) -> str:
        """Upstream URL for an inbound request."""
        url = f"{self.base_url}{request.url.path}"
        params = [
            (key, value)
            for key, value in request.query_params.multi_items()
            if key not in self.strip_query_params
        ]
        if params:
            url = f"{url}?{httpx.QueryParams(params)}"
        return url

    async def forward(self, request: Request) -> Response:
        """Proxy one request.

        Raises:
            UpstreamTimeoutError: If the upstream does not answer in time
            UpstreamConnectionError: If the upstream cannot be reached
        """
        url = self.build_url(request)
        headers = filter_headers(request.headers.raw, self.request_excludes)
        headers.append((b"accept-encoding", b"identity"))
        body = await request.body()

        logger.debug(
            "upstream_request",
            method=request.method,
            url=url,
            body_size=len(body),
        )

        try:
            upstream_response = await self.client.request(
                request.method,
                url,
                headers=headers,
                content=body or None,
            )
        except httpx.TimeoutException as e:
            logger.warning("upstream_timeout", url=url, error=str(e))
            raise UpstreamTimeoutError(f"Upstream timed out: {url}") from e
        except httpx.TransportError as e:
            logger.warning("upstream_connection_failed", url=url, error=str(e))
            raise UpstreamConnectionError(f"Upstream unreachable: {url}") from e

        logger.debug(
            "upstream_response",
            url=url,
            status_code=upstream_response.status_code,
            body_size=len(upstream_response.content),
        )

        response = Response(
            content=upstream_response.content,
            status_code=upstream_response.status_code,
        )
        response_headers = filter_headers(
            upstream_response.headers.raw, EXCLUDED_RESPONSE_HEADERS
        )
        if _has_body(upstream_response.status_code):
            content_length = str(len(upstream_response.content)).encode("latin-1")
            response_headers.append((b"content-length", content_length))
        response.raw_headers = response_headers
        return response
