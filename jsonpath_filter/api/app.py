"""FastAPI application factory for the JSONPath filter service."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from jsonpath_filter import __version__
from jsonpath_filter.api.middleware.errors import setup_error_handlers
from jsonpath_filter.api.middleware.jsonpath_filter import JSONPathFilterMiddleware
from jsonpath_filter.api.routes.health import router as health_router
from jsonpath_filter.api.routes.proxy import router as proxy_router
from jsonpath_filter.config.settings import Settings, get_settings
from jsonpath_filter.core.http_client import HTTPClientFactory
from jsonpath_filter.core.logging import get_logger
from jsonpath_filter.services.reverse_proxy import ReverseProxyService


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log startup and close the upstream client on shutdown."""
    settings: Settings = app.state.settings
    logger.info(
        "server_starting",
        version=__version__,
        upstream=settings.upstream.base_url,
        selector=settings.filter.selector,
        category="lifecycle",
    )
    yield
    http_client: httpx.AsyncClient | None = getattr(app.state, "http_client", None)
    if http_client is not None:
        await http_client.aclose()
        logger.debug("http_client_closed", category="lifecycle")
    logger.info("server_stopped", category="lifecycle")


def _build_proxy_service(
    settings: Settings, http_client: httpx.AsyncClient
) -> ReverseProxyService:
    strip_headers: list[str] = []
    strip_params: list[str] = []
    if settings.filter.selector == "header":
        strip_headers.append(settings.filter.header_name)
    else:
        strip_params.append(settings.filter.query_param_name)

    return ReverseProxyService(
        client=http_client,
        base_url=settings.upstream.base_url or "",
        strip_request_headers=strip_headers,
        strip_query_params=strip_params,
    )


def create_app(
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Settings to use; the process-wide settings when omitted
        http_client: Upstream client override, mainly for tests

    Returns:
        Application with health route, proxy route (when an upstream is
        configured) and the JSONPath filter middleware installed
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="JSONPath Filter",
        description="Reverse proxy that filters JSON responses with JSONPath queries",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    setup_error_handlers(app)
    app.include_router(health_router)

    if settings.upstream.base_url:
        client = http_client or HTTPClientFactory.create_client(settings.upstream)
        app.state.http_client = client
        app.state.proxy_service = _build_proxy_service(settings, client)
        app.include_router(proxy_router)
    else:
        logger.warning("upstream_not_configured", category="lifecycle")

    app.add_middleware(JSONPathFilterMiddleware, settings=settings.filter)

    return app
