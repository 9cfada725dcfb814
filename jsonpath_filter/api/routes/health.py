"""Health check endpoint."""

from typing import Any

from fastapi import APIRouter, Request, Response

from jsonpath_filter import __version__
from jsonpath_filter.core.logging import get_logger


router = APIRouter()
logger = get_logger(__name__)


@router.get("/health")
async def health_check(request: Request, response: Response) -> dict[str, Any]:
    """Liveness and configuration summary.

    Returns:
        Health status following the IETF health check format
    """
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"

    logger.debug("health_check_request")

    settings = request.app.state.settings
    return {
        "status": "pass",
        "version": __version__,
        "checks": {
            "filter": {
                "selector": settings.filter.selector,
                "header_name": settings.filter.header_name,
                "query_param_name": settings.filter.query_param_name,
            },
            "upstream": {"configured": settings.upstream.base_url is not None},
        },
    }
