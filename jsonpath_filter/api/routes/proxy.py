"""Catch-all route forwarding every request to the upstream service."""

from fastapi import APIRouter, Request, Response

from jsonpath_filter.services.reverse_proxy import ReverseProxyService


router = APIRouter()

PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def get_proxy_service(request: Request) -> ReverseProxyService:
    return request.app.state.proxy_service


@router.api_route("/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
async def proxy(request: Request, path: str) -> Response:
    """Forward the request upstream; the filter middleware shapes the response."""
    return await get_proxy_service(request).forward(request)
