"""Error handlers rendering service exceptions as JSON error responses."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from jsonpath_filter.core.errors import JSONPathFilterError
from jsonpath_filter.core.logging import get_logger


logger = get_logger(__name__)


def setup_error_handlers(app: FastAPI) -> None:
    """Register the JSON error handler for JSONPathFilterError subclasses.

    Args:
        app: FastAPI application instance
    """

    async def service_error_handler(request: Request, exc: Exception) -> JSONResponse:
        status_code = getattr(exc, "status_code", 500)
        error_type = getattr(exc, "error_type", "internal_error")

        logger.error(
            f"{error_type.replace('_', ' ').title()}",
            error_type=error_type,
            error_message=str(exc),
            status_code=status_code,
            request_method=request.method,
            request_url=str(request.url.path),
        )

        if isinstance(exc, JSONPathFilterError):
            content = exc.to_dict()
        else:
            content = {"error": {"type": error_type, "message": str(exc)}}
        return JSONResponse(status_code=status_code, content=content)

    app.add_exception_handler(JSONPathFilterError, service_error_handler)
    logger.debug("error_handlers_setup_completed")
