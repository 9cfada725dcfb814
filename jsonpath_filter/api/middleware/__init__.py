"""ASGI middleware and error handlers."""

from .errors import setup_error_handlers
from .jsonpath_filter import JSONPathFilterMiddleware


__all__ = ["JSONPathFilterMiddleware", "setup_error_handlers"]
