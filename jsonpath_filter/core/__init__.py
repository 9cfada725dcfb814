"""Core infrastructure: logging, errors and the shared HTTP client."""

from jsonpath_filter import __version__


__all__ = ["__version__"]
