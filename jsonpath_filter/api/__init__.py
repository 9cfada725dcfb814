"""HTTP application for the JSONPath filter service."""

from .app import create_app


__all__ = ["create_app"]
