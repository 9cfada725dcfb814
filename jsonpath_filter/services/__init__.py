"""Services used by the HTTP application."""

from .reverse_proxy import ReverseProxyService


__all__ = ["ReverseProxyService"]
