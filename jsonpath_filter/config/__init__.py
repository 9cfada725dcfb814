"""Configuration module for the JSONPath filter service."""

from .filter import FilterSettings
from .logging import LoggingSettings
from .server import ServerSettings
from .settings import ConfigurationError, Settings, get_settings
from .upstream import UpstreamSettings


__all__ = [
    "ConfigurationError",
    "FilterSettings",
    "LoggingSettings",
    "ServerSettings",
    "Settings",
    "UpstreamSettings",
    "get_settings",
]
