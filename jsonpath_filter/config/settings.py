import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from jsonpath_filter.core.errors import ConfigurationError
from jsonpath_filter.core.logging import get_logger

from .filter import FilterSettings
from .logging import LoggingSettings
from .server import ServerSettings
from .upstream import UpstreamSettings


__all__ = ["Settings", "ConfigurationError", "get_settings", "find_toml_config_file"]


CONFIG_FILE_NAME = "jsonpath-filter.toml"

# Sections whose keys are merged one by one so env vars can override single keys
_NESTED_SECTIONS = ("server", "logging", "filter", "upstream")


def find_toml_config_file() -> Path | None:
    """Find the first TOML config file in the standard locations.

    Search order:
    1. ./jsonpath-filter.toml
    2. $XDG_CONFIG_HOME/jsonpath-filter/config.toml
    """
    candidates = [Path.cwd() / CONFIG_FILE_NAME]

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    config_home = Path(xdg_config) if xdg_config else Path.home() / ".config"
    candidates.append(config_home / "jsonpath-filter" / "config.toml")

    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


class Settings(BaseSettings):
    """
    Configuration settings for the JSONPath filter service.

    Settings are loaded from environment variables, .env files, and TOML configuration files.
    Environment variables take precedence over TOML values; nested keys use a
    double underscore, e.g. ``FILTER__HEADER_NAME=X-Query``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    server: ServerSettings = Field(
        default_factory=ServerSettings,
        description="Server configuration settings",
    )

    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration",
    )

    filter: FilterSettings = Field(
        default_factory=FilterSettings,
        description="JSONPath filter configuration",
    )

    upstream: UpstreamSettings = Field(
        default_factory=UpstreamSettings,
        description="Upstream service configuration",
    )

    @property
    def server_url(self) -> str:
        """Get the complete server URL."""
        return f"http://{self.server.host}:{self.server.port}"

    @property
    def json_logs(self) -> bool:
        """Whether logs should be rendered as JSON."""
        if self.logging.format == "auto":
            return not os.isatty(2)
        return self.logging.format == "json"

    @classmethod
    def load_toml_config(cls, toml_path: Path) -> dict[str, Any]:
        """Load configuration from a TOML file."""
        try:
            with toml_path.open("rb") as f:
                return tomllib.load(f)
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read TOML config file {toml_path}: {e}"
            ) from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML syntax in {toml_path}: {e}") from e

    @classmethod
    def from_config(
        cls,
        config_path: Path | str | None = None,
        cli_overrides: dict[str, dict[str, Any]] | None = None,
    ) -> "Settings":
        """Create Settings from a config file, env vars and CLI overrides.

        Precedence, highest first: CLI overrides, environment variables,
        TOML file, defaults.
        """
        if config_path is None:
            config_path_env = os.environ.get("CONFIG_FILE")
            if config_path_env:
                config_path = Path(config_path_env)

        if isinstance(config_path, str):
            config_path = Path(config_path)

        if config_path is None:
            config_path = find_toml_config_file()
        elif not config_path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")

        config_data: dict[str, Any] = {}
        if config_path is not None:
            config_data = cls.load_toml_config(config_path)
            get_logger(__name__).info(
                "config_file_loaded", path=str(config_path), category="config"
            )

        try:
            settings = cls()
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment configuration: {e}") from e

        merged: dict[str, dict[str, Any]] = {}
        for section, values in config_data.items():
            if section not in _NESTED_SECTIONS:
                get_logger(__name__).warning(
                    "config_unknown_section", section=section, category="config"
                )
                continue
            if not isinstance(values, dict):
                raise ConfigurationError(f"Config section [{section}] must be a table")
            # Keys already set from env vars or .env keep their value
            env_keys = getattr(settings, section).model_fields_set
            for key, value in values.items():
                if key not in env_keys:
                    merged.setdefault(section, {})[key] = value

        for section, values in (cli_overrides or {}).items():
            explicit = {k: v for k, v in values.items() if v is not None}
            if explicit:
                merged.setdefault(section, {}).update(explicit)

        if not merged:
            return settings

        data = settings.model_dump()
        for section, values in merged.items():
            data[section].update(values)
        try:
            return cls._from_dict(data)
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Settings":
        # Validate nested sections directly so env vars are not re-read
        return cls.model_construct(
            server=ServerSettings.model_validate(data["server"]),
            logging=LoggingSettings.model_validate(data["logging"]),
            filter=FilterSettings.model_validate(data["filter"]),
            upstream=UpstreamSettings.model_validate(data["upstream"]),
        )

    def model_dump_safe(self) -> dict[str, Any]:
        """Dump settings as JSON-compatible data."""
        return self.model_dump(mode="json")


@lru_cache
def get_settings() -> Settings:
    """Get the process-wide settings, loaded once."""
    return Settings.from_config()
