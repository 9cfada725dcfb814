"""Main entry point for the JSONPath filter service."""

import json
import os
from pathlib import Path
from typing import Annotated, Any

import typer
import uvicorn
from rich.console import Console
from rich.syntax import Syntax

from jsonpath_filter import __version__
from jsonpath_filter.config.settings import ConfigurationError, Settings
from jsonpath_filter.core.logging import get_logger, setup_logging

from .options import validate_log_level, validate_port, validate_selector


app = typer.Typer(
    rich_markup_mode="rich",
    add_completion=False,
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"jsonpath-filter {__version__}")
        raise typer.Exit()


ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to a TOML configuration file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        rich_help_panel="Configuration",
    ),
]


@app.callback()
def app_main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """JSONPath filter - reverse proxy that filters JSON responses with JSONPath."""


def build_cli_overrides(
    *,
    upstream: str | None = None,
    host: str | None = None,
    port: int | None = None,
    reload: bool | None = None,
    log_level: str | None = None,
    selector: str | None = None,
    header_name: str | None = None,
    query_param_name: str | None = None,
) -> dict[str, dict[str, Any]]:
    """Group CLI option values by settings section, dropping unset ones."""
    overrides: dict[str, dict[str, Any]] = {
        "server": {"host": host, "port": port, "reload": reload},
        "logging": {"level": log_level},
        "filter": {
            "selector": selector,
            "header_name": header_name,
            "query_param_name": query_param_name,
        },
        "upstream": {"base_url": upstream},
    }
    return {
        section: {k: v for k, v in values.items() if v is not None}
        for section, values in overrides.items()
        if any(v is not None for v in values.values())
    }


def export_overrides(
    config: Path | None, overrides: dict[str, dict[str, Any]]
) -> None:
    """Expose CLI choices as env vars so a reloading server process sees them."""
    if config is not None:
        os.environ["CONFIG_FILE"] = str(config)
    for section, values in overrides.items():
        for key, value in values.items():
            os.environ[f"{section.upper()}__{key.upper()}"] = str(value)


def load_settings(
    config: Path | None, overrides: dict[str, dict[str, Any]]
) -> Settings:
    try:
        return Settings.from_config(config_path=config, cli_overrides=overrides)
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        raise typer.Exit(1) from e


@app.command()
def serve(
    config: ConfigOption = None,
    upstream: Annotated[
        str | None,
        typer.Option(
            "--upstream",
            "-u",
            help="Base URL of the upstream service to proxy",
            rich_help_panel="Proxy Settings",
        ),
    ] = None,
    host: Annotated[
        str | None,
        typer.Option(
            "--host",
            "-h",
            help="Host to bind the server to",
            rich_help_panel="Server Settings",
        ),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option(
            "--port",
            "-p",
            help="Port to run the server on",
            callback=validate_port,
            rich_help_panel="Server Settings",
        ),
    ] = None,
    reload: Annotated[
        bool | None,
        typer.Option(
            "--reload/--no-reload",
            help="Enable auto-reload for development",
            rich_help_panel="Server Settings",
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
            callback=validate_log_level,
            rich_help_panel="Server Settings",
        ),
    ] = None,
    selector: Annotated[
        str | None,
        typer.Option(
            "--selector",
            help="Where the JSONPath query is read from: header or query-param",
            callback=validate_selector,
            rich_help_panel="Filter Settings",
        ),
    ] = None,
    header_name: Annotated[
        str | None,
        typer.Option(
            "--header-name",
            help="Request header carrying the JSONPath query",
            rich_help_panel="Filter Settings",
        ),
    ] = None,
    query_param_name: Annotated[
        str | None,
        typer.Option(
            "--query-param-name",
            help="URL query parameter carrying the JSONPath query",
            rich_help_panel="Filter Settings",
        ),
    ] = None,
) -> None:
    """Start the filtering reverse proxy."""
    overrides = build_cli_overrides(
        upstream=upstream,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
        selector=selector,
        header_name=header_name,
        query_param_name=query_param_name,
    )
    settings = load_settings(config, overrides)

    setup_logging(
        json_logs=settings.json_logs,
        log_level_name=settings.logging.level,
    )
    logger = get_logger(__name__)

    if not settings.upstream.base_url:
        logger.warning("serve_without_upstream", category="lifecycle")

    logger.info(
        "server_listening",
        url=settings.server_url,
        upstream=settings.upstream.base_url,
        selector=settings.filter.selector,
        category="lifecycle",
    )

    if settings.server.reload:
        export_overrides(config, overrides)
        uvicorn.run(
            "jsonpath_filter.api.app:create_app",
            factory=True,
            host=settings.server.host,
            port=settings.server.port,
            reload=True,
            reload_includes=["jsonpath_filter", "*.toml"],
            log_config=None,
        )
        return

    from jsonpath_filter.api.app import create_app

    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,
    )


@app.command("config")
def show_config(config: ConfigOption = None) -> None:
    """Show the effective configuration as JSON."""
    settings = load_settings(config, {})
    rendered = json.dumps(settings.model_dump_safe(), indent=2)
    console.print(Syntax(rendered, "json", theme="monokai", background_color="default"))


def main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()
