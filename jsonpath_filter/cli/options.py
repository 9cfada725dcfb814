"""Validation callbacks for CLI options."""

import typer


def validate_port(
    ctx: typer.Context, param: typer.CallbackParam, value: int | None
) -> int | None:
    """Validate port number."""
    if value is None:
        return None

    if value < 1 or value > 65535:
        raise typer.BadParameter("Port must be between 1 and 65535")

    return value


def validate_log_level(
    ctx: typer.Context, param: typer.CallbackParam, value: str | None
) -> str | None:
    """Validate log level."""
    if value is None:
        return None

    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if value.upper() not in valid_levels:
        raise typer.BadParameter(f"Log level must be one of: {', '.join(valid_levels)}")

    return value.upper()


def validate_selector(
    ctx: typer.Context, param: typer.CallbackParam, value: str | None
) -> str | None:
    """Validate the filter selector mode."""
    if value is None:
        return None

    normalized = value.lower().replace("-", "_")
    if normalized not in ("header", "query_param"):
        raise typer.BadParameter("Selector must be 'header' or 'query-param'")

    return normalized
