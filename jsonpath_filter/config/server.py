"""Server configuration settings."""

from pydantic import BaseModel, Field


class ServerSettings(BaseModel):
    """Server-specific configuration settings."""

    host: str = Field(
        default="127.0.0.1",
        description="Server host address",
    )

    port: int = Field(
        default=8000,
        description="Server port number",
        ge=1,
        le=65535,
    )

    reload: bool = Field(
        default=False,
        description="Enable auto-reload for development",
    )
