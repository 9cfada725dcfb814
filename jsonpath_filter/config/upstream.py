"""Upstream (origin service) configuration settings."""

from pydantic import BaseModel, Field, field_validator


class UpstreamSettings(BaseModel):
    """Where proxied requests are forwarded and how long to wait for them."""

    base_url: str | None = Field(
        default=None,
        description="Base URL of the upstream service. When unset no proxy route is mounted",
    )

    timeout_connect: float = Field(
        default=5.0,
        description="Connect timeout in seconds",
        gt=0,
    )

    timeout_read: float = Field(
        default=60.0,
        description="Read timeout in seconds",
        gt=0,
    )

    verify_ssl: bool = Field(
        default=True,
        description="Verify upstream TLS certificates",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Upstream base URL must be http(s): {v}")
        return v.rstrip("/")
