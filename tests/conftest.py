"""Shared test fixtures for the JSONPath filter tests.

Origins are tiny raw ASGI apps so every byte, header and status the
middleware sees is under the test's control.
"""

import os
from collections.abc import AsyncGenerator, Callable, Generator, Iterable
from pathlib import Path

import httpx
import pytest
from starlette.types import ASGIApp, Receive, Scope, Send

from jsonpath_filter.config.filter import FilterSettings
from jsonpath_filter.core.logging import setup_logging


def pytest_configure(config: pytest.Config) -> None:
    """Use the application logging pipeline in tests."""
    setup_logging(json_logs=False, log_level_name="DEBUG")


OriginFactory = Callable[..., ASGIApp]


def make_origin(
    body: bytes = b"",
    *,
    content_type: str | None = "application/json",
    status: int = 200,
    headers: Iterable[tuple[str, str]] = (),
    chunks: list[bytes] | None = None,
) -> ASGIApp:
    """Build an ASGI app that always sends the given response."""
    raw_headers: list[tuple[bytes, bytes]] = []
    if content_type is not None:
        raw_headers.append((b"content-type", content_type.encode("latin-1")))
    for name, value in headers:
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))

    parts = chunks if chunks is not None else [body]
    total = sum(len(part) for part in parts)
    if not any(name == b"content-length" for name, _ in raw_headers):
        raw_headers.append((b"content-length", str(total).encode("latin-1")))

    async def origin(scope: Scope, receive: Receive, send: Send) -> None:
        await send(
            {"type": "http.response.start", "status": status, "headers": raw_headers}
        )
        for index, part in enumerate(parts):
            await send(
                {
                    "type": "http.response.body",
                    "body": part,
                    "more_body": index < len(parts) - 1,
                }
            )

    return origin


@pytest.fixture
def origin_factory() -> OriginFactory:
    """Factory for fixed-response ASGI origins."""
    return make_origin


@pytest.fixture
def filter_settings() -> FilterSettings:
    """Default header-driven filter settings."""
    return FilterSettings()


@pytest.fixture
def asgi_client() -> Callable[[ASGIApp], httpx.AsyncClient]:
    """Build an in-process httpx client for an ASGI app."""

    def _client(app: ASGIApp) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://testserver"
        )

    return _client


@pytest.fixture
def isolated_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[Path, None, None]:
    """Run in an empty working directory with no service env vars set.

    Restores ``os.environ`` afterwards, including keys written directly.
    """
    saved = os.environ.copy()
    for key in list(os.environ):
        if key == "CONFIG_FILE" or key.upper().startswith(
            ("SERVER__", "LOGGING__", "FILTER__", "UPSTREAM__")
        ):
            monkeypatch.delenv(key)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.chdir(tmp_path)
    try:
        yield tmp_path
    finally:
        os.environ.clear()
        os.environ.update(saved)


@pytest.fixture
async def recorded_send() -> AsyncGenerator[tuple[list[dict], Send], None]:
    """A ``send`` callable that records every message."""
    messages: list[dict] = []

    async def send(message: dict) -> None:
        messages.append(message)

    yield messages, send
