"""Write the final response to the real ASGI ``send`` exactly once."""

import json
from typing import Any

from starlette.types import Send

from jsonpath_filter.core.logging import get_logger

from .models import (
    CapturedResponse,
    ErrorKind,
    Filtered,
    FilterError,
    FilterOutcome,
    Passthrough,
)


logger = get_logger(__name__)

# Status codes of client-visible filter errors
ERROR_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.DECODE_FAILURE: 502,
    ErrorKind.QUERY_FAILURE: 400,
    ErrorKind.SHAPE_MISMATCH: 400,
}

# Dropped or replaced when the body is re-encoded
_REWRITTEN_HEADERS = {b"content-length", b"content-type", b"content-encoding"}


def encode_json(value: Any) -> bytes:
    """Compact UTF-8 JSON encoding of a filtered value.

    Raises:
        ValueError: If the value holds NaN or an infinity
    """
    return json.dumps(
        value, ensure_ascii=False, separators=(",", ":"), allow_nan=False
    ).encode("utf-8")


def error_body(kind: ErrorKind, message: str) -> dict[str, Any]:
    return {"error": {"type": kind.value, "message": message}}


def rewrite_json_headers(
    headers: list[tuple[bytes, bytes]], body: bytes
) -> list[tuple[bytes, bytes]]:
    """Drop stale framing headers and describe the new JSON body."""
    rewritten = [
        (name, value)
        for name, value in headers
        if name.lower() not in _REWRITTEN_HEADERS
    ]
    rewritten.append((b"content-type", b"application/json"))
    rewritten.append((b"content-length", str(len(body)).encode("latin-1")))
    return rewritten


class ResponseReplayer:
    """Emits the captured or transformed response to the client."""

    def render(
        self, captured: CapturedResponse, outcome: FilterOutcome
    ) -> tuple[int, list[tuple[bytes, bytes]], bytes]:
        """Final ``(status, headers, body)`` for an outcome."""
        if isinstance(outcome, Passthrough):
            return captured.status_code, list(captured.headers), outcome.body

        if isinstance(outcome, Filtered):
            try:
                body = encode_json(outcome.value)
            except (ValueError, RecursionError) as e:
                logger.warning("filter_encode_failed", error=str(e))
                outcome = FilterError(
                    ErrorKind.DECODE_FAILURE,
                    f"Filtered value cannot be encoded as JSON: {e}",
                )
            else:
                return (
                    captured.status_code,
                    rewrite_json_headers(captured.headers, body),
                    body,
                )

        if isinstance(outcome, FilterError):
            body = encode_json(error_body(outcome.kind, outcome.message))
            status_code = ERROR_STATUS_CODES.get(outcome.kind, 500)
        else:
            raise TypeError(f"Unknown filter outcome: {outcome!r}")

        return status_code, rewrite_json_headers(captured.headers, body), body

    async def replay(
        self, captured: CapturedResponse, outcome: FilterOutcome, send: Send
    ) -> None:
        """Send one ``http.response.start`` and one ``http.response.body``.

        Transport failures are logged and re-raised unchanged.
        """
        status_code, headers, body = self.render(captured, outcome)

        try:
            await send(
                {
                    "type": "http.response.start",
                    "status": status_code,
                    "headers": headers,
                }
            )
            await send({"type": "http.response.body", "body": body, "more_body": False})
        except OSError as e:
            logger.warning(
                "replay_write_failed",
                error_kind=ErrorKind.WRITE_FAILURE.value,
                error=str(e),
                status_code=status_code,
            )
            raise
