"""Response capture sink standing in for the ASGI ``send`` callable.

The origin application writes into the sink exactly as it would write to the
client. Nothing reaches the client; the captured status, headers and body are
handed to the decider once the origin has finished.
"""

from enum import Enum

from starlette.types import Message

from jsonpath_filter.core.errors import CaptureError
from jsonpath_filter.core.logging import get_logger

from .models import CapturedResponse


logger = get_logger(__name__)


class CaptureState(str, Enum):
    """Write-once lifecycle of a captured response."""

    IDLE = "idle"
    HEADERS_SET = "headers_set"
    BODY_STARTED = "body_started"
    COMPLETE = "complete"


class ResponseCaptureSink:
    """Buffers one response instead of sending it.

    Mirrors the transport contract: headers are mutable until the status is
    set, the first status wins, a body write before any status commits 200,
    and body bytes are appended verbatim.
    """

    def __init__(self) -> None:
        self.state = CaptureState.IDLE
        self._status_code = 200
        self._headers: list[tuple[bytes, bytes]] = []
        self._body = bytearray()
        self._header_committed = False

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def headers(self) -> list[tuple[bytes, bytes]]:
        return list(self._headers)

    @property
    def body(self) -> bytes:
        return bytes(self._body)

    @property
    def header_committed(self) -> bool:
        return self._header_committed

    @property
    def is_complete(self) -> bool:
        return self.state is CaptureState.COMPLETE

    def add_header(self, name: str | bytes, value: str | bytes) -> None:
        """Append a header value, keeping earlier values of the same name."""
        if self._headers_locked("add_header", name):
            return
        self._headers.append((_to_bytes(name), _to_bytes(value)))

    def set_header(self, name: str | bytes, value: str | bytes) -> None:
        """Replace every value of a header with a single value."""
        if self._headers_locked("set_header", name):
            return
        key = _to_bytes(name)
        self._headers = [(n, v) for n, v in self._headers if n.lower() != key.lower()]
        self._headers.append((key, _to_bytes(value)))

    def set_status(self, status_code: int) -> None:
        """Set the status and commit the headers. Only the first call counts."""
        if self._header_committed:
            logger.debug(
                "capture_status_ignored",
                status_code=status_code,
                committed_status=self._status_code,
            )
            return
        self._status_code = status_code
        self._header_committed = True
        self.state = CaptureState.HEADERS_SET

    def write(self, data: bytes) -> None:
        """Append body bytes, committing status 200 if none was set."""
        if self.state is CaptureState.COMPLETE:
            raise CaptureError("Response body written after the response completed")
        if not self._header_committed:
            self.set_status(200)
        if data:
            self._body.extend(data)
        self.state = CaptureState.BODY_STARTED

    def finish(self) -> None:
        """Mark the response as fully written."""
        if not self._header_committed:
            self.set_status(200)
        self.state = CaptureState.COMPLETE

    async def __call__(self, message: Message) -> None:
        """ASGI ``send`` interface."""
        message_type = message["type"]

        if message_type == "http.response.start":
            if self._header_committed:
                raise CaptureError("http.response.start sent twice")
            for name, value in message.get("headers", []):
                self.add_header(name, value)
            self.set_status(int(message["status"]))

        elif message_type == "http.response.body":
            self.write(message.get("body", b""))
            if not message.get("more_body", False):
                self.finish()

        else:
            logger.debug("capture_message_ignored", message_type=message_type)

    def captured(self) -> CapturedResponse:
        """Snapshot of everything written so far."""
        return CapturedResponse(
            status_code=self._status_code,
            headers=list(self._headers),
            body=bytes(self._body),
            header_committed=self._header_committed,
        )

    def _headers_locked(self, operation: str, name: str | bytes) -> bool:
        if self.state is CaptureState.IDLE:
            return False
        logger.debug(
            "capture_header_ignored",
            operation=operation,
            header=name.decode("latin-1") if isinstance(name, bytes) else name,
            state=self.state.value,
        )
        return True


def _to_bytes(value: str | bytes) -> bytes:
    return value if isinstance(value, bytes) else value.encode("latin-1")
