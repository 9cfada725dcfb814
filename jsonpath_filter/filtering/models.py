"""Request-scoped data passed between capture, decision and replay."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeAlias


class SelectorSource(str, Enum):
    """Where the filter query of a request came from."""

    NONE = "none"
    HEADER = "header"
    QUERY_PARAM = "query_param"


class ErrorKind(str, Enum):
    """Failure kinds of the filtering pipeline."""

    DECODE_FAILURE = "decode_failure"
    QUERY_FAILURE = "query_failure"
    SHAPE_MISMATCH = "shape_mismatch"
    WRITE_FAILURE = "write_failure"


@dataclass(frozen=True)
class FilterRequest:
    """The JSONPath query supplied with one inbound request, if any."""

    query: str | None = None
    source: SelectorSource = SelectorSource.NONE

    @classmethod
    def none(cls) -> "FilterRequest":
        return cls()

    @property
    def has_query(self) -> bool:
        return bool(self.query)


@dataclass
class CapturedResponse:
    """Status, headers and body an origin handler produced for one request.

    Headers are kept as the raw ``(name, value)`` byte pairs of the ASGI
    message, in order, so repeated headers such as ``Set-Cookie`` survive.
    """

    status_code: int = 200
    headers: list[tuple[bytes, bytes]] = field(default_factory=list)
    body: bytes = b""
    header_committed: bool = False

    def get_header(self, name: str) -> str | None:
        """Return the first value of a header (case-insensitive), or None."""
        values = self.get_all(name)
        return values[0] if values else None

    def get_all(self, name: str) -> list[str]:
        """Return every value of a header (case-insensitive), in order."""
        key = name.lower().encode("latin-1")
        return [
            value.decode("latin-1")
            for header_name, value in self.headers
            if header_name.lower() == key
        ]


@dataclass(frozen=True)
class Passthrough:
    """Emit the captured response unchanged."""

    body: bytes


@dataclass(frozen=True)
class Filtered:
    """Replace the body with the JSON encoding of ``value``."""

    value: Any


@dataclass(frozen=True)
class FilterError:
    """Filtering failed; the client gets an error response instead."""

    kind: ErrorKind
    message: str


FilterOutcome: TypeAlias = Passthrough | Filtered | FilterError
