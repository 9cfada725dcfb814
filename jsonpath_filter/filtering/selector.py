"""Extract the JSONPath query from an inbound request."""

from typing import Protocol, runtime_checkable

from starlette.requests import HTTPConnection

from jsonpath_filter.config.filter import (
    DEFAULT_HEADER_NAME,
    DEFAULT_QUERY_PARAM_NAME,
    FilterSettings,
)

from .models import FilterRequest, SelectorSource


@runtime_checkable
class QuerySelector(Protocol):
    """Reads the filter query from one request."""

    def extract_query(self, connection: HTTPConnection) -> FilterRequest:
        """Return the request's filter query, or an empty FilterRequest."""
        ...


class HeaderQuerySelector:
    """Reads the query from a request header (default ``X-JsonPath``)."""

    def __init__(self, header_name: str = DEFAULT_HEADER_NAME):
        self.header_name = header_name

    def extract_query(self, connection: HTTPConnection) -> FilterRequest:
        return _build_request(
            connection.headers.get(self.header_name), SelectorSource.HEADER
        )

    def __repr__(self) -> str:
        return f"HeaderQuerySelector(header_name={self.header_name!r})"


class QueryParamSelector:
    """Reads the query from a URL query parameter (default ``jsonpath_filter``)."""

    def __init__(self, param_name: str = DEFAULT_QUERY_PARAM_NAME):
        self.param_name = param_name

    def extract_query(self, connection: HTTPConnection) -> FilterRequest:
        return _build_request(
            connection.query_params.get(self.param_name), SelectorSource.QUERY_PARAM
        )

    def __repr__(self) -> str:
        return f"QueryParamSelector(param_name={self.param_name!r})"


def build_selector(settings: FilterSettings) -> QuerySelector:
    """Create the single selector configured for this deployment."""
    if settings.selector == "query_param":
        return QueryParamSelector(settings.query_param_name)
    return HeaderQuerySelector(settings.header_name)


def _build_request(raw: str | None, source: SelectorSource) -> FilterRequest:
    if raw is None or not raw.strip():
        return FilterRequest.none()
    return FilterRequest(query=raw.strip(), source=source)
