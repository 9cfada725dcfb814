"""Settings for JSONPath response filtering."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator


DEFAULT_HEADER_NAME = "X-JsonPath"
DEFAULT_QUERY_PARAM_NAME = "jsonpath_filter"


class FilterSettings(BaseModel):
    """Where the filter query comes from and which results are accepted.

    Only one selector is active per deployment: either the request header
    named by ``header_name`` or the URL query parameter ``query_param_name``.
    """

    selector: Literal["header", "query_param"] = Field(
        default="header",
        description="Where to read the JSONPath query: 'header' or 'query_param'",
    )

    header_name: str = Field(
        default=DEFAULT_HEADER_NAME,
        description="Request header carrying the JSONPath query (header selector only)",
    )

    query_param_name: str = Field(
        default=DEFAULT_QUERY_PARAM_NAME,
        description="URL query parameter carrying the JSONPath query (query_param selector only)",
    )

    object_results_only: bool = Field(
        default=True,
        description="Reject query results that are not JSON objects (arrays and scalars answer 400)",
    )

    exclude_paths: list[str] = Field(
        default_factory=lambda: ["/health"],
        description="Path prefixes that bypass response capture entirely",
    )

    @field_validator("header_name", "query_param_name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Selector name must not be empty")
        return v
