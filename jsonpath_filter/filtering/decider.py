"""Decide whether a captured response is passed through or filtered."""

import json
from typing import Any

from jsonpath_filter.core.errors import QueryEvaluationError
from jsonpath_filter.core.logging import get_logger

from .evaluator import QueryEvaluator, evaluate
from .models import (
    CapturedResponse,
    ErrorKind,
    Filtered,
    FilterError,
    FilterOutcome,
    FilterRequest,
    Passthrough,
)


logger = get_logger(__name__)

JSON_MEDIA_TYPE = "application/json"

# Responses that never carry a body
BODYLESS_STATUS_CODES = frozenset({204, 304})


def is_json_content_type(content_type: str | None) -> bool:
    """Substring match so ``application/json; charset=utf-8`` counts too."""
    return content_type is not None and JSON_MEDIA_TYPE in content_type.lower()


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not a valid JSON value")


def json_type_name(value: Any) -> str:
    """JSON name of a decoded value's type."""
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    if isinstance(value, str):
        return "string"
    if isinstance(value, bool):
        return "boolean"
    if value is None:
        return "null"
    return "number"


class TransformationDecider:
    """Turns a captured response and a filter request into a FilterOutcome.

    Shape policy: with ``object_results_only`` (the default) a query must
    select a JSON object, anything else is a SHAPE_MISMATCH. Without it any
    matched value is accepted. The policy only applies to query results; a
    request without a query always returns the whole document.
    """

    def __init__(
        self,
        evaluator: QueryEvaluator = evaluate,
        object_results_only: bool = True,
    ):
        self.evaluator = evaluator
        self.object_results_only = object_results_only

    def decide(
        self, captured: CapturedResponse, filter_request: FilterRequest
    ) -> FilterOutcome:
        if not is_json_content_type(captured.get_header("content-type")):
            return Passthrough(captured.body)

        if captured.status_code < 200 or captured.status_code in BODYLESS_STATUS_CODES:
            return Passthrough(captured.body)

        try:
            document = json.loads(
                captured.body.decode("utf-8-sig"), parse_constant=_reject_constant
            )
        except (ValueError, RecursionError) as e:
            logger.warning(
                "filter_decode_failed",
                error=str(e),
                body_size=len(captured.body),
            )
            return FilterError(
                ErrorKind.DECODE_FAILURE, f"Response body is not valid JSON: {e}"
            )

        if not filter_request.has_query:
            return Filtered(document)

        query = filter_request.query or ""
        try:
            result = self.evaluator(document, query)
        except QueryEvaluationError as e:
            logger.info("filter_query_failed", query=query, error=e.message)
            return FilterError(ErrorKind.QUERY_FAILURE, e.message)
        except RecursionError:
            message = f"JSONPath query {query!r} exceeded the document nesting limit"
            logger.info("filter_query_failed", query=query, error=message)
            return FilterError(ErrorKind.QUERY_FAILURE, message)

        if self.object_results_only and not isinstance(result, dict):
            message = (
                f"JSONPath query {query!r} selected a {json_type_name(result)}, "
                "expected an object"
            )
            logger.info("filter_shape_mismatch", query=query, error=message)
            return FilterError(ErrorKind.SHAPE_MISMATCH, message)

        return Filtered(result)
