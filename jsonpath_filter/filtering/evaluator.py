"""JSONPath evaluator -- resolves a query against a decoded JSON document.

Uses the extended ``jsonpath-ng`` grammar, so filter expressions such as
``$.items[?(@.price > 10)]`` are available.

Result shape:

* a definite path (``$``, ``$.a.b``, ``$.a[0]``) yields the matched value;
* any other path (wildcards, slices, unions, filters, ``..``) yields the
  list of matched values.

A query that matches nothing is an error, never an empty result.
"""

from functools import lru_cache
from typing import Any, Protocol

from jsonpath_ng import jsonpath
from jsonpath_ng.exceptions import JSONPathError
from jsonpath_ng.ext import parse

from jsonpath_filter.core.errors import QueryEvaluationError


class QueryEvaluator(Protocol):
    """Callable resolving a query against a document."""

    def __call__(self, document: Any, query: str) -> Any: ...


@lru_cache(maxsize=256)
def compile_query(query: str) -> jsonpath.JSONPath:
    """Parse a JSONPath expression, caching the parse tree per query string."""
    try:
        return parse(query)
    except (JSONPathError, ValueError) as e:
        raise QueryEvaluationError(
            f"Invalid JSONPath query {query!r}: {e}", query=query
        ) from e


def is_definite(expression: jsonpath.JSONPath) -> bool:
    """Whether a parsed path can select at most one value."""
    if isinstance(expression, (jsonpath.Root, jsonpath.This)):
        return True
    if isinstance(expression, jsonpath.Child):
        return is_definite(expression.left) and is_definite(expression.right)
    if isinstance(expression, jsonpath.Fields):
        return len(expression.fields) == 1 and expression.fields[0] != "*"
    if isinstance(expression, jsonpath.Index):
        indices = getattr(expression, "indices", None)
        return indices is None or len(indices) == 1
    return False


def evaluate(document: Any, query: str) -> Any:
    """Resolve ``query`` against ``document``.

    Raises:
        QueryEvaluationError: If the query is malformed or matches nothing
    """
    expression = compile_query(query)

    try:
        matches = expression.find(document)
    except (TypeError, ValueError, KeyError, AttributeError) as e:
        raise QueryEvaluationError(
            f"JSONPath query {query!r} failed: {e}", query=query
        ) from e

    if not matches:
        raise QueryEvaluationError(
            f"JSONPath query {query!r} matched nothing", query=query
        )

    if is_definite(expression):
        return matches[0].value
    return [match.value for match in matches]
