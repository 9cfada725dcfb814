"""Tests for the transformation decider."""

from typing import Any

import pytest

from jsonpath_filter.core.errors import QueryEvaluationError
from jsonpath_filter.filtering.decider import (
    TransformationDecider,
    is_json_content_type,
    json_type_name,
)
from jsonpath_filter.filtering.models import (
    CapturedResponse,
    ErrorKind,
    Filtered,
    FilterError,
    FilterRequest,
    Passthrough,
    SelectorSource,
)


def captured(
    body: bytes, content_type: str | None = "application/json", status: int = 200
) -> CapturedResponse:
    headers = []
    if content_type is not None:
        headers.append((b"content-type", content_type.encode()))
    return CapturedResponse(
        status_code=status, headers=headers, body=body, header_committed=True
    )


def query(value: str) -> FilterRequest:
    return FilterRequest(query=value, source=SelectorSource.HEADER)


@pytest.fixture
def decider() -> TransformationDecider:
    return TransformationDecider()


@pytest.mark.parametrize(
    ("content_type", "expected"),
    [
        ("application/json", True),
        ("application/json; charset=utf-8", True),
        ("Application/JSON", True),
        ("application/vnd.api+json", False),
        ("text/plain", False),
        (None, False),
    ],
)
def test_is_json_content_type(content_type: str | None, expected: bool) -> None:
    assert is_json_content_type(content_type) is expected


def test_sub_object_query_is_filtered(decider: TransformationDecider) -> None:
    outcome = decider.decide(captured(b'{"a":1,"b":{"c":2}}'), query("$.b"))

    assert outcome == Filtered({"c": 2})


def test_non_json_content_type_passes_through(decider: TransformationDecider) -> None:
    outcome = decider.decide(captured(b'{"a":1}', "text/plain"), query("$.a"))

    assert outcome == Passthrough(b'{"a":1}')


def test_missing_content_type_passes_through(decider: TransformationDecider) -> None:
    outcome = decider.decide(captured(b"not json", None), query("$.a"))

    assert isinstance(outcome, Passthrough)


def test_invalid_json_is_a_decode_failure(decider: TransformationDecider) -> None:
    outcome = decider.decide(captured(b"not json"), query("$.a"))

    assert isinstance(outcome, FilterError)
    assert outcome.kind is ErrorKind.DECODE_FAILURE


def test_invalid_json_without_query_is_a_decode_failure(
    decider: TransformationDecider,
) -> None:
    outcome = decider.decide(captured(b"{"), FilterRequest.none())

    assert isinstance(outcome, FilterError)
    assert outcome.kind is ErrorKind.DECODE_FAILURE


def test_invalid_utf8_is_a_decode_failure(decider: TransformationDecider) -> None:
    outcome = decider.decide(captured(b'{"a":"\xff"}'), FilterRequest.none())

    assert isinstance(outcome, FilterError)
    assert outcome.kind is ErrorKind.DECODE_FAILURE


def test_unmatched_query_is_a_query_failure(decider: TransformationDecider) -> None:
    outcome = decider.decide(captured(b'{"a":1}'), query("$.nonexistent"))

    assert isinstance(outcome, FilterError)
    assert outcome.kind is ErrorKind.QUERY_FAILURE


def test_malformed_query_is_a_query_failure(decider: TransformationDecider) -> None:
    outcome = decider.decide(captured(b'{"a":1}'), query("$.a["))

    assert isinstance(outcome, FilterError)
    assert outcome.kind is ErrorKind.QUERY_FAILURE


def test_no_query_returns_whole_document(decider: TransformationDecider) -> None:
    outcome = decider.decide(captured(b'{ "a" : 1 }'), FilterRequest.none())

    assert outcome == Filtered({"a": 1})


def test_no_query_accepts_array_documents(decider: TransformationDecider) -> None:
    outcome = decider.decide(captured(b"[1, 2]"), FilterRequest.none())

    assert outcome == Filtered([1, 2])


def test_utf8_bom_is_tolerated(decider: TransformationDecider) -> None:
    outcome = decider.decide(captured(b'\xef\xbb\xbf{"a":1}'), FilterRequest.none())

    assert outcome == Filtered({"a": 1})


@pytest.mark.parametrize(
    ("path", "type_name"),
    [("$.a", "number"), ("$.list", "array"), ("$.name", "string"), ("$.flag", "boolean")],
)
def test_non_object_result_is_a_shape_mismatch(
    decider: TransformationDecider, path: str, type_name: str
) -> None:
    body = b'{"a":1,"list":[1],"name":"n","flag":true}'

    outcome = decider.decide(captured(body), query(path))

    assert isinstance(outcome, FilterError)
    assert outcome.kind is ErrorKind.SHAPE_MISMATCH
    assert type_name in outcome.message


def test_permissive_policy_accepts_any_value() -> None:
    decider = TransformationDecider(object_results_only=False)
    body = b'{"a":1,"items":[{"id":1},{"id":2}]}'

    assert decider.decide(captured(body), query("$.a")) == Filtered(1)
    assert decider.decide(captured(body), query("$.items[*].id")) == Filtered([1, 2])


@pytest.mark.parametrize("status", [204, 304, 101])
def test_bodyless_statuses_pass_through(
    decider: TransformationDecider, status: int
) -> None:
    outcome = decider.decide(captured(b"", status=status), query("$.a"))

    assert outcome == Passthrough(b"")


def test_error_statuses_are_still_filtered(decider: TransformationDecider) -> None:
    body = b'{"error":{"code":42}}'

    outcome = decider.decide(captured(body, status=500), query("$.error"))

    assert outcome == Filtered({"code": 42})


def test_custom_evaluator_is_used() -> None:
    calls: list[tuple[Any, str]] = []

    def fake_evaluator(document: Any, query_string: str) -> Any:
        calls.append((document, query_string))
        return {"fake": True}

    decider = TransformationDecider(evaluator=fake_evaluator)

    outcome = decider.decide(captured(b'{"a":1}'), query("$.anything"))

    assert outcome == Filtered({"fake": True})
    assert calls == [({"a": 1}, "$.anything")]


def test_evaluator_errors_become_query_failures() -> None:
    def failing_evaluator(document: Any, query_string: str) -> Any:
        raise QueryEvaluationError("boom", query=query_string)

    decider = TransformationDecider(evaluator=failing_evaluator)

    outcome = decider.decide(captured(b'{"a":1}'), query("$.a"))

    assert outcome == FilterError(ErrorKind.QUERY_FAILURE, "boom")


def test_json_type_name() -> None:
    assert json_type_name({}) == "object"
    assert json_type_name(None) == "null"
    assert json_type_name(1.5) == "number"


@pytest.mark.parametrize("constant", [b"NaN", b"Infinity", b"-Infinity"])
def test_non_standard_constants_are_decode_failures(
    decider: TransformationDecider, constant: bytes
) -> None:
    outcome = decider.decide(captured(b'{"b":{"x":' + constant + b"}}"), query("$.b"))

    assert isinstance(outcome, FilterError)
    assert outcome.kind is ErrorKind.DECODE_FAILURE


def test_deeply_nested_body_is_a_decode_failure(
    decider: TransformationDecider,
) -> None:
    body = b"[" * 100_000 + b"]" * 100_000

    outcome = decider.decide(captured(body), query("$..x"))

    assert isinstance(outcome, FilterError)
    assert outcome.kind is ErrorKind.DECODE_FAILURE


def test_evaluator_recursion_is_a_query_failure() -> None:
    def runaway_evaluator(document: Any, query_string: str) -> Any:
        raise RecursionError("maximum recursion depth exceeded")

    decider = TransformationDecider(evaluator=runaway_evaluator)

    outcome = decider.decide(captured(b'{"a":1}'), query("$..a"))

    assert isinstance(outcome, FilterError)
    assert outcome.kind is ErrorKind.QUERY_FAILURE
