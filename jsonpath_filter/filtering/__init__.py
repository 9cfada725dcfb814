"""Response capture, JSONPath filtering and replay."""

from .capture import CaptureState, ResponseCaptureSink
from .decider import TransformationDecider, is_json_content_type
from .evaluator import evaluate
from .models import (
    CapturedResponse,
    ErrorKind,
    Filtered,
    FilterError,
    FilterOutcome,
    FilterRequest,
    Passthrough,
    SelectorSource,
)
from .replayer import ResponseReplayer
from .selector import (
    HeaderQuerySelector,
    QueryParamSelector,
    QuerySelector,
    build_selector,
)


__all__ = [
    # Pipeline
    "ResponseCaptureSink",
    "CaptureState",
    "TransformationDecider",
    "ResponseReplayer",
    "evaluate",
    "is_json_content_type",
    # Selectors
    "QuerySelector",
    "HeaderQuerySelector",
    "QueryParamSelector",
    "build_selector",
    # Models
    "CapturedResponse",
    "FilterRequest",
    "FilterOutcome",
    "Passthrough",
    "Filtered",
    "FilterError",
    "ErrorKind",
    "SelectorSource",
]
