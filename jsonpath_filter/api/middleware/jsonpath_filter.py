"""JSONPath filter middleware: capture, decide, replay."""

from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Receive, Scope, Send

from jsonpath_filter.config.filter import FilterSettings
from jsonpath_filter.core.errors import CaptureError
from jsonpath_filter.core.logging import get_logger
from jsonpath_filter.filtering.capture import ResponseCaptureSink
from jsonpath_filter.filtering.decider import TransformationDecider
from jsonpath_filter.filtering.evaluator import QueryEvaluator, evaluate
from jsonpath_filter.filtering.models import FilterError
from jsonpath_filter.filtering.replayer import ResponseReplayer
from jsonpath_filter.filtering.selector import QuerySelector, build_selector


logger = get_logger(__name__)


class JSONPathFilterMiddleware:
    """Replace JSON response bodies with the result of a JSONPath query.

    The wrapped application writes into a capture sink instead of the real
    ``send``. Once it returns, the captured response is passed through
    verbatim, re-encoded, filtered, or answered with a JSON error, and then
    written to the client in one go.
    """

    def __init__(
        self,
        app: ASGIApp,
        settings: FilterSettings | None = None,
        selector: QuerySelector | None = None,
        evaluator: QueryEvaluator = evaluate,
    ):
        """Initialize the filter middleware.

        Args:
            app: The ASGI application producing the original responses
            settings: Filter settings; defaults are used when omitted
            selector: Overrides the selector built from ``settings``
            evaluator: Query evaluator, ``evaluate`` unless replaced in tests
        """
        self.app = app
        self.settings = settings or FilterSettings()
        self.selector = selector or build_selector(self.settings)
        self.decider = TransformationDecider(
            evaluator=evaluator,
            object_results_only=self.settings.object_results_only,
        )
        self.replayer = ResponseReplayer()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI application entrypoint."""
        if scope["type"] != "http" or self._bypass(scope):
            await self.app(scope, receive, send)
            return

        filter_request = self.selector.extract_query(HTTPConnection(scope))

        sink = ResponseCaptureSink()
        # Origin errors and cancellation propagate; nothing is replayed
        await self.app(scope, receive, sink)

        if not sink.header_committed:
            raise CaptureError("Application returned without sending a response")

        captured = sink.captured()
        outcome = self.decider.decide(captured, filter_request)

        logger.debug(
            "jsonpath_filter_applied",
            path=scope.get("path"),
            outcome=type(outcome).__name__.lower(),
            error_kind=outcome.kind.value if isinstance(outcome, FilterError) else None,
            query_source=filter_request.source.value,
            status_code=captured.status_code,
            original_size=len(captured.body),
        )

        await self.replayer.replay(captured, outcome, send)

    def _bypass(self, scope: Scope) -> bool:
        if scope.get("method") == "HEAD":
            return True
        path: str = scope.get("path", "")
        return any(
            _matches_prefix(path, prefix) for prefix in self.settings.exclude_paths
        )


def _matches_prefix(path: str, prefix: str) -> bool:
    """``/health`` matches ``/health`` and ``/health/live`` but not ``/healthy``."""
    prefix = prefix.rstrip("/")
    return path == prefix or path.startswith(prefix + "/")
