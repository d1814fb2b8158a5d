"""Waypoint exception hierarchy.

Shared across the registry, compiler, pipeline, and body aggregator so
every module raises, logs, and stores the same types.
"""


class WaypointError(Exception):
    """Base for all waypoint-specific errors."""


class ConfigurationError(WaypointError):
    """Raised when a registration call is malformed.

    Unlike ``RegistrationError`` this reaches the caller: it signals a
    programming mistake (wrong option type), not an unresolved pattern.
    """


class RegistrationError(WaypointError):
    """A route pattern references an unknown parameter.

    Never raised to the caller of ``Router.use()``. The router logs it on
    its diagnostics logger and leaves the route out of the pipeline.
    """

    def __init__(self, template: str, param_name: str, source: str | None = None) -> None:
        self.template = template
        self.param_name = param_name
        self.source = source
        detail = f"Route {template} does not have a matching REST parameter {param_name}"
        if source is not None:
            detail = f"{detail} (constraint {source!r})"
        super().__init__(detail)


class EvaluationError(WaypointError):
    """An evaluator or handler raised while a request was being dispatched.

    Aborts the rest of the pipeline. The original exception is kept as
    ``__cause__`` and ``original``.
    """

    def __init__(self, original: BaseException, template: str | None = None) -> None:
        self.original = original
        self.template = template
        where = f" in route {template}" if template else ""
        super().__init__(f"{type(original).__name__}{where}: {original}")


class BodyDecodeError(WaypointError):
    """A structured request body could not be decoded.

    Stored as ``context.body`` instead of being raised. Handlers check
    for it with ``isinstance(context.body, BodyDecodeError)``.
    """

    def __init__(self, content_type: str, original: BaseException) -> None:
        self.content_type = content_type
        self.original = original
        super().__init__(f"Could not decode {content_type!r} body: {original}")


class RequestTimedOut(WaypointError):
    """A matched route did not answer before its deadline.

    Synthesized by the timeout guard for logging only. Handlers never see
    it; clients see the forced 500 response.
    """

    def __init__(self, method: str, path: str, timeout: float) -> None:
        self.method = method
        self.path = path
        self.timeout = timeout
        super().__init__(f"{method} {path} timed out after {timeout:g}s")


class IncompleteBodyError(BodyDecodeError):
    """The request body stopped before its final chunk.

    The client disconnected or ``receive`` failed mid-body. Stored as
    ``context.body`` like any other decode failure, so a body-method
    handler sees it instead of a truncated payload.
    """

