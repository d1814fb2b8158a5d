"""Waypoint: an ordered, first-match HTTP request router for ASGI.

Routes are evaluated in registration order against method, path (or URL
fragment), and query constraints. The winning handler gets the matched
params and a fully assembled body.

Basic usage::

    from waypoint import Response, Router

    router = Router()
    router.param("id", r"\\d+")

    @router.get("/users/:id")
    def show_user(ctx):
        return Response(f"user {ctx.params['id']}")

    # uvicorn myapp:router
"""

__version__ = "0.1.0"
__all__ = [
    "BodyDecodeError",
    "ConfigurationError",
    "EvaluationError",
    "IncompleteBodyError",
    "RegistrationError",
    "RequestContext",
    "RequestTimedOut",
    "Response",
    "Router",
    "RouterConfig",
    "UploadFile",
    "WaypointError",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import waypoint`` fast while providing a clean top-level API.
    """
    if name == "Router":
        from waypoint.routing.router import Router

        return Router

    if name == "RouterConfig":
        from waypoint.config import RouterConfig

        return RouterConfig

    if name == "RequestContext":
        from waypoint.context import RequestContext

        return RequestContext

    if name == "Response":
        from waypoint.http.response import Response

        return Response

    if name == "UploadFile":
        from waypoint.http.forms import UploadFile

        return UploadFile

    if name in (
        "BodyDecodeError",
        "ConfigurationError",
        "EvaluationError",
        "IncompleteBodyError",
        "RegistrationError",
        "RequestTimedOut",
        "WaypointError",
    ):
        from waypoint import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
