"""Ordered dispatch pipeline.

Routes are compiled at registration and kept in registration order.
A dispatch walks them in that order against one ``RequestContext`` and
stops at the first route whose method, path (or fragment), and query
constraints all hold. Nothing compiled here changes after registration,
so concurrent dispatches share the route table without locking.
"""

import asyncio
import logging
import re
import traceback
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from waypoint._internal.asgi import Receive, Scope, Send
from waypoint._internal.invoke import invoke
from waypoint.body import BodyAggregator
from waypoint.config import RouterConfig
from waypoint.context import RequestContext
from waypoint.errors import ConfigurationError, EvaluationError
from waypoint.events import DispatchResult, EventHub, Listener
from waypoint.http.request import Request
from waypoint.http.response import Response, ResponseWriter
from waypoint.http.url import URL
from waypoint.routing.compiler import compile_pattern, extract_params
from waypoint.routing.params import Constraint, ParamRegistry, to_pattern
from waypoint.routing.route import RouteDefinition, RouteEvaluation
from waypoint.timeout import TimeoutGuard

logger = logging.getLogger("waypoint.routing")

type Handler = Callable[[RequestContext], Any]
type QueryOption = Mapping[str, Constraint] | Iterable[str] | None


class Router:
    """Ordered, first-match request router and ASGI application.

    Usage::

        router = Router()
        router.param("id", r"\\d+")

        @router.get("/users/:id", params={"id": r"\\d+"})
        async def show_user(ctx):
            await ctx.response.end(f"user {ctx.params['id']}")

        # Serve with any ASGI server: uvicorn module:router
    """

    __slots__ = ("_background", "_log", "_query", "_routes", "config", "events", "params")

    def __init__(self, config: RouterConfig | None = None, *, log: logging.Logger | None = None) -> None:
        self.config = config or RouterConfig()
        self.params = ParamRegistry()
        self.events = EventHub()
        self._log = log or logger
        self._query: dict[str, re.Pattern[str]] = {}
        self._routes: list[RouteDefinition] = []
        self._background: set[asyncio.Task[Any]] = set()

    @property
    def routes(self) -> tuple[RouteDefinition, ...]:
        """Registered routes in evaluation order."""
        return tuple(self._routes)

    def on(self, event: str, listener: Listener | None = None) -> Any:
        """Subscribe to a router event. Usable as a decorator."""
        if listener is None:
            return lambda fn: self.events.on(event, fn)
        return self.events.on(event, listener)

    # -- Parameter and query constraints --

    def param(self, name: str | Iterable[Any], constraint: Constraint = None) -> None:
        """Register one named path parameter, or many from an iterable.

        A missing constraint matches one or more characters.
        """
        if isinstance(name, str):
            self.params.add(name, constraint)
        else:
            self.params.extend(name)

    def qparam(self, name: str, constraint: Constraint = None) -> None:
        """Register a named query constraint for later routes to reference.

        A missing constraint only requires the query key to be present.
        """
        self._query[name] = to_pattern(constraint, default=r".*")

    # -- Route registration --

    def use(
        self,
        method: str,
        pattern: str | re.Pattern[str],
        handler: Handler | None = None,
        *,
        query: QueryOption = None,
        timeout: float | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        """Register a route at the end of the pipeline.

        Args:
            method: HTTP method the route answers.
            pattern: Path template (``/users/:id``) or a compiled regex.
            handler: Called with the ``RequestContext``. Omit to use as a
                decorator.
            query: Names of registered query constraints, or a mapping of
                name to constraint (``None`` uses the registered one).
            timeout: Seconds before a forced 500; ``None`` uses the
                router default, ``0`` disables the guard.
            params: Required constraint source per parameter name.

        Returns:
            The ``RouteDefinition``, or ``None`` when a parameter could not
            be resolved (logged, not raised). The decorator form returns
            the handler unchanged.
        """
        if handler is None:

            def decorator(fn: Handler) -> Handler:
                self.use(method, pattern, fn, query=query, timeout=timeout, params=params)
                return fn

            return decorator

        compiled = compile_pattern(pattern, self.params, params, log=self._log)
        if compiled is None:
            return None

        template = pattern.pattern if isinstance(pattern, re.Pattern) else pattern
        route = RouteDefinition(
            method=method.upper(),
            template=template,
            matcher=compiled.matcher,
            handler=handler,
            param_map=compiled.param_map,
            query=self._resolve_query(query),
            timeout=self._resolve_timeout(timeout),
        )
        self._routes.append(route)
        self._log.debug("Registered %r", route)
        return route

    def get(self, pattern: str | re.Pattern[str], handler: Handler | None = None, **options: Any) -> Any:
        return self.use("GET", pattern, handler, **options)

    def post(self, pattern: str | re.Pattern[str], handler: Handler | None = None, **options: Any) -> Any:
        return self.use("POST", pattern, handler, **options)

    def put(self, pattern: str | re.Pattern[str], handler: Handler | None = None, **options: Any) -> Any:
        return self.use("PUT", pattern, handler, **options)

    def delete(self, pattern: str | re.Pattern[str], handler: Handler | None = None, **options: Any) -> Any:
        return self.use("DELETE", pattern, handler, **options)

    def patch(self, pattern: str | re.Pattern[str], handler: Handler | None = None, **options: Any) -> Any:
        return self.use("PATCH", pattern, handler, **options)

    def _resolve_query(self, query: QueryOption) -> dict[str, re.Pattern[str]]:
        if query is None:
            return {}
        if isinstance(query, str):
            query = [query]
        resolved: dict[str, re.Pattern[str]] = {}
        if isinstance(query, Mapping):
            for name, constraint in query.items():
                if constraint is not None:
                    resolved[name] = to_pattern(constraint)
                elif name in self._query:
                    resolved[name] = self._query[name]
                else:
                    self._log.warning("Query constraint %r is not registered; ignoring it", name)
            return resolved
        if isinstance(query, Iterable):
            for name in query:
                if name in self._query:
                    resolved[name] = self._query[name]
                else:
                    self._log.warning("Query constraint %r is not registered; ignoring it", name)
            return resolved
        msg = f"query must be a mapping or a list of names, got {type(query).__name__}"
        raise ConfigurationError(msg)

    def _resolve_timeout(self, timeout: float | None) -> float:
        if timeout is None:
            return float(self.config.default_timeout or 0)
        if not timeout:
            return 0
        if timeout < 0:
            msg = f"timeout must be positive or 0 to disable, got {timeout!r}"
            raise ConfigurationError(msg)
        return float(timeout)

    # -- Dispatch --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return
        await self.dispatch(scope, receive, send)

    async def dispatch(self, scope: Scope, receive: Receive, send: Send) -> RequestContext:
        """Route one request: evaluate, invoke the winner, or answer 404.

        Every call starts from fresh per-request state. Returns the
        ``RequestContext`` the dispatch worked on.
        """
        context = RequestContext(
            request=Request.from_asgi(scope, receive),
            response=ResponseWriter(send),
            url=URL.from_scope(scope),
        )
        aggregator = BodyAggregator(
            context,
            self.config,
            on_complete=lambda body: self.events.emit("body", body),
        )
        body_task = asyncio.create_task(aggregator.run())

        results: list[RouteEvaluation] = []
        error: EvaluationError | None = None
        try:
            route = self._evaluate(context, results)
        except EvaluationError as exc:
            route, error = None, exc

        if route is not None:
            error = await self._serve(route, context, aggregator)

        outcome = DispatchResult(error=error, results=tuple(results))
        if error is not None:
            self.events.emit("error", outcome)
        self.events.emit("end", outcome)

        if route is None or error is not None:
            await self._not_found(context, error)

        await self._settle_body(body_task)
        return context

    def _evaluate(self, context: RequestContext, results: list[RouteEvaluation]) -> RouteDefinition | None:
        for route in self._routes:
            if context.matched or context.method != route.method:
                continue
            try:
                text = self._match(route, context)
                if text is not None:
                    context.matched = True
                    context.route = route
                    context.query = context.url.query
                    context.params = extract_params(text, route.param_map)
            except Exception as exc:
                self._log.exception("Route %s %s failed to evaluate", route.method, route.template)
                raise EvaluationError(exc, route.template) from exc

            evaluation = RouteEvaluation(route=route, context=context, matched=text is not None)
            results.append(evaluation)
            self.events.emit("evaluate", evaluation)
            if evaluation.matched:
                self.events.emit("match", evaluation)
                return route
        return None

    @staticmethod
    def _match(route: RouteDefinition, context: RequestContext) -> str | None:
        """Return the text *route* matched, or ``None``.

        The fragment is tried before the path.
        """
        url = context.url
        if url.fragment and route.matcher.search(url.fragment):
            text = url.fragment
        elif route.matcher.search(url.path):
            text = url.path
        else:
            return None

        for name, pattern in route.query.items():
            value = url.query.get(name)
            if value is None or pattern.search(value) is None:
                return None
        return text

    async def _serve(
        self,
        route: RouteDefinition,
        context: RequestContext,
        aggregator: BodyAggregator,
    ) -> EvaluationError | None:
        """Run the matched handler under its timeout guard."""
        guard: TimeoutGuard | None = None
        if route.timeout:
            guard = TimeoutGuard(context, route.timeout, self.config)
            guard.arm()

        response = context.response
        finished_task = asyncio.create_task(response.wait_finished())
        try:
            if context.method in self.config.body_methods and not aggregator.signal.fired:
                body_ready = asyncio.create_task(aggregator.signal.wait())
                await asyncio.wait({body_ready, finished_task}, return_when=asyncio.FIRST_COMPLETED)
                if not aggregator.signal.fired:
                    # Timed out before the body arrived; the handler never runs
                    body_ready.cancel()
                    if guard is not None:
                        await guard.wait()
                    return None

            handler_task = asyncio.create_task(invoke(route.handler, context))
            await asyncio.wait({handler_task, finished_task}, return_when=asyncio.FIRST_COMPLETED)

            if not handler_task.done():
                if guard is not None and guard.fired:
                    # The handler keeps running; the client already has its 500
                    await guard.wait()
                    self._detach(handler_task, route)
                    return None
                await asyncio.wait({handler_task})

            exc = handler_task.exception()
            if exc is not None:
                self._log.error(
                    "Handler for %s %s raised",
                    route.method,
                    route.template,
                    exc_info=(type(exc), exc, exc.__traceback__),
                )
                error = EvaluationError(exc, route.template)
                error.__cause__ = exc
                return error

            result = handler_task.result()
            if isinstance(result, Response):
                await response.send_response(result)

            if not response.finished:
                if guard is not None:
                    await response.wait_finished()
                    await guard.wait()
                else:
                    await response.end()
            return None
        finally:
            if not finished_task.done():
                finished_task.cancel()
            if guard is not None and not guard.fired:
                guard.cancel()

    def _detach(self, task: asyncio.Task[Any], route: RouteDefinition) -> None:
        """Keep a reference to a handler that outlived its response."""
        self._background.add(task)

        def done(t: asyncio.Task[Any]) -> None:
            self._background.discard(t)
            if not t.cancelled() and t.exception() is not None:
                exc = t.exception()
                self._log.error(
                    "Handler for %s %s raised after timing out",
                    route.method,
                    route.template,
                    exc_info=(type(exc), exc, exc.__traceback__),
                )

        task.add_done_callback(done)

    async def _not_found(self, context: RequestContext, error: EvaluationError | None) -> None:
        """Terminal stage: no route matched, or evaluation failed."""
        response = context.response
        if response.finished:
            return

        detail = ""
        if error is not None and self.config.expose_errors:
            detail = "\n" + "".join(traceback.format_exception(error))

        self._log.debug(
            "%d %s %s%s",
            self.config.not_found_status,
            context.method,
            context.path,
            f" ({error})" if error is not None else "",
        )
        if not response.headers_sent:
            await response.write_head(
                self.config.not_found_status,
                {"content-type": "text/plain; charset=utf-8"},
            )
        await response.write(self.config.not_found_text)
        await response.end(detail)

    async def _settle_body(self, body_task: asyncio.Task[None]) -> None:
        """Stop reading a body nobody waited for."""
        if body_task.done():
            return
        body_task.cancel()
        try:
            await body_task
        except asyncio.CancelledError:
            if not body_task.cancelled():
                raise
            self._log.debug("Stopped reading an unused request body")
