"""``waypoint routes``: print the pipeline in evaluation order."""

import argparse
import sys

from waypoint.cli._resolve import resolve_router


def _format_timeout(timeout: float) -> str:
    return f"{timeout:g}s" if timeout else "off"


def run_routes(args: argparse.Namespace) -> None:
    """Print METHOD, PATTERN, PARAMS, TIMEOUT, and HANDLER for every route."""
    try:
        router = resolve_router(args.router)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    routes = router.routes
    if not routes:
        print("No routes registered.")
        return

    header = ("METHOD", "PATTERN", "PARAMS", "TIMEOUT", "HANDLER")
    rows: list[tuple[str, ...]] = [header]
    for route in routes:
        params = ", ".join(spec.name for spec in route.param_map if spec is not None)
        if route.query:
            query = ", ".join(f"?{name}" for name in route.query)
            params = f"{params}, {query}" if params else query
        rows.append((route.method, route.template, params or "-", _format_timeout(route.timeout), route.handler_name))

    widths = [max(len(row[i]) for row in rows) for i in range(len(header) - 1)]
    fmt = "  ".join(f"{{:<{w}}}" for w in widths) + "  {}"
    print(fmt.format(*header))
    print("-" * min(sum(widths) + 2 * len(widths) + max(len(r[-1]) for r in rows), 80))
    for row in rows[1:]:
        print(fmt.format(*row))
