"""Path template compilation and positional parameter extraction.

A template such as ``/users/:id/posts`` is split into separator+segment
tokens. Literal tokens are escaped; ``/:name`` tokens are replaced by the
registered constraint for ``name``. The joined result is anchored at both
ends, and a positional map records which path segment holds which param.

Examples::

    "/users/:id"  -> ^/users/(?:(\\d+))\\Z     map: [None, ParamSpec("id")]
    "/"           -> ^/\\Z                      map: [None]
"""

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import unquote

from waypoint.errors import RegistrationError
from waypoint.routing.params import ParamRegistry, ParamSpec

_TOKEN = re.compile(r"([?/])([^?/]+)")
_BOUND_PREFIX = "/:"


@dataclass(frozen=True, slots=True)
class CompiledPattern:
    """An anchored matcher plus the param spec for each path segment.

    ``param_map`` is positional: index *i* describes segment *i* of the
    matched text (``None`` for literals). It is empty for raw matchers.
    """

    matcher: re.Pattern[str]
    param_map: tuple[ParamSpec | None, ...] = ()


def tokenize(template: str) -> list[str]:
    """Split a template into separator-prefixed tokens, keeping any gaps."""
    tokens: list[str] = []
    pos = 0
    for m in _TOKEN.finditer(template):
        if m.start() > pos:
            tokens.append(template[pos : m.start()])
        tokens.append(m.group(0))
        pos = m.end()
    if pos < len(template):
        tokens.append(template[pos:])
    return tokens or [template]


def _constraint_source(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, re.Pattern):
        return value.pattern
    return str(value)


def compile_pattern(
    template: str | re.Pattern[str],
    registry: ParamRegistry,
    params: Mapping[str, object] | None = None,
    *,
    log: logging.Logger,
) -> CompiledPattern | None:
    """Compile *template* against *registry*.

    *params* maps a parameter name to the constraint source a route
    requires, which selects among same-named specs. A name missing from
    *params* takes the first spec registered under it.

    Returns ``None`` when a parameter cannot be resolved. The
    ``RegistrationError`` is logged on *log*, never raised.
    """
    if isinstance(template, re.Pattern):
        return CompiledPattern(matcher=template)

    params = params or {}
    parts: list[str] = []
    param_map: list[ParamSpec | None] = []

    for token in tokenize(template or ""):
        if token.startswith(_BOUND_PREFIX):
            name = token[len(_BOUND_PREFIX) :]
            source = _constraint_source(params.get(name))
            spec = registry.find(name, source)
            if spec is None:
                log.error("%s", RegistrationError(template, name, source))
                return None
            param_map.append(spec)
            parts.append(re.escape("/") + f"(?:{spec.source})")
        else:
            param_map.append(None)
            parts.append(re.escape(token))

    matcher = re.compile("^" + "".join(parts) + r"\Z")
    return CompiledPattern(matcher=matcher, param_map=tuple(param_map))


def extract_params(text: str, param_map: tuple[ParamSpec | None, ...]) -> dict[str, str]:
    """Pull parameter values out of *text* by segment position.

    Each bound segment is re-run through its constraint; the value is the
    last capture group when it participated, otherwise the whole match.
    Values are percent-decoded.
    """
    segments = text.split("/")
    if segments and segments[0] == "":
        segments = segments[1:]

    values: dict[str, str] = {}
    for index, spec in enumerate(param_map):
        if spec is None or index >= len(segments) or not segments[index]:
            continue
        m = spec.pattern.search(segments[index])
        if m is None:
            continue
        value = m.group(m.re.groups) if m.re.groups and m.group(m.re.groups) is not None else m.group(0)
        values[spec.name] = unquote(value)
    return values
