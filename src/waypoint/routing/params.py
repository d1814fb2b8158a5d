"""Named path parameters and their constraints.

Parameters are registered once per router and referenced from path
templates as ``/:name``. Several specs may share a name; a route picks
one by constraint source when it is compiled.
"""

import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from waypoint.errors import ConfigurationError

# Used when a parameter is registered without a constraint
CATCH_ALL = r"(.+)"

type Constraint = str | re.Pattern[str] | None


def to_pattern(constraint: Constraint, default: str = CATCH_ALL) -> re.Pattern[str]:
    """Normalize a constraint: ``None`` to *default*, ``str`` compiled, patterns as-is."""
    if constraint is None:
        return re.compile(default)
    if isinstance(constraint, re.Pattern):
        return constraint
    if isinstance(constraint, str):
        return re.compile(constraint)
    msg = f"Constraint must be a string or compiled pattern, got {type(constraint).__name__}"
    raise ConfigurationError(msg)


@dataclass(frozen=True, slots=True)
class ParamSpec:
    """A named, constrained path parameter."""

    name: str
    pattern: re.Pattern[str]

    @property
    def source(self) -> str:
        """The constraint's regular expression source."""
        return self.pattern.pattern


class ParamRegistry:
    """Append-only, ordered collection of ``ParamSpec`` entries.

    Read by the pattern compiler at registration time only; live
    dispatches never touch it.
    """

    __slots__ = ("_specs",)

    def __init__(self) -> None:
        self._specs: list[ParamSpec] = []

    def add(self, name: str, constraint: Constraint = None) -> ParamSpec:
        """Register one parameter and return its spec."""
        spec = ParamSpec(name=name, pattern=to_pattern(constraint))
        self._specs.append(spec)
        return spec

    def extend(self, entries: Iterable[Any]) -> list[ParamSpec]:
        """Register many parameters.

        Entries may be ``ParamSpec`` objects, ``(name, constraint)``
        pairs, or mappings with ``name`` and ``constraint`` (or ``regex``).
        """
        added: list[ParamSpec] = []
        for entry in entries:
            if isinstance(entry, ParamSpec):
                self._specs.append(entry)
                added.append(entry)
            elif isinstance(entry, Mapping):
                constraint = entry.get("constraint", entry.get("regex"))
                added.append(self.add(entry["name"], constraint))
            elif isinstance(entry, tuple) and len(entry) == 2:
                added.append(self.add(*entry))
            else:
                msg = f"Cannot register parameter from {entry!r}"
                raise ConfigurationError(msg)
        return added

    def find(self, name: str, source: str | None = None) -> ParamSpec | None:
        """First spec named *name*, restricted to constraint *source* when given."""
        for spec in self._specs:
            if spec.name == name and (source is None or spec.source == source):
                return spec
        return None

    def __iter__(self) -> Iterator[ParamSpec]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)
