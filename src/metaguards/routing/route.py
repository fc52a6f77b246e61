"""RouteNode and RouteState frozen dataclasses."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from metaguards.actions import GuardAction, as_action
from metaguards.routing.path import param_keys as parse_param_keys

# Guard names, in snake_case, as read from ``RouteNode.meta``
BEFORE_LEAVE = "before_leave"
BEFORE_ENTER = "before_enter"
BEFORE_UPDATE = "before_update"
AFTER_LEAVE = "after_leave"
AFTER_ENTER = "after_enter"
AFTER_UPDATE = "after_update"
REPEAT_IN = "repeat_in"

GUARD_NAMES: frozenset[str] = frozenset({
    BEFORE_LEAVE,
    BEFORE_ENTER,
    BEFORE_UPDATE,
    AFTER_LEAVE,
    AFTER_ENTER,
    AFTER_UPDATE,
    REPEAT_IN,
})

# camelCase spellings accepted in meta declarations
GUARD_ALIASES: dict[str, str] = {
    "beforeLeave": BEFORE_LEAVE,
    "beforeEnter": BEFORE_ENTER,
    "beforeUpdate": BEFORE_UPDATE,
    "afterLeave": AFTER_LEAVE,
    "afterEnter": AFTER_ENTER,
    "afterUpdate": AFTER_UPDATE,
    "repeatIn": REPEAT_IN,
}


@dataclass(frozen=True, slots=True, eq=False)
class RouteNode:
    """One level of a matched route hierarchy.

    Created once when the route table is configured and reused by every
    navigation that matches it; equality and hashing are by identity.

    ``path`` is the full pattern from the root (``/users/{id}/posts``), so
    ``param_keys`` lists every parameter the node depends on, including the
    ones declared by its ancestors. Pass ``param_keys`` explicitly when the
    router extracts them some other way.

    Guard declarations in ``meta`` are normalized into ``GuardAction``
    values; camelCase guard names are stored under their snake_case name.
    Other meta entries are kept as given.
    """

    path: str
    meta: Mapping[str, Any] = field(default_factory=dict)
    name: str | None = None
    param_keys: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        meta: dict[str, Any] = {}
        for key, value in self.meta.items():
            canonical = GUARD_ALIASES.get(key, key)
            meta[canonical] = as_action(value) if canonical in GUARD_NAMES else value
        object.__setattr__(self, "meta", MappingProxyType(meta))
        if self.param_keys is None:
            object.__setattr__(self, "param_keys", parse_param_keys(self.path))
        else:
            object.__setattr__(self, "param_keys", tuple(self.param_keys))

    def guard(self, name: str) -> GuardAction | None:
        """Return the action declared under guard *name*, or ``None``."""
        return self.meta.get(GUARD_ALIASES.get(name, name))

    def __repr__(self) -> str:
        label = f" {self.name!r}" if self.name else ""
        return f"<RouteNode{label} {self.path!r}>"


@dataclass(frozen=True, slots=True)
class RouteState:
    """A navigation endpoint: the matched chain and its parameters."""

    matched: tuple[RouteNode, ...] = ()
    params: Mapping[str, Any] = field(default_factory=dict)
    path: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "matched", tuple(self.matched))
