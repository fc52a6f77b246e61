"""Chain differencer — classify route nodes between two navigation states.

Given the matched chains of ``to`` and ``from_``:

- ``leaved``:  nodes of ``from_`` that ``to`` no longer matches
- ``entered``: nodes of ``to`` that ``from_`` did not match
- ``stayed``:  nodes matched by both
- ``updated``: stayed nodes whose parameters changed value

Nodes are compared by identity. Result order follows the chain the nodes
come from (``from_`` for leaved, ``to`` for the others), root to leaf.
Everything here is pure.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from metaguards.routing.route import RouteNode, RouteState

type DiffPath = tuple[Any, ...]

_MISSING = object()


@dataclass(frozen=True, slots=True)
class Transition:
    """The four node classifications for one ``(to, from_)`` pair."""

    to: RouteState
    from_: RouteState
    leaved: tuple[RouteNode, ...]
    entered: tuple[RouteNode, ...]
    stayed: tuple[RouteNode, ...]
    updated: tuple[RouteNode, ...]


def leaved(to: RouteState, from_: RouteState) -> list[RouteNode]:
    """Nodes matched by *from_* but not by *to*."""
    target = _identities(to.matched)
    return [node for node in _unique(from_.matched) if id(node) not in target]


def entered(to: RouteState, from_: RouteState) -> list[RouteNode]:
    """Nodes matched by *to* but not by *from_*."""
    source = _identities(from_.matched)
    return [node for node in _unique(to.matched) if id(node) not in source]


def stayed(to: RouteState, from_: RouteState) -> list[RouteNode]:
    """Nodes matched by both states, in *to* order."""
    source = _identities(from_.matched)
    return [node for node in _unique(to.matched) if id(node) in source]


def updated(to: RouteState, from_: RouteState) -> list[RouteNode]:
    """Stayed nodes depending on at least one parameter whose value changed."""
    changed = changed_params(to, from_)
    if not changed:
        return []
    return [node for node in stayed(to, from_) if any(key in changed for key in node.param_keys)]


def classify(to: RouteState, from_: RouteState) -> Transition:
    """Compute all four classifications at once."""
    return Transition(
        to=to,
        from_=from_,
        leaved=tuple(leaved(to, from_)),
        entered=tuple(entered(to, from_)),
        stayed=tuple(stayed(to, from_)),
        updated=tuple(updated(to, from_)),
    )


def changed_params(to: RouteState, from_: RouteState) -> frozenset[str]:
    """Top-level parameter names whose value differs between the two states."""
    return frozenset(path[0] for path in double_diff_paths(from_.params, to.params) if path)


def diff_paths(a: Any, b: Any, res: list[DiffPath] | None = None, sub: DiffPath = ()) -> list[DiffPath]:
    """Return the paths of values in *a* that differ in *b*.

    Only keys of *a* are visited, so keys that exist only in *b* are not
    reported; use ``double_diff_paths()`` for a symmetric result. Nested
    mappings and lists present on both sides are compared key by key.

    Example::

        diff_paths({"id": "1", "q": {"page": 2}}, {"id": "1", "q": {"page": 3}})
        # -> [("q", "page")]
    """
    if res is None:
        res = []
    for key, value in _items(a):
        other = _get(b, key)
        if other is not _MISSING and other == value:
            continue
        if other is not _MISSING and _same_container(value, other):
            diff_paths(value, other, res, (*sub, key))
        else:
            res.append((*sub, key))
    return res


def double_diff_paths(a: Any, b: Any) -> list[DiffPath]:
    """Paths that differ between *a* and *b* in either direction, deduplicated."""
    seen: set[DiffPath] = set()
    result: list[DiffPath] = []
    for path in (*diff_paths(a, b), *diff_paths(b, a)):
        if path not in seen:
            seen.add(path)
            result.append(path)
    return result


# -- Helpers --


def _identities(nodes: Sequence[RouteNode]) -> set[int]:
    return {id(node) for node in nodes}


def _unique(nodes: Sequence[RouteNode]) -> list[RouteNode]:
    seen: set[int] = set()
    result: list[RouteNode] = []
    for node in nodes:
        if id(node) not in seen:
            seen.add(id(node))
            result.append(node)
    return result


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, str | bytes | bytearray)


def _items(value: Any) -> list[tuple[Any, Any]]:
    if isinstance(value, Mapping):
        return list(value.items())
    if _is_sequence(value):
        return list(enumerate(value))
    return []


def _get(container: Any, key: Any) -> Any:
    if isinstance(container, Mapping):
        return container.get(key, _MISSING)
    if _is_sequence(container) and isinstance(key, int) and 0 <= key < len(container):
        return container[key]
    return _MISSING


def _same_container(a: Any, b: Any) -> bool:
    if isinstance(a, Mapping):
        return isinstance(b, Mapping)
    return _is_sequence(a) and _is_sequence(b)
