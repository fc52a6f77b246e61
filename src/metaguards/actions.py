"""Guard actions — the declared shape of a meta guard and how to run it.

A guard declared in a route's meta is one of three things:

- ``Handler``: a single callable ``fn(to, from_)``
- ``ActionList``: several actions run concurrently ("all or none")
- ``Wrapped``: an action plus an optional ``trigger`` and ``delay``,
  read by phase-specific wrappers such as the ``repeat_in`` scheduler

Declarations are written as plain Python values and normalized once, when
the route node is built::

    RouteNode("/users/{id}", meta={
        "before_enter": check_access,                 # Handler
        "after_enter": [track_view, warm_cache],      # ActionList
        "repeat_in": {"handler": poll, "delay": 10},  # Wrapped
    })

``execute_action()`` then walks the normalized tree. Phase wrappers are
passed in by the caller so this module never needs to know about them.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import anyio

from metaguards._internal.invoke import invoke
from metaguards.errors import ConfigurationError

if TYPE_CHECKING:
    from metaguards.routing.route import RouteState

# A user guard: fn(to, from_) -> value or awaitable
type GuardFn = Callable[[RouteState, RouteState], Any]

# A repeat trigger: trigger(to, from_) -> bool
type TriggerFn = Callable[[RouteState, RouteState], bool]

# A phase wrapper receives the Handler or Wrapped action instead of running it
type Wrapper = Callable[[Handler | Wrapped], Any]

type GuardAction = Handler | ActionList | Wrapped


@dataclass(frozen=True, slots=True, eq=False)
class Handler:
    """A single guard callable."""

    fn: GuardFn

    def __call__(self, to: RouteState, from_: RouteState) -> Awaitable[Any]:
        return execute_action(self, None, to, from_)


@dataclass(frozen=True, slots=True, eq=False)
class ActionList:
    """Actions executed concurrently; fails if any of them fails."""

    actions: tuple[GuardAction, ...]

    def __call__(self, to: RouteState, from_: RouteState) -> Awaitable[Any]:
        return execute_action(self, None, to, from_)


@dataclass(frozen=True, slots=True, eq=False)
class Wrapped:
    """An action with scheduling options.

    Attributes:
        handler: The action to run.
        trigger: Predicate deciding whether a repeating task should be
            (re)started or stopped for a transition. ``None`` means always.
        delay: Seconds between two runs of a repeating task. ``None``
            falls back to ``GuardConfig.repeat_delay``.
    """

    handler: GuardAction
    trigger: TriggerFn | None = None
    delay: float | None = None

    def __call__(self, to: RouteState, from_: RouteState) -> Awaitable[Any]:
        return execute_action(self, None, to, from_)


def as_action(value: Any) -> GuardAction | None:
    """Normalize a guard declaration into a ``GuardAction``.

    Accepts an existing action, a callable, a list/tuple of declarations,
    or a mapping with a ``handler`` key and optional ``trigger``/``delay``.
    ``None`` means "no guard declared" and is returned unchanged.

    Raises ``ConfigurationError`` for anything else.
    """
    match value:
        case None:
            return None
        case Handler() | ActionList() | Wrapped():
            return value
        case list() | tuple():
            return ActionList(tuple(_require(as_action(item)) for item in value))
        case Mapping():
            if "handler" not in value:
                msg = f"Guard declaration mapping needs a 'handler' key, got keys {sorted(value)}"
                raise ConfigurationError(msg)
            unknown = set(value) - {"handler", "trigger", "delay"}
            if unknown:
                msg = f"Unknown guard declaration keys: {sorted(unknown)}"
                raise ConfigurationError(msg)
            trigger = value.get("trigger")
            if trigger is not None and not callable(trigger):
                msg = f"Guard trigger must be callable, got {type(trigger).__name__}"
                raise ConfigurationError(msg)
            delay = value.get("delay")
            if delay is not None and (isinstance(delay, bool) or not isinstance(delay, int | float) or delay < 0):
                msg = f"Guard delay must be a non-negative number of seconds, got {delay!r}"
                raise ConfigurationError(msg)
            return Wrapped(
                handler=_require(as_action(value["handler"])),
                trigger=trigger,
                delay=delay,
            )
        case _ if callable(value):
            return Handler(value)
        case _:
            msg = f"Cannot use {type(value).__name__} as a guard; expected a callable, list or mapping"
            raise ConfigurationError(msg)


def _require(action: GuardAction | None) -> GuardAction:
    if action is None:
        msg = "Guard declaration cannot contain None"
        raise ConfigurationError(msg)
    return action


async def execute_action(
    action: GuardAction | None,
    wrapper: Wrapper | None,
    to: RouteState,
    from_: RouteState,
) -> Any:
    """Run every handler of *action*.

    - ``None``: nothing declared, returns ``None``
    - ``Handler``: ``wrapper(action)`` if a wrapper is given, else ``fn(to, from_)``
    - ``ActionList``: every element concurrently, returns the list of results
    - ``Wrapped``: ``wrapper(action)`` if given, else runs the inner handler
      directly and ignores ``trigger``/``delay``

    Sync and async callables are both accepted. When an element of an
    ``ActionList`` fails, its siblings are cancelled and the failure
    propagates as an ``ExceptionGroup``.
    """
    match action:
        case None:
            return None
        case Handler():
            if wrapper is not None:
                return await invoke(wrapper, action)
            return await invoke(action.fn, to, from_)
        case ActionList():
            results: list[Any] = [None] * len(action.actions)

            async def _run(index: int, item: GuardAction) -> None:
                results[index] = await execute_action(item, wrapper, to, from_)

            async with anyio.create_task_group() as tg:
                for index, item in enumerate(action.actions):
                    tg.start_soon(_run, index, item)
            return results
        case Wrapped():
            if wrapper is not None:
                return await invoke(wrapper, action)
            return await execute_action(action.handler, None, to, from_)
        case _:
            msg = f"Not a guard action: {action!r}"
            raise TypeError(msg)


def iter_wrappable(action: GuardAction | None) -> Iterator[Handler | Wrapped]:
    """Yield the ``Handler``/``Wrapped`` leaves a wrapper would receive, in declaration order.

    Synchronous counterpart of ``execute_action(action, wrapper, ...)``
    for wrappers that must run without suspending, such as ``repeat_in``.
    """
    match action:
        case None:
            return
        case Handler() | Wrapped():
            yield action
        case ActionList():
            for item in action.actions:
                yield from iter_wrappable(item)
        case _:
            msg = f"Not a guard action: {action!r}"
            raise TypeError(msg)
