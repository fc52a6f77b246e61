"""Metaguards — declarative per-route lifecycle hooks for hierarchical routers.

Declare guards in a route node's meta, then wire the engine into the
router's navigation hooks.

Basic usage::

    from metaguards import MetaGuards, RouteNode, RouteState

    users = RouteNode("/users")
    user = RouteNode("/users/{id}", meta={
        "before_enter": check_access,
        "after_update": track_view,
        "repeat_in": {"handler": refresh, "delay": 30.0},
    })

    guards = MetaGuards()
    await guards.resolve_before_guards(to, from_)  # raises GuardRejected
    guards.resolve_after_guards(to, from_)         # fire and forget
"""

__version__ = "0.1.0-dev"
__all__ = [
    "ActionList",
    "ConfigurationError",
    "GuardConfig",
    "GuardError",
    "GuardRejected",
    "Handler",
    "MetaGuardError",
    "MetaGuards",
    "RepeatScheduler",
    "RepeatingTask",
    "RouteNode",
    "RouteState",
    "Transition",
    "Wrapped",
    "as_action",
    "classify",
    "execute_action",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import metaguards`` fast while providing a clean top-level API.
    """
    if name == "MetaGuards":
        from metaguards.pipeline import MetaGuards

        return MetaGuards

    if name == "GuardConfig":
        from metaguards.config import GuardConfig

        return GuardConfig

    if name in ("RouteNode", "RouteState"):
        from metaguards.routing import route as _route

        return getattr(_route, name)

    if name in ("ActionList", "Handler", "Wrapped", "as_action", "execute_action"):
        from metaguards import actions as _actions

        return getattr(_actions, name)

    if name in ("RepeatScheduler", "RepeatingTask"):
        from metaguards import repeat as _repeat

        return getattr(_repeat, name)

    if name in ("Transition", "classify"):
        from metaguards import diff as _diff

        return getattr(_diff, name)

    if name in ("ConfigurationError", "GuardError", "GuardRejected", "MetaGuardError"):
        from metaguards import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
