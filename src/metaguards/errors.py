"""Metaguards exception hierarchy.

Shared across the differencer, normalizer, pipeline and scheduler so every
module raises and catches the same types.
"""

from typing import Any


class MetaGuardError(Exception):
    """Base for all metaguards-specific errors."""


class ConfigurationError(MetaGuardError):
    """Raised when a guard declaration or ``GuardConfig`` is invalid.

    Typically raised while a ``RouteNode`` is being built, long before any
    navigation happens.
    """


class GuardError(MetaGuardError):
    """A guard handler failed.

    Carries the guard name, the route node it was declared on and the
    original exception (``cause``, also chained as ``__cause__``).
    After-guard failures are handed to the ``on_error`` callback as
    ``GuardError`` and never raised.
    """

    def __init__(self, guard: str, node: Any = None, cause: BaseException | None = None) -> None:
        self.guard = guard
        self.node = node
        self.cause = cause
        super().__init__(guard, node, cause)

    def __str__(self) -> str:
        where = getattr(self.node, "path", None) or repr(self.node)
        if self.cause is not None:
            return f"{self.guard} failed at {where}: {self.cause!r}"
        return f"{self.guard} failed at {where}"


class GuardRejected(GuardError):
    """A before-guard failed and the navigation must not proceed.

    Raised once per ``resolve_before_guards`` call no matter how many
    handlers failed.
    """

    def __str__(self) -> str:
        where = getattr(self.node, "path", None) or repr(self.node)
        if self.cause is not None:
            return f"{self.guard} rejected navigation at {where}: {self.cause!r}"
        return f"{self.guard} rejected navigation at {where}"
