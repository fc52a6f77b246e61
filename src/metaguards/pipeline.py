"""Guard pipeline — run meta guards for a navigation.

Wire the two entry points into the host router's navigation hooks::

    guards = MetaGuards()

    async def before_each(to, from_):
        try:
            await guards.resolve_before_guards(to, from_)
        except GuardRejected:
            return False  # abort or redirect the navigation

    def after_each(to, from_):
        guards.resolve_after_guards(to, from_)

Before phase (a barrier, failures reject the navigation)::

    before_leave  over leaved nodes  ┐
    before_update over updated nodes ├─ concurrently, one task group
    before_enter  over entered nodes ┘

After phase (fire and forget, failures go to ``on_error``)::

    after_leave -> repeat_in -> after_update -> after_enter

``repeat_in`` is applied synchronously, so consecutive navigations start
and stop repeating tasks in navigation order. Every other after phase is
its own background task; they are started in that order but may finish
in any order.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Coroutine, Sequence
from typing import Any

import anyio

from metaguards._internal.invoke import invoke
from metaguards.actions import GuardAction, Handler, Wrapped, execute_action, iter_wrappable
from metaguards.config import GuardConfig
from metaguards.diff import Transition, classify
from metaguards.errors import GuardError, GuardRejected
from metaguards.repeat import RepeatScheduler
from metaguards.routing.route import (
    AFTER_ENTER,
    AFTER_LEAVE,
    AFTER_UPDATE,
    BEFORE_ENTER,
    BEFORE_LEAVE,
    BEFORE_UPDATE,
    REPEAT_IN,
    RouteNode,
    RouteState,
)

logger = logging.getLogger("metaguards.pipeline")

# Receives every after-guard failure
type ErrorReporter = Callable[[GuardError], Any]

# Router callback: next() on success, next(error) on rejection
type NextFn = Callable[..., Any]


def log_guard_error(error: GuardError) -> None:
    """Default ``on_error``: log the failure with its traceback."""
    logger.error("After-guard failure: %s", error, exc_info=error.cause or error)


class MetaGuards:
    """Runs the meta guards declared on route nodes.

    Args:
        config: Engine configuration. Defaults to ``GuardConfig()``.
        scheduler: Repeat scheduler for ``repeat_in`` guards. Created from
            *config* when omitted.
        on_error: Called with a ``GuardError`` for every after-guard or
            ``repeat_in`` failure. Defaults to ``log_guard_error``. Must be
            synchronous.
    """

    __slots__ = ("_config", "_on_error", "_pending", "scheduler")

    def __init__(
        self,
        config: GuardConfig | None = None,
        *,
        scheduler: RepeatScheduler | None = None,
        on_error: ErrorReporter | None = None,
    ) -> None:
        self._config = config or GuardConfig()
        self.scheduler = scheduler or RepeatScheduler(self._config)
        self._on_error = on_error or log_guard_error
        self._pending: set[asyncio.Task[None]] = set()

    # -- Before phase --

    async def resolve_before_guards(
        self,
        to: RouteState,
        from_: RouteState,
        next: NextFn | None = None,  # noqa: A002 — router callback convention
    ) -> None:
        """Run ``before_leave``, ``before_update`` and ``before_enter`` guards.

        All handlers run concurrently. Returns once every one of them has
        succeeded. If any fails, the others are cancelled and a single
        ``GuardRejected`` is raised, naming the guard and node that failed.

        When *next* is given it is called instead: ``next()`` on success,
        ``next(error)`` on rejection, and nothing is raised.
        """
        transition = classify(to, from_)
        phases = (
            (BEFORE_LEAVE, transition.leaved),
            (BEFORE_UPDATE, transition.updated),
            (BEFORE_ENTER, transition.entered),
        )
        logger.debug(
            "Before guards: %d leaved, %d updated, %d entered",
            len(transition.leaved), len(transition.updated), len(transition.entered),
        )

        try:
            async with anyio.create_task_group() as tg:
                for name, nodes in phases:
                    for node in nodes:
                        action = node.guard(name)
                        if action is not None:
                            tg.start_soon(self._run_before, name, node, action, to, from_)
        except ExceptionGroup as group:
            rejected = _first_leaf(group)
            if not isinstance(rejected, GuardRejected):
                raise
            logger.debug("Navigation rejected: %s", rejected)
            if next is None:
                raise rejected from rejected.cause
            await invoke(next, rejected)
            return

        if next is not None:
            await invoke(next)

    async def _run_before(
        self,
        name: str,
        node: RouteNode,
        action: GuardAction,
        to: RouteState,
        from_: RouteState,
    ) -> None:
        try:
            await execute_action(action, None, to, from_)
        except Exception as exc:
            cause = _first_leaf(exc)
            raise GuardRejected(name, node, cause) from cause

    # -- After phase --

    def resolve_after_guards(self, to: RouteState, from_: RouteState) -> None:
        """Start ``after_leave``, ``repeat_in``, ``after_update`` and ``after_enter``.

        Returns immediately. ``repeat_in`` starts and stops repeating tasks
        before this returns; the other phases run as background tasks on the
        running event loop. Nothing is raised: failures are passed to
        ``on_error``. Use ``join()`` to wait for the phases to finish.
        """
        loop = asyncio.get_running_loop()
        transition = classify(to, from_)

        self._spawn(loop, AFTER_LEAVE, self._run_after(AFTER_LEAVE, transition.leaved, to, from_))
        self._repeat_in(transition)
        self._spawn(loop, AFTER_UPDATE, self._run_after(AFTER_UPDATE, transition.updated, to, from_))
        self._spawn(loop, AFTER_ENTER, self._run_after(AFTER_ENTER, transition.entered, to, from_))

    async def join(self) -> None:
        """Wait until every after phase started so far has finished."""
        while self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def aclose(self) -> None:
        """Wait for pending after phases, then stop every repeating task."""
        await self.join()
        await self.scheduler.shutdown()

    def _spawn(
        self,
        loop: asyncio.AbstractEventLoop,
        name: str,
        coro: Coroutine[Any, Any, None],
    ) -> None:
        task = loop.create_task(coro, name=f"metaguards-{name}")
        self._pending.add(task)
        task.add_done_callback(self._settle)

    def _settle(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            # Phase bodies report their own failures; anything here escaped them
            logger.error("After phase %s crashed", task.get_name(), exc_info=exc)

    async def _run_after(
        self,
        name: str,
        nodes: Sequence[RouteNode],
        to: RouteState,
        from_: RouteState,
    ) -> None:
        # Siblings keep running when one node's guard fails
        async with anyio.create_task_group() as tg:
            for node in nodes:
                action = node.guard(name)
                if action is not None:
                    tg.start_soon(self._run_reported, name, node, action, to, from_)

    async def _run_reported(
        self,
        name: str,
        node: RouteNode,
        action: GuardAction,
        to: RouteState,
        from_: RouteState,
    ) -> None:
        try:
            await execute_action(action, None, to, from_)
        except Exception as exc:
            cause = _first_leaf(exc)
            error = GuardError(name, node, cause)
            error.__cause__ = cause
            self._report(error)

    def _report(self, error: GuardError) -> None:
        try:
            self._on_error(error)
        except Exception:
            logger.exception("on_error callback failed while reporting %s", error)

    # -- repeat_in --

    def _repeat_in(self, transition: Transition) -> None:
        """Start repeating for entered nodes, update for stayed, stop for leaved.

        Runs synchronously inside ``resolve_after_guards`` so starts and
        stops are applied in navigation order. Triggers must therefore be
        plain functions; a trigger returning an awaitable is reported as a
        failure of that node's ``repeat_in``.
        """
        to, from_ = transition.to, transition.from_

        def on_enter(action: Handler | Wrapped) -> None:
            if self._triggered(action, to, from_):
                self._start_repeat(action, to, from_)

        def on_stay(action: Handler | Wrapped) -> None:
            if not isinstance(action, Wrapped) or action.trigger is None:
                return
            if self._triggered(action, to, from_):
                self._start_repeat(action, to, from_)
            else:
                self.scheduler.stop(_repeat_target(action))

        def on_leave(action: Handler | Wrapped) -> None:
            self.scheduler.stop(_repeat_target(action))

        for nodes, wrapper in (
            (transition.entered, on_enter),
            (transition.stayed, on_stay),
            (transition.leaved, on_leave),
        ):
            for node in nodes:
                try:
                    for action in iter_wrappable(node.guard(REPEAT_IN)):
                        wrapper(action)
                except Exception as exc:
                    error = GuardError(REPEAT_IN, node, exc)
                    error.__cause__ = exc
                    self._report(error)

    def _triggered(self, action: Handler | Wrapped, to: RouteState, from_: RouteState) -> bool:
        if not isinstance(action, Wrapped) or action.trigger is None:
            return True
        result = action.trigger(to, from_)
        if inspect.isawaitable(result):
            if inspect.iscoroutine(result):
                result.close()
            msg = f"repeat_in trigger {action.trigger!r} must return a bool, not an awaitable"
            raise TypeError(msg)
        return bool(result)

    def _start_repeat(self, action: Handler | Wrapped, to: RouteState, from_: RouteState) -> None:
        delay = action.delay if isinstance(action, Wrapped) else None
        self.scheduler.start(_repeat_target(action), (to, from_), delay)


def _repeat_target(action: Handler | Wrapped) -> Callable[..., Any]:
    """The callable a ``repeat_in`` action repeats; its identity keys ``stop()``."""
    if isinstance(action, Handler):
        return action.fn
    inner = action.handler
    if isinstance(inner, Handler):
        return inner.fn
    return inner


def _first_leaf(exc: BaseException) -> BaseException:
    while isinstance(exc, BaseExceptionGroup) and exc.exceptions:
        exc = exc.exceptions[0]
    return exc
