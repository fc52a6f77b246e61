"""Repeat scheduler — self-rescheduling background tasks.

A ``repeat_in`` guard keeps a handler running on a fixed delay for as long
as its route stays matched. Each registration becomes a ``RepeatingTask``
whose loop runs on the current event loop::

    scheduler = RepeatScheduler()
    scheduler.start(poll_inbox, (to, from_), delay=10.0)
    ...
    scheduler.stop(poll_inbox)

Loop semantics:
    - the handler is invoked, its result awaited if awaitable
    - success or failure, the loop then sleeps ``delay`` seconds and checks
      the task's ``stopped`` flag before invoking again
    - failures are logged and swallowed (retry forever, no backoff)
    - invocations of one task never overlap

``stop()`` is cooperative: an invocation already running finishes, the
loop just never reschedules. ``shutdown()`` is the only forcible path and
is meant for process exit.

Free-threading safety:
    - the registry is guarded by a ``threading.Lock``
    - ``RepeatingTask.stopped`` only ever flips from False to True
"""

import asyncio
import logging
import threading
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

import anyio

from metaguards._internal.invoke import invoke
from metaguards.config import GuardConfig

logger = logging.getLogger("metaguards.repeat")


@dataclass(slots=True, eq=False)
class RepeatingTask:
    """A registered repeating handler.

    Attributes:
        handler: The repeated callable. ``stop()`` matches on its identity.
        args: Positional arguments captured at registration time.
        delay: Seconds between the end of one run and the start of the next.
        task_id: Generated identifier, usable with ``cancel()``.
        stopped: Set once the task is stopped; the loop exits on its next check.
        runs: Number of invocations started so far.
    """

    handler: Callable[..., Any]
    args: tuple[Any, ...]
    delay: float
    task_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    stopped: bool = False
    runs: int = 0


class RepeatScheduler:
    """Registry and runner of repeating tasks.

    Owns every ``RepeatingTask`` it creates. Construct one per guard engine
    (``MetaGuards`` does this for you) rather than sharing module state.
    """

    __slots__ = ("_config", "_lock", "_loops", "_tasks")

    def __init__(self, config: GuardConfig | None = None) -> None:
        self._config = config or GuardConfig()
        # task_id -> task, in registration order
        self._tasks: dict[str, RepeatingTask] = {}
        # Strong references to running loops until they finish
        self._loops: set[asyncio.Task[None]] = set()
        self._lock = threading.Lock()

    def start(
        self,
        handler: Callable[..., Any],
        args: Iterable[Any] = (),
        delay: float | None = None,
    ) -> RepeatingTask:
        """Register *handler* and start repeating it.

        Every call creates a new independent task, even if *handler* is
        already repeating, unless ``GuardConfig.dedupe_repeat`` is set, in
        which case the existing task is returned unchanged.

        Must be called with a running event loop.
        """
        loop = asyncio.get_running_loop()
        task = RepeatingTask(
            handler=handler,
            args=tuple(args),
            delay=self._config.repeat_delay if delay is None else delay,
        )

        with self._lock:
            if self._config.dedupe_repeat:
                for existing in self._tasks.values():
                    if existing.handler is handler:
                        return existing
            self._tasks[task.task_id] = task

        runner = loop.create_task(self._run(task), name=f"metaguards-repeat-{task.task_id}")
        with self._lock:
            self._loops.add(runner)
        runner.add_done_callback(self._forget)

        logger.debug(
            "Repeating %s every %ss (task %s)", _describe(handler), task.delay, task.task_id,
        )
        return task

    def stop(self, handler: Callable[..., Any]) -> int:
        """Stop every task repeating *handler*.

        Matches on identity. Returns the number of tasks stopped; stopping
        a handler that is not repeating is a no-op returning 0.
        """
        with self._lock:
            matching = [task for task in self._tasks.values() if task.handler is handler]
            for task in matching:
                del self._tasks[task.task_id]
                task.stopped = True

        if matching:
            logger.debug("Stopped %d repeating task(s) for %s", len(matching), _describe(handler))
        return len(matching)

    def cancel(self, task: RepeatingTask | str) -> bool:
        """Stop a single task by handle or ``task_id``.

        Returns ``False`` if the task is not active.
        """
        task_id = task if isinstance(task, str) else task.task_id
        with self._lock:
            found = self._tasks.pop(task_id, None)
            if found is None:
                return False
            found.stopped = True
        logger.debug("Cancelled repeating task %s", task_id)
        return True

    def active(self, handler: Callable[..., Any] | None = None) -> list[RepeatingTask]:
        """Snapshot of active tasks, optionally only those repeating *handler*."""
        with self._lock:
            tasks = list(self._tasks.values())
        if handler is None:
            return tasks
        return [task for task in tasks if task.handler is handler]

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    def __contains__(self, handler: object) -> bool:
        with self._lock:
            return any(task.handler is handler for task in self._tasks.values())

    async def shutdown(self) -> None:
        """Stop every task and wait for their loops to exit.

        Loops sleeping or mid-invocation are cancelled.
        """
        with self._lock:
            for task in self._tasks.values():
                task.stopped = True
            self._tasks.clear()
            loops = set(self._loops)

        for runner in loops:
            runner.cancel()
        if loops:
            await asyncio.gather(*loops, return_exceptions=True)
        logger.debug("Repeat scheduler shut down (%d loop(s) cancelled)", len(loops))

    async def _run(self, task: RepeatingTask) -> None:
        while not task.stopped:
            task.runs += 1
            try:
                await invoke(task.handler, *task.args)
            except Exception:
                if self._config.log_repeat_errors:
                    logger.warning(
                        "Repeating %s failed (task %s); retrying in %ss",
                        _describe(task.handler), task.task_id, task.delay,
                        exc_info=True,
                    )
            await anyio.sleep(task.delay)

    def _forget(self, runner: asyncio.Task[None]) -> None:
        with self._lock:
            self._loops.discard(runner)


def _describe(handler: Any) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)
