"""Uniform calls into user code.

Guards, ``next`` callbacks and repeated handlers are declared by the
application and may be plain functions or coroutine functions. Every call
site in the engine goes through ``invoke()`` so the difference never leaks
into the pipeline or the scheduler.
"""

import inspect
from typing import Any


async def invoke(fn: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *fn* and return its result, awaiting it first when it is awaitable."""
    value = fn(*args, **kwargs)
    if inspect.isawaitable(value):
        return await value
    return value
