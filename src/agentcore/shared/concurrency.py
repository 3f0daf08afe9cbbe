"""Concurrency helpers with backpressure.

Synchronous tool callables are offloaded to the default threadpool; this keeps
the number of in-flight threads bounded no matter how many tool calls a model
requests at once. The limit applies per event loop: a semaphore binds to the
loop it is first awaited on.
"""

from __future__ import annotations

import asyncio
import os
import weakref
from collections.abc import Callable
from typing import ParamSpec, TypeVar

_P = ParamSpec("_P")
_T = TypeVar("_T")


def _default_to_thread_limit() -> int:
    cpu = os.cpu_count() or 4
    return max(4, min(32, cpu * 4))


_TO_THREAD_LIMIT = int(os.getenv("AGENTCORE_TO_THREAD_LIMIT", str(_default_to_thread_limit())))
_TO_THREAD_SEMAPHORES: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Semaphore] = (
    weakref.WeakKeyDictionary()
)


def _to_thread_semaphore() -> asyncio.Semaphore:
    loop = asyncio.get_running_loop()
    semaphore = _TO_THREAD_SEMAPHORES.get(loop)
    if semaphore is None:
        semaphore = asyncio.Semaphore(_TO_THREAD_LIMIT)
        _TO_THREAD_SEMAPHORES[loop] = semaphore
    return semaphore


async def to_thread_limited(func: Callable[_P, _T], /, *args: _P.args, **kwargs: _P.kwargs) -> _T:
    """Run a blocking function in a thread with bounded concurrency."""
    semaphore = _to_thread_semaphore()
    await semaphore.acquire()
    try:
        return await asyncio.to_thread(func, *args, **kwargs)
    finally:
        semaphore.release()
