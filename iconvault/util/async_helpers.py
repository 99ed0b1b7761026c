"""Async helpers -- executor offloading and bounded fan-out."""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

T = TypeVar("T")


async def run_sync(fn: Callable[..., T], *args: object, **kwargs: object) -> T:
    """Run a blocking *fn* in the default executor without stalling the loop."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))


async def gather_bounded(
    limit: int,
    factories: Iterable[Callable[[], Awaitable[T]]],
) -> list[T]:
    """Await every coroutine factory with at most *limit* running at once.

    Results come back in input order.  Factories are called lazily so a
    coroutine is only created once a slot is free.
    """
    if limit < 1:
        raise ValueError("limit must be >= 1")
    sem = asyncio.Semaphore(limit)

    async def _run(factory: Callable[[], Awaitable[T]]) -> T:
        async with sem:
            return await factory()

    return list(await asyncio.gather(*(_run(f) for f in factories)))
