"""Tests for async_helpers."""

from __future__ import annotations

import asyncio

import pytest

from iconvault.util.async_helpers import gather_bounded, run_sync


@pytest.mark.asyncio
async def test_run_sync_basic() -> None:
    def add(a: int, b: int) -> int:
        return a + b

    result = await run_sync(add, 2, 3)
    assert result == 5


@pytest.mark.asyncio
async def test_run_sync_kwargs() -> None:
    def greet(name: str, prefix: str = "Hello") -> str:
        return f"{prefix}, {name}"

    result = await run_sync(greet, "World", prefix="Hi")
    assert result == "Hi, World"


@pytest.mark.asyncio
async def test_run_sync_exception() -> None:
    def boom() -> None:
        raise ValueError("fail")

    with pytest.raises(ValueError, match="fail"):
        await run_sync(boom)


@pytest.mark.asyncio
async def test_gather_bounded_preserves_order() -> None:
    async def value(n: int) -> int:
        await asyncio.sleep(0.01 * (5 - n))
        return n

    results = await gather_bounded(2, [lambda n=n: value(n) for n in range(5)])
    assert results == [0, 1, 2, 3, 4]


@pytest.mark.asyncio
async def test_gather_bounded_limits_concurrency() -> None:
    running = 0
    peak = 0

    async def work() -> None:
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.01)
        running -= 1

    await gather_bounded(3, [work for _ in range(10)])
    assert peak == 3


@pytest.mark.asyncio
async def test_gather_bounded_rejects_zero_limit() -> None:
    with pytest.raises(ValueError):
        await gather_bounded(0, [])
