"""Keyed lock tests."""

from __future__ import annotations

import asyncio

from decisionflow.concurrency import KeyedLock


def test_same_key_is_serialized_and_released() -> None:
    locks = KeyedLock()
    events: list[str] = []

    async def worker(name: str) -> None:
        async with locks.hold(("PROJ-1", "flow-1")):
            events.append(f"{name}-in")
            await asyncio.sleep(0)
            events.append(f"{name}-out")

    async def scenario() -> None:
        await asyncio.gather(worker("a"), worker("b"))

    asyncio.run(scenario())
    assert events == ["a-in", "a-out", "b-in", "b-out"]
    assert not locks.is_held(("PROJ-1", "flow-1"))


def test_distinct_keys_interleave() -> None:
    locks = KeyedLock()
    events: list[str] = []

    async def worker(key: str) -> None:
        async with locks.hold(key):
            events.append(f"{key}-in")
            await asyncio.sleep(0)
            events.append(f"{key}-out")

    async def scenario() -> None:
        await asyncio.gather(worker("a"), worker("b"))

    asyncio.run(scenario())
    assert events == ["a-in", "b-in", "a-out", "b-out"]
