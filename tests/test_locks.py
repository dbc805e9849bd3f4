import anyio
import pytest

from reservo.locks import KeyedLocks

pytestmark = pytest.mark.anyio


async def test_same_key_is_serialised():
    locks = KeyedLocks()
    events = []

    async def turn(name):
        async with locks.hold(("traviata", "34600111222")):
            events.append(f"{name}:start")
            await anyio.sleep(0.01)
            events.append(f"{name}:end")

    async with anyio.create_task_group() as tg:
        tg.start_soon(turn, "a")
        tg.start_soon(turn, "b")

    assert events in (
        ["a:start", "a:end", "b:start", "b:end"],
        ["b:start", "b:end", "a:start", "a:end"],
    )
    assert len(locks) == 0


async def test_different_keys_overlap():
    locks = KeyedLocks()
    inside = []
    peak = []

    async def turn(phone):
        async with locks.hold(("traviata", phone)):
            inside.append(phone)
            peak.append(len(inside))
            await anyio.sleep(0.01)
            inside.remove(phone)

    async with anyio.create_task_group() as tg:
        tg.start_soon(turn, "1")
        tg.start_soon(turn, "2")

    assert max(peak) == 2
