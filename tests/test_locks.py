import asyncio

from estate_shares.core.locks import KeyedLocks


def test_same_key_is_serialized():
    locks = KeyedLocks()
    events = []

    async def worker(name):
        async with locks.hold("property:1"):
            events.append(f"{name}:start")
            await asyncio.sleep(0.01)
            events.append(f"{name}:end")

    async def main():
        await asyncio.gather(worker("a"), worker("b"))

    asyncio.run(main())

    assert events == ["a:start", "a:end", "b:start", "b:end"]


def test_different_keys_run_concurrently():
    locks = KeyedLocks()
    events = []

    async def worker(key):
        async with locks.hold(key):
            events.append(f"{key}:start")
            await asyncio.sleep(0.01)
            events.append(f"{key}:end")

    async def main():
        await asyncio.gather(worker("p1"), worker("p2"))

    asyncio.run(main())

    assert events[:2] == ["p1:start", "p2:start"]


def test_released_locks_are_dropped():
    locks = KeyedLocks()

    async def main():
        async with locks.hold("property:1"):
            assert len(locks) == 1
        assert len(locks) == 0

    asyncio.run(main())
