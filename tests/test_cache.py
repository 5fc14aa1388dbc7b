import asyncio

from conftest import run
from services.utils.cache import TTLCache
from services.utils.locks import ClanLocks


def test_cache_hit_miss_and_expiry():
    cache = TTLCache(default_ttl=10)

    async def scenario():
        assert await cache.get("warlog:A") is None
        await cache.set("warlog:A", [1, 2])
        assert await cache.get("warlog:A") == [1, 2]
        # Force the entry past its expiration
        value, _ = cache._cache["warlog:A"]
        cache._cache["warlog:A"] = (value, 0)
        return await cache.get("warlog:A")

    assert run(scenario()) is None
    assert cache.get_stats()["hits"] == 1
    assert cache.get_stats()["misses"] == 2


def test_zero_ttl_disables_caching():
    cache = TTLCache(default_ttl=0)

    async def scenario():
        await cache.set("k", "v")
        return await cache.get("k")

    assert run(scenario()) is None


def test_full_cache_drops_oldest_entries():
    cache = TTLCache(default_ttl=60, max_size=5)

    async def scenario():
        for i in range(6):
            await cache.set(f"k{i}", i)
        return await cache.get("k0"), await cache.get("k5")

    assert run(scenario()) == (None, 5)


def test_clan_locks_are_per_clan():
    locks = ClanLocks()

    async def scenario():
        order = []

        async def worker(tag, name):
            async with locks.for_clan(tag):
                order.append(f"{name}-start")
                await asyncio.sleep(0.01)
                order.append(f"{name}-end")

        await asyncio.gather(worker("A", "first"), worker("A", "second"), worker("B", "other"))
        return order

    order = run(scenario())
    assert order.index("first-end") < order.index("second-start")
    assert order.index("other-start") < order.index("first-end")
    assert len(locks) == 2
