import asyncio

import pytest

from ratelimit.counter_store import (
    InMemoryCounterStore,
    RedisCounterStore,
    create_counter_store,
    expiry_seconds,
)


def test_in_memory_increment_and_expire(clock):
    store = InMemoryCounterStore(clock=clock)

    async def scenario():
        assert await store.get("k") is None
        assert await store.increment_and_expire("k", 60) == 1
        assert await store.increment_and_expire("k", 60) == 2
        assert await store.get("k") == "2"
        clock.advance(60_000)
        return await store.get("k")

    assert asyncio.run(scenario()) is None


def test_in_memory_expire_missing_key_returns_false(clock):
    store = InMemoryCounterStore(clock=clock)
    assert asyncio.run(store.expire("missing", 10)) is False


def test_in_memory_increment_keeps_existing_ttl(clock):
    store = InMemoryCounterStore(clock=clock)

    async def scenario():
        await store.increment_and_expire("k", 1)
        await store.increment("k")
        clock.advance(1_000)
        return await store.get("k")

    assert asyncio.run(scenario()) is None


def test_expiry_seconds_rounds_up():
    assert expiry_seconds(60_000) == 60
    assert expiry_seconds(1_500) == 2


class FakePipeline:
    def __init__(self, results):
        self.results = results
        self.commands = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def incr(self, key):
        self.commands.append(("incr", key))

    def expire(self, key, seconds):
        self.commands.append(("expire", key, seconds))

    async def execute(self, raise_on_error=True):
        return self.results


class FakeRedis:
    def __init__(self, results):
        self.pipe = FakePipeline(results)
        self.transaction = None

    def pipeline(self, transaction=True):
        self.transaction = transaction
        return self.pipe


def test_redis_store_pipelines_incr_then_expire():
    redis = FakeRedis([3, True])
    store = RedisCounterStore("redis://unused", client=redis)

    assert asyncio.run(store.increment_and_expire("rate_limit:0", 60)) == 3
    assert redis.transaction is True
    assert redis.pipe.commands == [("incr", "rate_limit:0"), ("expire", "rate_limit:0", 60)]


def test_redis_store_empty_pipeline_result_is_none():
    store = RedisCounterStore("redis://unused", client=FakeRedis([]))
    assert asyncio.run(store.increment_and_expire("k", 60)) is None


def test_redis_store_raises_increment_error():
    store = RedisCounterStore("redis://unused", client=FakeRedis([ConnectionError("down"), True]))
    with pytest.raises(ConnectionError):
        asyncio.run(store.increment_and_expire("k", 60))


def test_create_counter_store_defaults_to_memory(clock):
    assert isinstance(create_counter_store(None, clock), InMemoryCounterStore)
