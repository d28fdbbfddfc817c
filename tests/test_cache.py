"""CachedLinkStore with mocked Redis clients."""

from unittest.mock import AsyncMock

import pytest
import redis.asyncio as redis

from bytelink.cache import CachedLinkStore, cache_key
from bytelink.recorder import append_click
from conftest import make_event, make_record


@pytest.fixture
def mock_redis() -> AsyncMock:
    client = AsyncMock(spec=redis.Redis)
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.setex = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    return client


@pytest.fixture
def cached_store(memory_store, mock_redis, settings) -> CachedLinkStore:
    return CachedLinkStore(memory_store, mock_redis, settings=settings)


@pytest.mark.asyncio
async def test_cache_hit_skips_store(cached_store, memory_store, mock_redis) -> None:
    record = make_record("hit")
    mock_redis.get.return_value = record.model_dump_json()
    memory_store.get_by_code = AsyncMock()

    found = await cached_store.get_by_code("hit")

    assert found == record
    mock_redis.get.assert_awaited_once_with(cache_key("hit"))
    memory_store.get_by_code.assert_not_awaited()


@pytest.mark.asyncio
async def test_cache_miss_populates_cache(cached_store, memory_store, mock_redis, settings) -> None:
    record = make_record("miss")
    await memory_store.insert(record)

    found = await cached_store.get_by_code("miss")

    assert found == record
    mock_redis.setex.assert_awaited_once_with(cache_key("miss"), settings.CACHE_TTL_SECONDS, record.model_dump_json())
    mock_redis.set.assert_awaited_once_with("lock:link:miss", "1", ex=settings.CACHE_LOCK_TTL_SECONDS, nx=True)
    mock_redis.delete.assert_awaited_once_with("lock:link:miss")


@pytest.mark.asyncio
async def test_unknown_code_is_not_cached(cached_store, mock_redis) -> None:
    assert await cached_store.get_by_code("ghost") is None
    mock_redis.setex.assert_not_awaited()


@pytest.mark.asyncio
async def test_busy_lock_retries_cache_before_store(cached_store, memory_store, mock_redis) -> None:
    record = make_record("busy")
    mock_redis.set.return_value = None
    mock_redis.get.side_effect = [None, record.model_dump_json()]
    memory_store.get_by_code = AsyncMock()

    assert await cached_store.get_by_code("busy") == record
    memory_store.get_by_code.assert_not_awaited()
    mock_redis.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_redis_errors_fall_back_to_store(cached_store, memory_store, mock_redis) -> None:
    record = make_record("down")
    await memory_store.insert(record)
    mock_redis.get.side_effect = redis.ConnectionError("connection refused")
    mock_redis.set.side_effect = redis.ConnectionError("connection refused")
    mock_redis.setex.side_effect = redis.ConnectionError("connection refused")

    assert await cached_store.get_by_code("down") == record


@pytest.mark.asyncio
async def test_corrupt_cache_entry_is_a_miss(cached_store, memory_store, mock_redis) -> None:
    record = make_record("corrupt")
    await memory_store.insert(record)
    mock_redis.get.return_value = '{"not": "a link"}'

    assert await cached_store.get_by_code("corrupt") == record


@pytest.mark.asyncio
async def test_update_writes_through(cached_store, memory_store, mock_redis, settings) -> None:
    record = make_record("wt")
    await memory_store.insert(record)

    updated = await cached_store.update(record.id, append_click("wt", make_event()))

    assert updated.clicks == 1
    mock_redis.setex.assert_awaited_once_with(cache_key("wt"), settings.CACHE_TTL_SECONDS, updated.model_dump_json())
    mock_redis.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_rename_invalidates_old_code(cached_store, memory_store, mock_redis) -> None:
    record = make_record("oldname")
    await memory_store.insert(record)

    updated = await cached_store.update(record.id, lambda r: r.model_copy(update={"short_code": "newname"}))

    assert updated.short_code == "newname"
    mock_redis.delete.assert_awaited_once_with(cache_key("oldname"))
    assert mock_redis.setex.await_args.args[0] == cache_key("newname")


@pytest.mark.asyncio
async def test_failed_update_leaves_cache_alone(cached_store, mock_redis) -> None:
    assert await cached_store.update("missing", lambda r: r) is None
    mock_redis.setex.assert_not_awaited()
    mock_redis.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_writes_pass_through(cached_store, memory_store, mock_redis) -> None:
    assert await cached_store.reserve_if_absent("pass") is True
    assert await memory_store.reserve_if_absent("pass") is False
    await cached_store.insert(make_record("pass"))

    assert await cached_store.count_active() == 1
    assert [r.short_code for r in await cached_store.list_active()] == ["pass"]
    mock_redis.setex.assert_not_awaited()
