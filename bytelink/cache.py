"""Redis read-through cache in front of a LinkStore.

CachedLinkStore wraps any LinkStore and caches ``get_by_code`` lookups, the
hot path of every click. Writes always go to the wrapped store; the cache is
refreshed afterwards and is never the source of truth: the click mutator
re-checks liveness against the committed record, so a stale cache entry can
at worst cost one extra store round-trip.

Flow Diagram - get_by_code()
============================
::
    ┌─────────────┐
    │ GET link:   │
    │ code:{code} │ (replica)
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ SET NX  │  │ Return  │
│ lock    │  │ cached  │
└────┬────┘  └─────────┘
     ▼
┌─────────┐  lock busy: short retries on the cache
│ inner   │
│ store   │
└────┬────┘
     ▼
┌─────────┐
│ SETEX   │
│ (TTL)   │
└─────────┘

How to Use
===========
**Step 1 - Build the clients**::
    cache_write, cache_read = create_cache_clients(settings)

**Step 2 - Wrap the store**::
    store = CachedLinkStore(SQLAlchemyLinkStore(session_factory), cache_write, cache_read)

**Step 3 - Cleanup on shutdown**::
    await close_cache_clients(cache_write, cache_read)

Key Behaviours
===============
- Redis failures are logged and the call falls through to the wrapped store.
- After update() the new record is written through under its code, and the
  entry for a code the record moved away from is deleted.
- Reservations, inserts, listings and counts pass straight through.

Classes:
    CachedLinkStore:  LinkStore decorator with a Redis lookup cache.

Functions:
    create_cache_clients():  Primary (write) and replica (read) Redis clients.
    close_cache_clients():  Closes both clients.
"""

import asyncio
import logging

import redis.asyncio as redis
from prometheus_client import Counter
from pydantic import ValidationError

from bytelink.config import Settings, get_settings
from bytelink.enums import CacheStatus, LinkSort
from bytelink.schemas import LinkRecord
from bytelink.store import LinkMutator, LinkStore

__all__ = ["CachedLinkStore", "create_cache_clients", "close_cache_clients", "cache_key"]

CACHE_LOOKUPS_TOTAL = Counter(
    "bytelink_cache_lookups_total",
    "Short code lookups by cache outcome",
    ["cache_hit"],
)
CACHE_ERRORS_TOTAL = Counter(
    "bytelink_cache_errors_total",
    "Redis operations that failed and were bypassed",
)


def cache_key(code: str) -> str:
    return f"link:code:{code}"


def create_cache_clients(settings: Settings) -> tuple[redis.Redis, redis.Redis]:
    cache_write = redis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)
    # Use replica URL if available, otherwise fall back to the primary
    replica_url = settings.REDIS_REPLICA_URL or settings.REDIS_URL
    cache_read = redis.from_url(replica_url, encoding="utf-8", decode_responses=True)
    return cache_write, cache_read


async def close_cache_clients(cache_write: redis.Redis, cache_read: redis.Redis) -> None:
    await cache_write.aclose()
    if cache_read is not cache_write:
        await cache_read.aclose()


class CachedLinkStore(LinkStore):
    def __init__(
        self,
        inner: LinkStore,
        cache_write: redis.Redis,
        cache_read: redis.Redis | None = None,
        settings: Settings | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self._inner = inner
        self._cache_write = cache_write
        self._cache_read = cache_read if cache_read is not None else cache_write
        self._settings = settings or get_settings()
        self._logger = logger or logging.getLogger("bytelink")

    async def get_by_code(self, code: str) -> LinkRecord | None:
        cached = await self._lookup_from_cache(code)
        if cached is not None:
            CACHE_LOOKUPS_TOTAL.labels(cache_hit=CacheStatus.HIT).inc()
            return cached
        CACHE_LOOKUPS_TOTAL.labels(cache_hit=CacheStatus.MISS).inc()

        lock_acquired = await self._acquire_lock(code)
        if not lock_acquired:
            for _ in range(self._settings.CACHE_LOCK_RETRY_COUNT):
                await asyncio.sleep(self._settings.CACHE_LOCK_RETRY_DELAY_SECONDS)
                cached = await self._lookup_from_cache(code)
                if cached is not None:
                    return cached

        try:
            record = await self._inner.get_by_code(code)
            if record is not None:
                await self._cache_record(record)
            return record
        finally:
            if lock_acquired:
                await self._release_lock(code)

    async def get_by_id(self, link_id: str) -> LinkRecord | None:
        return await self._inner.get_by_id(link_id)

    async def reserve_if_absent(self, code: str) -> bool:
        return await self._inner.reserve_if_absent(code)

    async def insert(self, record: LinkRecord) -> LinkRecord:
        return await self._inner.insert(record)

    async def update(self, link_id: str, mutator: LinkMutator) -> LinkRecord | None:
        previous_codes: list[str] = []

        def capture(current: LinkRecord) -> LinkRecord:
            previous_codes.append(current.short_code)
            return mutator(current)

        updated = await self._inner.update(link_id, capture)
        if updated is None:
            return None

        for code in previous_codes:
            if code != updated.short_code:
                await self._invalidate(code)
        await self._cache_record(updated)
        return updated

    async def list_active(
        self,
        sort: LinkSort = LinkSort.CREATED_DESC,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[LinkRecord]:
        return await self._inner.list_active(sort, skip, limit)

    async def count_active(self) -> int:
        return await self._inner.count_active()

    async def ping(self) -> None:
        await self._inner.ping()

    async def _lookup_from_cache(self, code: str) -> LinkRecord | None:
        try:
            cached_data = await self._cache_read.get(cache_key(code))
        except redis.RedisError as exc:
            CACHE_ERRORS_TOTAL.inc()
            self._logger.warning(f"Cache read failed for {code}: {exc}")
            return None
        if not cached_data:
            return None
        try:
            return LinkRecord.model_validate_json(cached_data)
        except ValidationError as exc:
            self._logger.error(f"Cache deserialization error for {code}: {exc}")
            return None

    async def _cache_record(self, record: LinkRecord) -> None:
        try:
            await self._cache_write.setex(
                cache_key(record.short_code),
                self._settings.CACHE_TTL_SECONDS,
                record.model_dump_json(),
            )
        except redis.RedisError as exc:
            CACHE_ERRORS_TOTAL.inc()
            self._logger.warning(f"Cache write failed for {record.short_code}: {exc}")

    async def _invalidate(self, code: str) -> None:
        try:
            await self._cache_write.delete(cache_key(code))
        except redis.RedisError as exc:
            CACHE_ERRORS_TOTAL.inc()
            self._logger.warning(f"Cache invalidation failed for {code}: {exc}")

    async def _acquire_lock(self, code: str) -> bool:
        try:
            locked = await self._cache_write.set(
                f"lock:link:{code}",
                "1",
                ex=self._settings.CACHE_LOCK_TTL_SECONDS,
                nx=True,
            )
        except redis.RedisError as exc:
            CACHE_ERRORS_TOTAL.inc()
            self._logger.warning(f"Cache lock failed for {code}: {exc}")
            return False
        return bool(locked)

    async def _release_lock(self, code: str) -> None:
        try:
            await self._cache_write.delete(f"lock:link:{code}")
        except redis.RedisError as exc:
            CACHE_ERRORS_TOTAL.inc()
            self._logger.warning(f"Cache unlock failed for {code}: {exc}")
