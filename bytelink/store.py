"""Store abstraction consumed by the ByteLink core, plus an in-process implementation.

The core never talks to a database directly. Every component receives a
LinkStore handle at construction and relies on exactly two atomic primitives:

- ``reserve_if_absent(code)``: a single compare-and-insert on the short code.
  The return value *is* the uniqueness signal; there is no separate
  existence check.
- ``update(link_id, mutator)``: an atomic read-modify-write of one record.
  The mutator receives the committed record and returns the new one; if it
  raises, nothing is written.

Flow Diagram - update(link_id, mutator)
=======================================
::
    ┌─────────────┐
    │ lock record │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ read current│
    └──────┬──────┘
           ▼
    ┌─────────────┐     raises
    │ mutator()   │ ───────────▶ nothing written
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ write back  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ return copy │
    └─────────────┘

Classes:
    LinkMutator:  Callable[[LinkRecord], LinkRecord].
    LinkStore:  Abstract store interface.
    InMemoryLinkStore:  asyncio.Lock backed store for tests and single-process use.
"""

import abc
import asyncio
from collections.abc import Callable

from bytelink.enums import LinkSort
from bytelink.exceptions import CodeTakenError
from bytelink.schemas import LinkRecord

__all__ = ["LinkMutator", "LinkStore", "InMemoryLinkStore", "sort_links"]

LinkMutator = Callable[[LinkRecord], LinkRecord]


def sort_links(records: list[LinkRecord], sort: LinkSort) -> list[LinkRecord]:
    """Order records the way list_active() promises to.

    CLICKS_DESC breaks ties on created_at, most recent first.
    """
    if sort is LinkSort.CLICKS_DESC:
        return sorted(records, key=lambda r: (r.clicks, r.created_at), reverse=True)
    return sorted(records, key=lambda r: r.created_at, reverse=True)


class LinkStore(abc.ABC):
    """Persistence abstraction for LinkRecords.

    Implementations must guarantee that ``reserve_if_absent`` is atomic and
    that a reserved code is never released, and that ``update`` is an
    atomic read-modify-write per record. Backend failures surface as
    StoreUnavailableError.
    """

    @abc.abstractmethod
    async def get_by_code(self, code: str) -> LinkRecord | None:
        """Return the record currently holding *code*, active or not."""

    @abc.abstractmethod
    async def get_by_id(self, link_id: str) -> LinkRecord | None: ...

    @abc.abstractmethod
    async def reserve_if_absent(self, code: str) -> bool:
        """Atomically reserve *code*; False if it was ever reserved before."""

    @abc.abstractmethod
    async def insert(self, record: LinkRecord) -> LinkRecord: ...

    @abc.abstractmethod
    async def update(self, link_id: str, mutator: LinkMutator) -> LinkRecord | None:
        """Apply *mutator* atomically; None if no record has *link_id*."""

    @abc.abstractmethod
    async def list_active(
        self,
        sort: LinkSort = LinkSort.CREATED_DESC,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[LinkRecord]: ...

    @abc.abstractmethod
    async def count_active(self) -> int: ...

    async def ping(self) -> None:
        """Raise if the backend is unreachable."""


class InMemoryLinkStore(LinkStore):
    """Process-local store; every read returns a deep copy."""

    def __init__(self) -> None:
        self._records: dict[str, LinkRecord] = {}
        self._ids_by_code: dict[str, str] = {}
        self._reserved: set[str] = set()
        self._lock = asyncio.Lock()

    async def get_by_code(self, code: str) -> LinkRecord | None:
        async with self._lock:
            link_id = self._ids_by_code.get(code)
            if link_id is None:
                return None
            return self._records[link_id].model_copy(deep=True)

    async def get_by_id(self, link_id: str) -> LinkRecord | None:
        async with self._lock:
            record = self._records.get(link_id)
            return record.model_copy(deep=True) if record else None

    async def reserve_if_absent(self, code: str) -> bool:
        async with self._lock:
            if code in self._reserved:
                return False
            self._reserved.add(code)
            return True

    async def insert(self, record: LinkRecord) -> LinkRecord:
        async with self._lock:
            holder = self._ids_by_code.get(record.short_code)
            if holder is not None and holder != record.id:
                raise CodeTakenError(record.short_code)
            self._reserved.add(record.short_code)
            self._records[record.id] = record.model_copy(deep=True)
            self._ids_by_code[record.short_code] = record.id
            return record.model_copy(deep=True)

    async def update(self, link_id: str, mutator: LinkMutator) -> LinkRecord | None:
        async with self._lock:
            current = self._records.get(link_id)
            if current is None:
                return None
            updated = mutator(current.model_copy(deep=True))
            if updated.short_code != current.short_code:
                holder = self._ids_by_code.get(updated.short_code)
                if holder is not None and holder != link_id:
                    raise CodeTakenError(updated.short_code)
                del self._ids_by_code[current.short_code]
                self._ids_by_code[updated.short_code] = link_id
                self._reserved.add(updated.short_code)
            self._records[link_id] = updated.model_copy(deep=True)
            return updated.model_copy(deep=True)

    async def list_active(
        self,
        sort: LinkSort = LinkSort.CREATED_DESC,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[LinkRecord]:
        async with self._lock:
            active = [r.model_copy(deep=True) for r in self._records.values() if r.is_active]
        ordered = sort_links(active, sort)
        end = None if limit is None else skip + limit
        return ordered[skip:end]

    async def count_active(self) -> int:
        async with self._lock:
            return sum(1 for r in self._records.values() if r.is_active)
