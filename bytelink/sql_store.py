"""SQLAlchemy-backed LinkStore.

Reservation is one INSERT into ``short_code_reservations``; the primary key
violation is the "already taken" signal, so two workers racing for the same
code cannot both win. Record mutations run inside a single transaction that
locks the row (``SELECT ... FOR UPDATE`` on PostgreSQL), applies the mutator
to the committed state and writes the result back before committing.

Key Behaviours
===============
- IntegrityError on reservation returns False; on insert/update it becomes CodeTakenError.
- Every other SQLAlchemyError is logged and re-raised as StoreUnavailableError.
- Nothing is retried here; retry policy belongs to the caller.
- SQLite has no row locks and one writer at a time, so on a SQLite engine every
  store call runs under a per-store asyncio.Lock and each transaction starts
  with BEGIN IMMEDIATE (see bytelink.database).
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, nullcontext

from sqlalchemy import func, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bytelink.database import is_sqlite
from bytelink.enums import LinkSort
from bytelink.exceptions import CodeTakenError, StoreUnavailableError
from bytelink.models import Link, ShortCodeReservation
from bytelink.schemas import ClickEvent, LinkRecord
from bytelink.store import LinkMutator, LinkStore

__all__ = ["SQLAlchemyLinkStore"]


def _to_record(link: Link) -> LinkRecord:
    return LinkRecord(
        id=link.id,
        original_url=link.original_url,
        short_code=link.short_code,
        short_url=link.short_url,
        clicks=link.clicks,
        qr_code=link.qr_code,
        analytics=[ClickEvent.model_validate(event) for event in (link.analytics or [])],
        is_active=link.is_active,
        created_at=link.created_at,
        updated_at=link.updated_at,
    )


def _apply(link: Link, record: LinkRecord) -> None:
    link.original_url = record.original_url
    link.short_code = record.short_code
    link.short_url = record.short_url
    link.clicks = record.clicks
    link.qr_code = record.qr_code
    # a fresh list so the JSON column is flagged dirty
    link.analytics = [event.model_dump(mode="json") for event in record.analytics]
    link.is_active = record.is_active
    link.updated_at = record.updated_at


class SQLAlchemyLinkStore(LinkStore):
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._logger = logger or logging.getLogger("bytelink")
        bind = session_factory.kw.get("bind")
        self._serial = asyncio.Lock() if bind is not None and is_sqlite(bind) else nullcontext()

    @asynccontextmanager
    async def _backend(self, operation: str) -> AsyncIterator[None]:
        async with self._serial:
            try:
                yield
            except IntegrityError:
                raise
            except SQLAlchemyError as exc:
                self._logger.error(f"Store {operation} failed: {exc}")
                raise StoreUnavailableError(f"Store {operation} failed") from exc

    async def get_by_code(self, code: str) -> LinkRecord | None:
        async with self._backend("get_by_code"), self._session_factory() as session:
            result = await session.execute(select(Link).where(Link.short_code == code))
            link = result.scalar_one_or_none()
            return _to_record(link) if link else None

    async def get_by_id(self, link_id: str) -> LinkRecord | None:
        async with self._backend("get_by_id"), self._session_factory() as session:
            link = await session.get(Link, link_id)
            return _to_record(link) if link else None

    async def reserve_if_absent(self, code: str) -> bool:
        async with self._backend("reserve"), self._session_factory() as session:
            session.add(ShortCodeReservation(code=code))
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                return False
            return True

    async def insert(self, record: LinkRecord) -> LinkRecord:
        async with self._backend("insert"), self._session_factory() as session:
            link = Link(id=record.id, created_at=record.created_at)
            _apply(link, record)
            session.add(link)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise CodeTakenError(record.short_code) from exc
            return record

    async def update(self, link_id: str, mutator: LinkMutator) -> LinkRecord | None:
        async with self._backend("update"), self._session_factory() as session:
            try:
                async with session.begin():
                    result = await session.execute(select(Link).where(Link.id == link_id).with_for_update())
                    link = result.scalar_one_or_none()
                    if link is None:
                        return None
                    updated = mutator(_to_record(link))
                    _apply(link, updated)
            except IntegrityError as exc:
                raise CodeTakenError(updated.short_code) from exc
            return updated

    async def list_active(
        self,
        sort: LinkSort = LinkSort.CREATED_DESC,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[LinkRecord]:
        if sort is LinkSort.CLICKS_DESC:
            ordering = (Link.clicks.desc(), Link.created_at.desc())
        else:
            ordering = (Link.created_at.desc(),)
        query = select(Link).where(Link.is_active.is_(True)).order_by(*ordering).offset(skip)
        if limit is not None:
            query = query.limit(limit)
        async with self._backend("list_active"), self._session_factory() as session:
            result = await session.execute(query)
            return [_to_record(link) for link in result.scalars().all()]

    async def count_active(self) -> int:
        async with self._backend("count_active"), self._session_factory() as session:
            result = await session.execute(select(func.count()).select_from(Link).where(Link.is_active.is_(True)))
            return int(result.scalar_one())

    async def ping(self) -> None:
        async with self._backend("ping"), self._session_factory() as session:
            await session.execute(text("SELECT 1"))
