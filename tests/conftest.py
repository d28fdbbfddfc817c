"""Shared pytest fixtures for store, service and aggregation tests."""

import datetime
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio

from bytelink.config import Settings
from bytelink.database import close_db, create_engine_from_settings, create_session_factory, init_db
from bytelink.link_service import LinkService
from bytelink.schemas import ClickEvent, LinkRecord
from bytelink.sql_store import SQLAlchemyLinkStore
from bytelink.store import InMemoryLinkStore

NOW = datetime.datetime(2024, 3, 15, 12, 0, 0, tzinfo=datetime.timezone.utc)


class StubQRRenderer:
    """Deterministic QR collaborator that remembers what it rendered."""

    def __init__(self) -> None:
        self.rendered: list[str] = []

    async def render(self, text: str) -> str:
        self.rendered.append(text)
        return f"qr:{text}"


class FailingQRRenderer:
    async def render(self, text: str) -> str:
        raise RuntimeError("renderer offline")


def make_event(
    timestamp: datetime.datetime = NOW,
    referer: str | None = None,
    user_agent: str | None = "pytest",
    ip: str | None = "127.0.0.1",
) -> ClickEvent:
    return ClickEvent(timestamp=timestamp, referer=referer, user_agent=user_agent, ip=ip)


def make_record(
    short_code: str = "abc123",
    events: list[ClickEvent] | None = None,
    created_at: datetime.datetime = NOW,
    is_active: bool = True,
    clicks: int | None = None,
) -> LinkRecord:
    events = events or []
    return LinkRecord(
        original_url=f"https://example.com/{short_code}",
        short_code=short_code,
        short_url=f"https://byte.link/{short_code}",
        clicks=len(events) if clicks is None else clicks,
        analytics=events,
        is_active=is_active,
        created_at=created_at,
        updated_at=created_at,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        BASE_URL="https://byte.link",
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        CODE_ALLOCATION_MAX_ATTEMPTS=5,
        CACHE_LOCK_RETRY_DELAY_SECONDS=0.0,
    )


@pytest.fixture
def qr_renderer() -> StubQRRenderer:
    return StubQRRenderer()


@pytest.fixture
def memory_store() -> InMemoryLinkStore:
    return InMemoryLinkStore()


@pytest.fixture
def service(memory_store: InMemoryLinkStore, qr_renderer: StubQRRenderer, settings: Settings) -> LinkService:
    return LinkService(memory_store, qr_renderer, settings=settings)


@pytest_asyncio.fixture
async def sql_store(settings: Settings) -> AsyncGenerator[SQLAlchemyLinkStore, None]:
    engine = create_engine_from_settings(settings)
    await init_db(engine)
    yield SQLAlchemyLinkStore(create_session_factory(engine))
    await close_db(engine)
