"""Lifecycle owner for the ByteLink core's shared resources.

ServiceManager builds every long-lived handle once (logger, database engine,
Redis clients, store stack, QR renderer) and hands the resulting LinkService
to the surrounding service. Nothing in the core keeps module-level clients;
two managers with different settings can live side by side.

Resource Diagram
================
::
    ServiceManager(settings)
    ├─ logger            "bytelink"
    ├─ engine            create_engine_from_settings()
    ├─ session_factory   create_session_factory()
    ├─ cache_writer      Redis primary        (optional)
    ├─ cache_reader      Redis replica        (optional)
    ├─ store             CachedLinkStore(SQLAlchemyLinkStore) or SQLAlchemyLinkStore
    └─ link_service      LinkService(store, QRCodeRenderer)

How to Use
===========
**Step 1 - Startup / shutdown**::
    async with ServiceManager(get_settings()) as manager:
        link = await manager.link_service.allocate("https://example.com")

**Step 2 - Health check**::
    health = await manager.health()
"""

import logging
from types import TracebackType

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncEngine

from bytelink.cache import CachedLinkStore, close_cache_clients, create_cache_clients
from bytelink.config import Settings, get_settings
from bytelink.database import close_db, create_engine_from_settings, create_session_factory, init_db
from bytelink.enums import HealthStatus
from bytelink.link_service import LinkService
from bytelink.qr import QRCodeRenderer, QRRenderer
from bytelink.schemas import HealthResponse
from bytelink.sql_store import SQLAlchemyLinkStore
from bytelink.store import LinkStore

__all__ = ["ServiceManager", "setup_logger"]


def setup_logger(level: str = "INFO") -> logging.Logger:
    """Configure the "bytelink" logger once."""
    logger = logging.getLogger("bytelink")
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level.upper())
    return logger


class ServiceManager:
    """Builds and tears down the store stack and the LinkService."""

    def __init__(
        self,
        settings: Settings | None = None,
        use_cache: bool = True,
        qr_renderer: QRRenderer | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.use_cache = use_cache
        self._qr_renderer = qr_renderer
        self._initialized = False
        self.logger = logging.getLogger("bytelink")
        self.engine: AsyncEngine | None = None
        self.cache_writer: redis.Redis | None = None
        self.cache_reader: redis.Redis | None = None
        self.store: LinkStore | None = None
        self._link_service: LinkService | None = None

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def link_service(self) -> LinkService:
        if self._link_service is None:
            raise RuntimeError("ServiceManager.initialize() has not been called")
        return self._link_service

    async def initialize(self) -> None:
        """Initialize shared resources once at startup."""
        if self._initialized:
            return
        self.logger = setup_logger(self.settings.LOG_LEVEL)
        try:
            self.engine = create_engine_from_settings(self.settings)
            await init_db(self.engine)

            store: LinkStore = SQLAlchemyLinkStore(create_session_factory(self.engine), self.logger)
            if self.use_cache:
                self.cache_writer, self.cache_reader = create_cache_clients(self.settings)
                store = CachedLinkStore(store, self.cache_writer, self.cache_reader, self.settings, self.logger)
        except Exception as e:
            self.logger.error(f"{self.settings.APP_NAME} core failed to initialize: {e}")
            await self.cleanup()
            raise
        self.store = store

        renderer = self._qr_renderer or QRCodeRenderer(self.settings)
        self._link_service = LinkService(store, renderer, self.settings, self.logger)
        self._initialized = True
        self.logger.info(f"{self.settings.APP_NAME} core initialized ({self.settings.APP_ENV})")

    async def cleanup(self) -> None:
        """Cleanup shared resources at shutdown."""
        if self.cache_writer is not None and self.cache_reader is not None:
            await close_cache_clients(self.cache_writer, self.cache_reader)
        if self.engine is not None:
            await close_db(self.engine)
        self.cache_writer = None
        self.cache_reader = None
        self.engine = None
        self.store = None
        self._link_service = None
        self._initialized = False

    async def health(self) -> HealthResponse:
        db_status = HealthStatus.HEALTHY
        cache_status = HealthStatus.HEALTHY

        try:
            await self.link_service.store.ping()
            self.logger.debug("Database health check passed")
        except Exception as e:
            self.logger.error(f"Database health check failed: {e}")
            db_status = HealthStatus.UNHEALTHY

        if self.cache_writer is not None:
            try:
                await self.cache_writer.ping()
                self.logger.debug("Cache health check passed")
            except Exception as e:
                self.logger.error(f"Cache health check failed: {e}")
                cache_status = HealthStatus.UNHEALTHY

        status = (
            HealthStatus.HEALTHY
            if db_status is HealthStatus.HEALTHY and cache_status is HealthStatus.HEALTHY
            else HealthStatus.UNHEALTHY
        )
        return HealthResponse(status=status, database=db_status, cache=cache_status)

    async def __aenter__(self) -> "ServiceManager":
        await self.initialize()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.cleanup()
