"""Link service facade - the operations exposed to the HTTP/CLI layer.

This module wires the allocator, the click recorder and the two aggregators
around one explicitly injected LinkStore. It owns no connections: whoever
builds the service (normally ServiceManager) owns the store's lifecycle.

Architecture Overview
=====================
::
    ┌───────────────────────────────────────────────────────────────┐
    │                         LinkService                           │
    │  ┌──────────────┐  ┌──────────────┐  ┌─────────────────────┐  │
    │  │ CodeAllocator│  │ ClickRecorder│  │ analytics/dashboard │  │
    │  │ allocate     │  │ record_click │  │ (pure aggregation)  │  │
    │  │ update code  │  │              │  │                     │  │
    │  └──────┬───────┘  └──────┬───────┘  └──────────▲──────────┘  │
    └─────────┼─────────────────┼─────────────────────┼─────────────┘
              ▼                 ▼                     │ read-only
    ┌───────────────────────────────────────────────────────────────┐
    │      LinkStore (reserve_if_absent / update(id, mutator))      │
    └───────────────────────────────────────────────────────────────┘

Usage Examples
==============
```python
service = LinkService(store, QRCodeRenderer(settings), settings=settings)

link = await service.allocate("https://example.com/x")
result = await service.record_click(link.short_code, ClickEvent(referer="google.com"))
report = await service.link_analytics(link.id, now=utc_now())
summary = await service.dashboard(now=utc_now())
```
"""

import datetime
import logging
import math

from bytelink.allocator import CodeAllocator
from bytelink.analytics import analytics_for
from bytelink.config import Settings, get_settings
from bytelink.dashboard import dashboard
from bytelink.enums import LinkSort
from bytelink.exceptions import LinkNotFoundError
from bytelink.qr import QRRenderer
from bytelink.recorder import ClickRecorder
from bytelink.schemas import (
    AnalyticsSummary,
    ClickEvent,
    ClickResult,
    DashboardSummary,
    LinkAnalyticsReport,
    LinkListItem,
    LinkPage,
    LinkRecord,
    Pagination,
)
from bytelink.store import LinkMutator, LinkStore
from bytelink.timeutils import utc_now
from bytelink.validation import build_short_url, validate_original_url

__all__ = ["LinkService"]


def _require_active(link_id: str, mutator: LinkMutator) -> LinkMutator:
    def guarded(record: LinkRecord) -> LinkRecord:
        if not record.is_active:
            raise LinkNotFoundError(f"Link '{link_id}' not found")
        return mutator(record)

    return guarded


class LinkService:
    """Entry point for link allocation, click recording and reporting."""

    def __init__(
        self,
        store: LinkStore,
        qr_renderer: QRRenderer,
        settings: Settings | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or get_settings()
        self._logger = logger or logging.getLogger("bytelink")
        self._allocator = CodeAllocator(store, qr_renderer, self._settings, self._logger)
        self._recorder = ClickRecorder(store, self._logger)

    @property
    def store(self) -> LinkStore:
        return self._store

    async def allocate(self, original_url: str, custom_code: str | None = None) -> LinkRecord:
        return await self._allocator.allocate(original_url, custom_code)

    async def record_click(self, code: str, event: ClickEvent | None = None) -> ClickResult:
        return await self._recorder.record_click(code, event)

    async def get_link(self, link_id: str) -> LinkRecord:
        record = await self._store.get_by_id(link_id)
        if record is None or not record.is_active:
            raise LinkNotFoundError(f"Link '{link_id}' not found")
        return record

    async def update(
        self,
        link_id: str,
        original_url: str | None = None,
        custom_code: str | None = None,
    ) -> LinkRecord:
        """Change the target URL and/or the short code of an active link.

        A new code goes through the same validation and atomic reservation
        as allocate(); the short URL and QR artifact follow it. The old code
        stays reserved.
        """
        current = await self.get_link(link_id)

        new_url = validate_original_url(original_url) if original_url else None
        new_code = None
        new_short_url = None
        new_qr = None
        if custom_code and custom_code != current.short_code:
            new_code = await self._allocator.reserve_custom_code(custom_code)
            new_short_url = build_short_url(self._settings.BASE_URL, new_code)
            new_qr = await self._allocator.render_qr(new_short_url)

        def apply_changes(record: LinkRecord) -> LinkRecord:
            if new_url is not None:
                record.original_url = new_url
            if new_code is not None:
                record.short_code = new_code
                record.short_url = new_short_url
                record.qr_code = new_qr
            record.updated_at = utc_now()
            return record

        updated = await self._store.update(link_id, _require_active(link_id, apply_changes))
        if updated is None:
            raise LinkNotFoundError(f"Link '{link_id}' not found")
        if new_code is not None:
            self._logger.info(f"Link {link_id} moved from {current.short_code} to {new_code}")
        return updated

    async def deactivate(self, link_id: str) -> LinkRecord:
        def soft_delete(record: LinkRecord) -> LinkRecord:
            record.is_active = False
            record.updated_at = utc_now()
            return record

        updated = await self._store.update(link_id, _require_active(link_id, soft_delete))
        if updated is None:
            raise LinkNotFoundError(f"Link '{link_id}' not found")
        self._logger.info(f"Link {link_id} ({updated.short_code}) deactivated")
        return updated

    async def list_links(self, page: int = 1, limit: int | None = None) -> LinkPage:
        page = max(page, 1)
        limit = limit if limit and limit > 0 else self._settings.DEFAULT_PAGE_SIZE
        total = await self._store.count_active()
        records = await self._store.list_active(LinkSort.CREATED_DESC, skip=(page - 1) * limit, limit=limit)
        total_pages = math.ceil(total / limit)
        return LinkPage(
            urls=[LinkListItem.model_validate(r.model_dump(exclude={"analytics"})) for r in records],
            pagination=Pagination(
                current_page=page,
                total_pages=total_pages,
                total_urls=total,
                has_next=page < total_pages,
                has_prev=page > 1,
            ),
        )

    def analytics_for(self, record: LinkRecord, now: datetime.datetime) -> AnalyticsSummary:
        return analytics_for(
            record,
            now,
            referer_limit=self._settings.TOP_REFERERS_LIMIT,
            days=self._settings.DAILY_ROLLUP_DAYS,
        )

    async def link_analytics(self, link_id: str, now: datetime.datetime) -> LinkAnalyticsReport:
        record = await self.get_link(link_id)
        return LinkAnalyticsReport(
            id=record.id,
            short_code=record.short_code,
            short_url=record.short_url,
            original_url=record.original_url,
            created_at=record.created_at,
            analytics=self.analytics_for(record, now),
        )

    async def dashboard(self, now: datetime.datetime) -> DashboardSummary:
        links = await self._store.list_active()
        return dashboard(
            links,
            now,
            list_limit=self._settings.DASHBOARD_LIST_LIMIT,
            window=datetime.timedelta(days=self._settings.DASHBOARD_WINDOW_DAYS),
        )
