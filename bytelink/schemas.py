"""Pydantic schemas for the records and summaries handled by the ByteLink core.

This module defines the persisted link record, its click events, and the
read-only summaries produced by the analytics and dashboard aggregators.

Schema Hierarchy
=================
::
    LinkRecord (persisted)
    ├─ id: str
    ├─ original_url: str
    ├─ short_code: str (unique, never reused)
    ├─ short_url: str (BASE_URL + "/" + short_code)
    ├─ clicks: int (== len(analytics))
    ├─ qr_code: str | None
    ├─ analytics: list[ClickEvent] (append-only)
    ├─ is_active: bool
    ├─ created_at: datetime
    └─ updated_at: datetime

    AnalyticsSummary (per link)
    ├─ total, last_24_hours, last_7_days, last_30_days
    ├─ top_referers: list[RefererCount]
    └─ clicks_by_day: list[DailyClicks] (always zero-filled)

    DashboardSummary (cross link)
    ├─ total_urls, total_clicks
    ├─ recent_urls, top_urls: list[LinkSummary]
    └─ clicks_over_time: list[DailyClicks] (no zero-fill)

How to Use
===========
**Step 1 - Build a click event**::
    event = ClickEvent(user_agent="curl/8.0", ip="10.0.0.1", referer="google.com")

**Step 2 - Serialize a record**::
    payload = record.model_dump_json()
    record = LinkRecord.model_validate_json(payload)

Key Behaviours
===============
- All datetime fields are timezone-aware UTC; naive input is taken as UTC.
- Summaries never carry the analytics stream.
- Records are treated as values: stores hand out copies, mutators return new records.

Classes:
    ClickEvent:  One recorded resolution of a short link.
    LinkRecord:  A shortened link with its embedded click stream.
    ClickResult:  Redirect target plus updated click count.
    RefererCount, DailyClicks:  Aggregation rows.
    AnalyticsSummary, LinkAnalyticsReport:  Per-link statistics.
    LinkSummary, DashboardSummary:  Dashboard projections.
    LinkListItem:  Listing projection (adds the QR artifact).
    Pagination, LinkPage:  Paged listing of active links.
    HealthResponse:  Store/cache health snapshot.
"""

import datetime
import uuid

from pydantic import BaseModel, Field, field_validator

from bytelink.enums import HealthStatus
from bytelink.timeutils import ensure_utc, utc_now

__all__ = [
    "ClickEvent",
    "LinkRecord",
    "ClickResult",
    "RefererCount",
    "DailyClicks",
    "AnalyticsSummary",
    "LinkAnalyticsReport",
    "LinkSummary",
    "LinkListItem",
    "DashboardSummary",
    "Pagination",
    "LinkPage",
    "HealthResponse",
    "new_link_id",
]


def new_link_id() -> str:
    return uuid.uuid4().hex


class ClickEvent(BaseModel):
    """A single click appended to a link's analytics stream."""

    timestamp: datetime.datetime = Field(default_factory=utc_now)
    user_agent: str | None = None
    ip: str | None = None
    referer: str | None = Field(None, description="Raw Referer header; missing or empty counts as 'Direct'.")

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime.datetime) -> datetime.datetime:
        return ensure_utc(v)


class LinkRecord(BaseModel):
    id: str = Field(default_factory=new_link_id)
    original_url: str
    short_code: str
    short_url: str
    clicks: int = Field(0, ge=0)
    qr_code: str | None = None
    analytics: list[ClickEvent] = Field(default_factory=list)
    is_active: bool = True
    created_at: datetime.datetime = Field(default_factory=utc_now)
    updated_at: datetime.datetime = Field(default_factory=utc_now)

    @field_validator("created_at", "updated_at")
    @classmethod
    def normalize_datetimes(cls, v: datetime.datetime) -> datetime.datetime:
        return ensure_utc(v)

    def __repr__(self) -> str:
        return f"<LinkRecord(id={self.id}, short_code='{self.short_code}', clicks={self.clicks})>"


class ClickResult(BaseModel):
    original_url: str
    clicks: int


class RefererCount(BaseModel):
    referer: str
    count: int


class DailyClicks(BaseModel):
    date: str = Field(..., description="UTC calendar day, YYYY-MM-DD")
    clicks: int


class AnalyticsSummary(BaseModel):
    total: int
    last_24_hours: int
    last_7_days: int
    last_30_days: int
    top_referers: list[RefererCount]
    clicks_by_day: list[DailyClicks]


class LinkAnalyticsReport(BaseModel):
    id: str
    short_code: str
    short_url: str
    original_url: str
    created_at: datetime.datetime
    analytics: AnalyticsSummary


class LinkSummary(BaseModel):
    """Dashboard/listing projection of a LinkRecord without its click stream."""

    id: str
    short_code: str
    short_url: str
    original_url: str
    clicks: int
    created_at: datetime.datetime

    model_config = {"from_attributes": True}


class LinkListItem(LinkSummary):
    qr_code: str | None = None


class DashboardSummary(BaseModel):
    total_urls: int
    total_clicks: int
    recent_urls: list[LinkSummary]
    top_urls: list[LinkSummary]
    clicks_over_time: list[DailyClicks]


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_urls: int
    has_next: bool
    has_prev: bool


class LinkPage(BaseModel):
    urls: list[LinkListItem]
    pagination: Pagination


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus
