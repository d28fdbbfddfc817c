"""Cross-link dashboard aggregation.

``dashboard(links, now)`` is a pure function over a collection of records.
Inactive (soft-deleted) records are ignored everywhere.

Unlike the per-link clicks_by_day rollup, clicks_over_time is *not*
zero-filled: days without any click across all links are absent.
"""

import datetime
from collections import Counter
from collections.abc import Iterable

from bytelink.enums import LinkSort
from bytelink.schemas import DailyClicks, DashboardSummary, LinkRecord, LinkSummary
from bytelink.store import sort_links
from bytelink.timeutils import ensure_utc

__all__ = ["dashboard", "clicks_over_time"]


def _project(link: LinkRecord) -> LinkSummary:
    return LinkSummary.model_validate(link.model_dump(exclude={"analytics"}))


def clicks_over_time(
    links: Iterable[LinkRecord],
    now: datetime.datetime,
    window: datetime.timedelta = datetime.timedelta(days=7),
) -> list[DailyClicks]:
    since = ensure_utc(now) - window
    per_day = Counter(
        event.timestamp.date().isoformat()
        for link in links
        for event in link.analytics
        if event.timestamp >= since
    )
    return [DailyClicks(date=day, clicks=count) for day, count in sorted(per_day.items())]


def dashboard(
    links: Iterable[LinkRecord],
    now: datetime.datetime,
    list_limit: int = 5,
    window: datetime.timedelta = datetime.timedelta(days=7),
) -> DashboardSummary:
    active = [link for link in links if link.is_active]

    recent = sort_links(active, LinkSort.CREATED_DESC)[:list_limit]
    top = sort_links(active, LinkSort.CLICKS_DESC)[:list_limit]

    return DashboardSummary(
        total_urls=len(active),
        total_clicks=sum(link.clicks for link in active),
        recent_urls=[_project(link) for link in recent],
        top_urls=[_project(link) for link in top],
        clicks_over_time=clicks_over_time(active, now, window),
    )
