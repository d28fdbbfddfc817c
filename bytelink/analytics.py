"""Per-link analytics aggregation.

Every function here is a pure function of a record (or an event list) and a
reference time ``now``; nothing reads the clock, so results are reproducible
in tests and consistent across one request.

Aggregation Overview
====================
::
    analytics (append-only ClickEvent list)
          │
          ├─▶ count_since(now - 24h / 7d / 30d)   windowed counts, inclusive boundary
          ├─▶ top_referers()                      group → count → stable sort → top N
          └─▶ clicks_by_day()                     N UTC days, zero-filled, oldest first

Key Behaviours
===============
- A missing or empty referer is reported as "Direct"; the stored event is untouched.
- Referer ties keep first-seen order.
- clicks_by_day always returns ``days`` entries, even for a link with no clicks.
- ``total`` is the record's counter, which equals len(analytics) by construction.
"""

import datetime
from collections import Counter
from collections.abc import Iterable

from bytelink.schemas import AnalyticsSummary, ClickEvent, DailyClicks, LinkRecord, RefererCount
from bytelink.timeutils import ensure_utc, start_of_day

__all__ = [
    "DIRECT_REFERER",
    "WINDOW_24_HOURS",
    "WINDOW_7_DAYS",
    "WINDOW_30_DAYS",
    "normalize_referer",
    "count_since",
    "top_referers",
    "clicks_by_day",
    "analytics_for",
]

DIRECT_REFERER = "Direct"

WINDOW_24_HOURS = datetime.timedelta(hours=24)
WINDOW_7_DAYS = datetime.timedelta(days=7)
WINDOW_30_DAYS = datetime.timedelta(days=30)


def normalize_referer(referer: str | None) -> str:
    return referer if referer else DIRECT_REFERER


def count_since(events: Iterable[ClickEvent], since: datetime.datetime) -> int:
    since = ensure_utc(since)
    return sum(1 for event in events if event.timestamp >= since)


def top_referers(events: Iterable[ClickEvent], limit: int = 5) -> list[RefererCount]:
    # Counter keeps first-insertion order and sorted() is stable.
    counts = Counter(normalize_referer(event.referer) for event in events)
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [RefererCount(referer=referer, count=count) for referer, count in ranked[:limit]]


def clicks_by_day(events: Iterable[ClickEvent], now: datetime.datetime, days: int = 7) -> list[DailyClicks]:
    """Zero-filled daily click counts for the ``days`` UTC days ending with now's day."""
    today = ensure_utc(now).date()
    first_day = today - datetime.timedelta(days=days - 1)
    range_start = start_of_day(first_day)
    range_end = start_of_day(today + datetime.timedelta(days=1))

    buckets = {first_day + datetime.timedelta(days=offset): 0 for offset in range(days)}
    for event in events:
        if range_start <= event.timestamp < range_end:
            buckets[event.timestamp.date()] += 1

    return [DailyClicks(date=day.isoformat(), clicks=count) for day, count in buckets.items()]


def analytics_for(
    record: LinkRecord,
    now: datetime.datetime,
    referer_limit: int = 5,
    days: int = 7,
) -> AnalyticsSummary:
    now = ensure_utc(now)
    events = record.analytics
    return AnalyticsSummary(
        total=record.clicks,
        last_24_hours=count_since(events, now - WINDOW_24_HOURS),
        last_7_days=count_since(events, now - WINDOW_7_DAYS),
        last_30_days=count_since(events, now - WINDOW_30_DAYS),
        top_referers=top_referers(events, referer_limit),
        clicks_by_day=clicks_by_day(events, now, days),
    )
