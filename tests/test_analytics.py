import datetime

import pytest

from bytelink.analytics import (
    DIRECT_REFERER,
    analytics_for,
    clicks_by_day,
    count_since,
    normalize_referer,
    top_referers,
)
from conftest import NOW, make_event, make_record


def ago(**kwargs) -> datetime.datetime:
    return NOW - datetime.timedelta(**kwargs)


@pytest.mark.parametrize("referer", [None, ""])
def test_missing_referer_is_direct(referer) -> None:
    assert normalize_referer(referer) == DIRECT_REFERER


def test_referer_is_kept_verbatim() -> None:
    assert normalize_referer("https://google.com/search") == "https://google.com/search"


def test_window_boundaries_are_inclusive() -> None:
    events = [
        make_event(timestamp=ago(hours=24)),
        make_event(timestamp=ago(hours=24, seconds=1)),
        make_event(timestamp=ago(days=7)),
        make_event(timestamp=ago(days=30)),
        make_event(timestamp=ago(days=31)),
    ]
    summary = analytics_for(make_record(events=events), NOW)

    assert summary.total == 5
    assert summary.last_24_hours == 1
    assert summary.last_7_days == 3
    assert summary.last_30_days == 4


def test_windowed_counts_are_monotonic() -> None:
    events = [make_event(timestamp=ago(hours=h)) for h in (1, 20, 30, 100, 200, 500, 800)]
    summary = analytics_for(make_record(events=events), NOW)

    assert summary.last_24_hours <= summary.last_7_days <= summary.last_30_days <= summary.total
    assert (summary.last_24_hours, summary.last_7_days, summary.last_30_days) == (2, 4, 6)


def test_count_since_accepts_naive_reference() -> None:
    events = [make_event(timestamp=NOW)]
    assert count_since(events, NOW.replace(tzinfo=None)) == 1


def test_top_referers_ranks_by_count() -> None:
    events = [make_event(referer=r) for r in ["a.com", "b.com", "b.com", None, "b.com", "a.com"]]

    assert [(r.referer, r.count) for r in top_referers(events)] == [
        ("b.com", 3),
        ("a.com", 2),
        ("Direct", 1),
    ]


def test_top_referers_ties_keep_first_seen_order() -> None:
    events = [make_event(referer=r) for r in ["x.com", "", "y.com", "y.com", "x.com", None]]

    assert [(r.referer, r.count) for r in top_referers(events)] == [
        ("x.com", 2),
        ("Direct", 2),
        ("y.com", 2),
    ]


def test_top_referers_limit() -> None:
    events = [make_event(referer=f"site{i}.com") for i in range(8) for _ in range(8 - i)]

    ranked = top_referers(events)

    assert len(ranked) == 5
    assert [r.referer for r in ranked] == [f"site{i}.com" for i in range(5)]


def test_top_referers_empty() -> None:
    assert top_referers([]) == []


def test_clicks_by_day_is_zero_filled_for_new_link() -> None:
    days = clicks_by_day([], NOW)

    assert len(days) == 7
    assert all(day.clicks == 0 for day in days)
    assert days[0].date == "2024-03-09"
    assert days[-1].date == "2024-03-15"


def test_clicks_by_day_buckets_by_utc_day() -> None:
    events = [
        make_event(timestamp=datetime.datetime(2024, 3, 15, 0, 0, tzinfo=datetime.timezone.utc)),
        make_event(timestamp=datetime.datetime(2024, 3, 14, 23, 59, 59, tzinfo=datetime.timezone.utc)),
        make_event(timestamp=datetime.datetime(2024, 3, 9, 0, 0, tzinfo=datetime.timezone.utc)),
        # outside the seven-day range
        make_event(timestamp=datetime.datetime(2024, 3, 8, 23, 59, 59, tzinfo=datetime.timezone.utc)),
    ]

    by_day = {day.date: day.clicks for day in clicks_by_day(events, NOW)}

    assert by_day["2024-03-15"] == 1
    assert by_day["2024-03-14"] == 1
    assert by_day["2024-03-09"] == 1
    assert "2024-03-08" not in by_day
    assert sum(by_day.values()) == 3


def test_clicks_by_day_converts_offsets_to_utc() -> None:
    plus_two = datetime.timezone(datetime.timedelta(hours=2))
    # 01:00 at +02:00 is still the previous UTC day
    event = make_event(timestamp=datetime.datetime(2024, 3, 15, 1, 0, tzinfo=plus_two))

    by_day = {day.date: day.clicks for day in clicks_by_day([event], NOW)}

    assert by_day["2024-03-14"] == 1
    assert by_day["2024-03-15"] == 0


def test_clicks_by_day_dates_strictly_increase() -> None:
    dates = [day.date for day in clicks_by_day([], NOW, days=30)]

    assert len(dates) == 30
    assert dates == sorted(set(dates))


def test_total_comes_from_counter() -> None:
    record = make_record(events=[make_event(), make_event()])
    assert analytics_for(record, NOW).total == record.clicks == 2


def test_summary_uses_configured_limits() -> None:
    events = [make_event(referer=f"r{i}.com") for i in range(4)]
    summary = analytics_for(make_record(events=events), NOW, referer_limit=2, days=3)

    assert len(summary.top_referers) == 2
    assert [d.date for d in summary.clicks_by_day] == ["2024-03-13", "2024-03-14", "2024-03-15"]
