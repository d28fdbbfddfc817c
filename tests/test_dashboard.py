import datetime

import pytest

from bytelink.dashboard import clicks_over_time, dashboard
from bytelink.schemas import LinkSummary
from conftest import NOW, make_event, make_record


def days_ago(n: int, **kwargs) -> datetime.datetime:
    return NOW - datetime.timedelta(days=n, **kwargs)


@pytest.fixture
def links():
    return [
        make_record("old", events=[make_event(timestamp=days_ago(2))] * 3, created_at=days_ago(10)),
        make_record("mid", events=[make_event(timestamp=days_ago(0))], created_at=days_ago(5)),
        make_record("new", created_at=days_ago(1)),
        make_record("gone", events=[make_event(timestamp=days_ago(1))] * 9, created_at=days_ago(0), is_active=False),
    ]


def test_empty_dashboard() -> None:
    summary = dashboard([], NOW)

    assert summary.total_urls == 0
    assert summary.total_clicks == 0
    assert summary.recent_urls == []
    assert summary.top_urls == []
    assert summary.clicks_over_time == []


def test_totals_ignore_inactive_links(links) -> None:
    summary = dashboard(links, NOW)

    assert summary.total_urls == 3
    assert summary.total_clicks == 4


def test_recent_and_top_ordering(links) -> None:
    summary = dashboard(links, NOW)

    assert [link.short_code for link in summary.recent_urls] == ["new", "mid", "old"]
    assert [link.short_code for link in summary.top_urls] == ["old", "mid", "new"]


def test_top_urls_ties_prefer_newer_links() -> None:
    records = [
        make_record("first", events=[make_event()], created_at=days_ago(3)),
        make_record("second", events=[make_event()], created_at=days_ago(2)),
    ]

    assert [link.short_code for link in dashboard(records, NOW).top_urls] == ["second", "first"]


def test_lists_are_capped() -> None:
    records = [make_record(f"c{i}", created_at=days_ago(i)) for i in range(8)]

    summary = dashboard(records, NOW, list_limit=5)

    assert len(summary.recent_urls) == 5
    assert len(summary.top_urls) == 5
    assert summary.total_urls == 8


def test_projection_drops_click_stream(links) -> None:
    summary = dashboard(links, NOW)

    item = summary.top_urls[0]
    assert isinstance(item, LinkSummary)
    assert "analytics" not in item.model_dump()
    assert item.clicks == 3
    assert item.short_url == "https://byte.link/old"


def test_clicks_over_time_is_not_zero_filled(links) -> None:
    series = clicks_over_time([link for link in links if link.is_active], NOW)

    assert [(d.date, d.clicks) for d in series] == [("2024-03-13", 3), ("2024-03-15", 1)]


def test_clicks_over_time_window() -> None:
    record = make_record(
        events=[
            make_event(timestamp=days_ago(8)),
            make_event(timestamp=days_ago(7)),
            make_event(timestamp=days_ago(3)),
        ]
    )

    series = clicks_over_time([record], NOW)

    assert [(d.date, d.clicks) for d in series] == [("2024-03-08", 1), ("2024-03-12", 1)]


def test_clicks_over_time_merges_links() -> None:
    records = [
        make_record("a", events=[make_event(timestamp=days_ago(1))]),
        make_record("b", events=[make_event(timestamp=days_ago(1)), make_event(timestamp=days_ago(4))]),
    ]

    series = dashboard(records, NOW).clicks_over_time

    assert [(d.date, d.clicks) for d in series] == [("2024-03-11", 1), ("2024-03-14", 2)]
