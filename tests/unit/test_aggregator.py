"""
Unit tests for ClickAggregator.

Covers:
    - dense series: one entry per day, zeros included, chronological
    - UTC day bucketing at the midnight boundary, including non-UTC inputs
    - per-owner totals across several links
    - range validation and query-string parsing
    - bucket sum never exceeds click_count after resolutions
    - timeouts and explicit cancellation
    - retention prune
"""

import threading
from datetime import date, datetime, timedelta, timezone

import pytest

from shortlink_platform.analytics.aggregator import ClickAggregator, date_range
from shortlink_platform.errors import AnalyticsTimeout, InvalidRange, QueryCancelled
from shortlink_platform.models import ClickEvent, DailyCount
from shortlink_platform.storage.storage import Storage

UTC = timezone.utc


def _click(agg, code, *args):
    agg.record_click(ClickEvent(code, datetime(*args, tzinfo=UTC)))


def test_date_range_inclusive():
    assert date_range(date(2024, 2, 28), date(2024, 3, 1)) == [
        date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1),
    ]


def test_totals_by_code_dense_with_zero_days(aggregator):
    _click(aggregator, "abc", 2024, 3, 1, 9)
    _click(aggregator, "abc", 2024, 3, 1, 23, 59)
    _click(aggregator, "abc", 2024, 3, 3, 0, 0)
    _click(aggregator, "zzz", 2024, 3, 2, 12)  # other code

    series = aggregator.totals_by_code("abc", date(2024, 2, 29), date(2024, 3, 4))
    assert series == [
        DailyCount(date(2024, 2, 29), 0),
        DailyCount(date(2024, 3, 1), 2),
        DailyCount(date(2024, 3, 2), 0),
        DailyCount(date(2024, 3, 3), 1),
        DailyCount(date(2024, 3, 4), 0),
    ]
    assert series[1].to_dict() == {"date": "2024-03-01", "count": 2}


@pytest.mark.parametrize("days", [1, 2, 31, 366])
def test_series_length_matches_inclusive_day_count(aggregator, days):
    start = date(2024, 1, 1)
    end = start + timedelta(days=days - 1)
    series = aggregator.totals_by_code("none", start, end)
    assert len(series) == days
    assert [p.date for p in series] == date_range(start, end)
    assert all(p.count == 0 for p in series)


def test_bucketing_uses_utc_day(aggregator):
    # 23:30 at UTC-05:00 is 04:30 UTC the next day.
    minus_five = timezone(timedelta(hours=-5))
    aggregator.record_click(ClickEvent("abc", datetime(2024, 3, 1, 23, 30, tzinfo=minus_five)))
    series = aggregator.totals_by_code("abc", date(2024, 3, 1), date(2024, 3, 2))
    assert [p.count for p in series] == [0, 1]


def test_events_outside_range_are_ignored(aggregator):
    _click(aggregator, "abc", 2024, 2, 29, 23, 59, 59)
    _click(aggregator, "abc", 2024, 3, 2, 0, 0, 0)
    series = aggregator.totals_by_code("abc", date(2024, 3, 1), date(2024, 3, 1))
    assert series == [DailyCount(date(2024, 3, 1), 0)]


def test_totals_by_owner_sums_owned_links_only(storage, aggregator):
    storage.create_if_absent("mine001", "https://a.com", owner_id="alice")
    storage.create_if_absent("mine002", "https://b.com", owner_id="alice")
    storage.create_if_absent("theirs1", "https://c.com", owner_id="bob")
    _click(aggregator, "mine001", 2024, 3, 1, 10)
    _click(aggregator, "mine002", 2024, 3, 1, 11)
    _click(aggregator, "mine002", 2024, 3, 2, 11)
    _click(aggregator, "theirs1", 2024, 3, 1, 11)

    series = aggregator.totals_by_owner("alice", date(2024, 3, 1), date(2024, 3, 2))
    assert [p.count for p in series] == [2, 1]
    assert [p.count for p in aggregator.totals_by_owner("nobody", date(2024, 3, 1), date(2024, 3, 2))] == [0, 0]


def test_reversed_range_rejected(aggregator):
    with pytest.raises(InvalidRange):
        aggregator.totals_by_code("abc", date(2024, 3, 2), date(2024, 3, 1))


def test_too_wide_range_rejected(storage):
    agg = ClickAggregator(storage, max_range_days=7)
    try:
        agg.totals_by_code("abc", date(2024, 3, 1), date(2024, 3, 7))
        with pytest.raises(InvalidRange, match="at most 7"):
            agg.totals_by_code("abc", date(2024, 3, 1), date(2024, 3, 8))
    finally:
        agg.close()


def test_parse_range_defaults_and_errors(storage):
    agg = ClickAggregator(storage, default_range_days=7)
    try:
        assert agg.parse_range(None, None, today=date(2024, 3, 10)) == (date(2024, 3, 4), date(2024, 3, 10))
        assert agg.parse_range("2024-03-01", "2024-03-02") == (date(2024, 3, 1), date(2024, 3, 2))
        assert agg.parse_range(None, "2024-03-02") == (date(2024, 2, 25), date(2024, 3, 2))
        with pytest.raises(InvalidRange, match="YYYY-MM-DD"):
            agg.parse_range("yesterday", None)
        with pytest.raises(InvalidRange):
            agg.parse_range("2024-03-05", "2024-03-01")
    finally:
        agg.close()


def test_bucket_sum_never_exceeds_click_count(service, storage, aggregator):
    link = service.shorten("https://example.com/x")
    base = datetime(2024, 3, 1, 8, tzinfo=UTC)
    for hours in range(0, 72, 5):
        service.resolve(link.code, client_timestamp=base + timedelta(hours=hours))

    series = aggregator.totals_by_code(link.code, date(2024, 2, 1), date(2024, 3, 31))
    assert sum(p.count for p in series) <= storage.get(link.code).click_count
    assert sum(p.count for p in series) == storage.get(link.code).click_count


class _BlockingStorage(Storage):
    """Click scan that stalls on every event until released."""

    def __init__(self):
        super().__init__()
        self.release = threading.Event()
        self.scanned = 0

    def iter_clicks(self, codes, start, end):
        for event in super().iter_clicks(codes, start, end):
            self.release.wait(2)
            self.scanned += 1
            yield event


def test_query_timeout_raises_and_cancels_scan():
    store = _BlockingStorage()
    for minute in range(50):
        store.append_click(ClickEvent("abc", datetime(2024, 3, 1, 0, minute, tzinfo=UTC)))
    agg = ClickAggregator(store, timeout=0.05)
    try:
        with pytest.raises(AnalyticsTimeout):
            agg.totals_by_code("abc", date(2024, 3, 1), date(2024, 3, 1))
    finally:
        store.release.set()
        agg.close()
    assert store.scanned < 50


def test_explicit_cancel_raises_query_cancelled(aggregator):
    _click(aggregator, "abc", 2024, 3, 1, 9)
    token = threading.Event()
    token.set()
    with pytest.raises(QueryCancelled):
        aggregator.totals_by_code("abc", date(2024, 3, 1), date(2024, 3, 1), cancel=token)


def test_prune_respects_retention(storage):
    agg = ClickAggregator(storage, retention_days=7)
    try:
        storage.append_click(ClickEvent("abc", datetime(2024, 3, 1, tzinfo=UTC)))
        storage.append_click(ClickEvent("abc", datetime(2024, 3, 9, tzinfo=UTC)))
        assert agg.prune(now=datetime(2024, 3, 10, 12, tzinfo=UTC)) == 1
        assert [e.timestamp.day for e in storage.clicks] == [9]
    finally:
        agg.close()


def test_prune_disabled_by_default(aggregator, storage):
    storage.append_click(ClickEvent("abc", datetime(2000, 1, 1, tzinfo=UTC)))
    assert aggregator.prune() == 0
    assert len(storage.clicks) == 1
