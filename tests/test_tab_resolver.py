"""
Tests for candidate probing and historical series assembly.

Usage:
    pytest tests/test_tab_resolver.py -v
"""

import threading
from datetime import datetime, timedelta

import pytest
import pytz

from availability_dashboard.integrations.published_sheet import TableSheetSource
from availability_dashboard.integrations.tab_names import tab_candidates
from availability_dashboard.integrations.tab_resolver import SeriesAssembler, TabResolver
from availability_dashboard.models import AnalyticsReport, DaySnapshot

from conftest import NAMING, RULES, TODAY, make_row, make_service, standard_rows, tab_name, to_csv

AGGREGATE_ONLY = to_csv([make_row("42 (88.5%)"), make_row("17 (12.0%)"), make_row("3 (1%)")])


class FlakySource(TableSheetSource):
    """Raises a raw socket error for any tab naming one of ``broken_stamps``."""

    def __init__(self, tabs, broken_stamps):
        super().__init__(tabs)
        self.broken_stamps = tuple(broken_stamps)

    def fetch_published_tab(self, tab_name):
        if any(stamp in tab_name for stamp in self.broken_stamps):
            with self._lock:
                self.calls.append(tab_name)
            raise ConnectionResetError("socket reset")
        return super().fetch_published_tab(tab_name)


def make_resolver(tabs, probe_workers=4, **kwargs):
    source = kwargs.pop("source", None) or TableSheetSource(tabs)
    resolver = TabResolver(
        source,
        candidates=lambda day: tab_candidates(day, NAMING),
        rules=RULES,
        probe_workers=probe_workers,
        tz=pytz.UTC,
        **kwargs,
    )
    return resolver, source


# ============================================================================
# RESOLVER
# ============================================================================


@pytest.mark.parametrize("workers", [1, 4])
class TestTabResolver:
    def test_first_matching_candidate_wins(self, workers):
        tabs = {
            tab_name(TODAY, "03:00:00 EST"): to_csv(standard_rows("9")),
            f"Results {TODAY.isoformat()}": to_csv(standard_rows("1")),
        }
        resolver, _ = make_resolver(tabs, workers)
        snapshot = resolver.resolve(TODAY)

        assert snapshot.tab_name == "Results 10-17-2026 03:00:00 EST"
        assert snapshot.day == TODAY
        assert [r.name for r in snapshot.records] == ["Alpha", "Bravo", "Charlie"]
        assert snapshot.records[0].days_until_available == 9

    def test_aggregate_only_tab_is_treated_like_a_miss(self, workers):
        tabs = {
            tab_name(TODAY): AGGREGATE_ONLY,
            tab_name(TODAY, "03:00:00 EST"): to_csv(standard_rows("4")),
        }
        resolver, _ = make_resolver(tabs, workers)
        assert resolver.resolve(TODAY).tab_name == tab_name(TODAY, "03:00:00 EST")

    def test_tiny_document_is_a_miss(self, workers):
        tabs = {
            tab_name(TODAY): '"Category","Name"\n"HRT","A"\n',
            f"Results {TODAY.isoformat()}": to_csv(standard_rows("4")),
        }
        resolver, _ = make_resolver(tabs, workers)
        assert resolver.resolve(TODAY).tab_name == f"Results {TODAY.isoformat()}"

    def test_nothing_matches_gives_none(self, workers):
        resolver, source = make_resolver({tab_name(TODAY): AGGREGATE_ONLY}, workers)
        assert resolver.resolve(TODAY) is None
        assert set(source.calls) == set(tab_candidates(TODAY, NAMING))

    def test_capture_time_comes_from_tab_name(self, workers):
        resolver, _ = make_resolver({tab_name(TODAY): to_csv(standard_rows("2"))}, workers)
        snapshot = resolver.resolve(TODAY)
        assert snapshot.captured_at == datetime(2026, 10, 17, 8, 48, 30, tzinfo=pytz.UTC)
        assert snapshot.records[0].captured_at == snapshot.captured_at.isoformat()


def test_capture_time_falls_back_to_clock():
    fixed = datetime(2026, 10, 17, 12, 0, tzinfo=pytz.UTC)
    source = TableSheetSource({"latest": to_csv(standard_rows("2"))})
    resolver = TabResolver(
        source,
        candidates=lambda day: ["latest"],
        rules=RULES,
        probe_workers=1,
        clock=lambda: fixed,
    )
    assert resolver.resolve(TODAY).captured_at == fixed


def test_in_row_scrape_stamp_is_kept():
    rows = [make_row("Alpha", scraped_at="2026-10-17T03:51:02Z")]
    resolver, _ = make_resolver({tab_name(TODAY): to_csv(rows)}, probe_workers=1)
    assert resolver.resolve(TODAY).records[0].captured_at == "2026-10-17T03:51:02Z"


def test_sequential_probing_stops_at_first_match():
    tabs = {tab_name(TODAY): to_csv(standard_rows("2"))}
    resolver, source = make_resolver(tabs, probe_workers=1)
    resolver.resolve(TODAY)
    assert source.calls == [tab_name(TODAY)]


# ============================================================================
# SERIES ASSEMBLY
# ============================================================================


def _snapshot(day):
    return DaySnapshot(day=day, tab_name=f"Results {day}", captured_at=datetime(2026, 1, 1))


class TestSeriesAssembler:
    def test_ascending_order_with_gaps(self):
        available = {TODAY, TODAY - timedelta(days=1), TODAY - timedelta(days=4)}
        assembler = SeriesAssembler(lambda day: _snapshot(day) if day in available else None)
        series = assembler.assemble(7, TODAY)

        assert series.dates == sorted(available)
        assert series.window_days == 7
        assert series.is_partial
        assert series.latest.day == TODAY
        assert series.previous.day == TODAY - timedelta(days=1)
        assert series.oldest.day == TODAY - timedelta(days=4)

    def test_empty_window(self):
        series = SeriesAssembler(_snapshot).assemble(0, TODAY)
        assert len(series) == 0
        assert series.latest is None

    def test_timeout_returns_partial_series(self):
        release = threading.Event()
        slow_day = TODAY - timedelta(days=2)

        def resolve(day):
            if day == slow_day:
                release.wait(5)
            return _snapshot(day)

        try:
            series = SeriesAssembler(resolve).assemble(3, TODAY, timeout=0.5)
        finally:
            release.set()

        assert series.dates == [TODAY - timedelta(days=1), TODAY]
        assert series.window_days == 3

    def test_latest_at_or_before_walks_back(self):
        target = TODAY - timedelta(days=2)
        seen = []

        def resolve(day):
            seen.append(day)
            return _snapshot(day) if day == target else None

        snapshot = SeriesAssembler(resolve).latest_at_or_before(TODAY, lookback_days=3)
        assert snapshot.day == target
        assert seen == [TODAY, TODAY - timedelta(days=1), target]

    def test_latest_at_or_before_gives_up(self):
        seen = []

        def resolve(day):
            seen.append(day)
            return None

        assert SeriesAssembler(resolve).latest_at_or_before(TODAY, lookback_days=3) is None
        assert len(seen) == 4

    def test_resolution_error_becomes_a_gap(self):
        broken = TODAY - timedelta(days=1)

        def resolve(day):
            if day == broken:
                raise ConnectionResetError("socket reset")
            return _snapshot(day)

        series = SeriesAssembler(resolve).assemble(3, TODAY)
        assert series.dates == [TODAY - timedelta(days=2), TODAY]
        assert series.is_partial

    def test_latest_at_or_before_skips_a_failing_day(self):
        def resolve(day):
            if day == TODAY:
                raise ConnectionResetError("socket reset")
            return _snapshot(day)

        snapshot = SeriesAssembler(resolve).latest_at_or_before(TODAY, lookback_days=3)
        assert snapshot.day == TODAY - timedelta(days=1)


# ============================================================================
# UNEXPECTED SOURCE ERRORS
# ============================================================================


@pytest.mark.parametrize("workers", [1, 4])
def test_unexpected_source_error_is_a_candidate_miss(workers):
    tabs = {f"Results {TODAY.isoformat()}": to_csv(standard_rows("4"))}
    source = FlakySource(tabs, broken_stamps=["03:48:30 EST"])
    resolver, _ = make_resolver(tabs, workers, source=source)

    assert resolver.resolve(TODAY).tab_name == f"Results {TODAY.isoformat()}"
    assert tab_name(TODAY) in source.calls


@pytest.mark.parametrize("workers", [1, 4])
def test_source_failing_for_one_day_gives_partial_report(workers):
    d2 = TODAY - timedelta(days=2)
    tabs = {
        tab_name(TODAY): to_csv(standard_rows("2")),
        tab_name(TODAY - timedelta(days=1)): to_csv(standard_rows("5")),
        tab_name(d2): to_csv(standard_rows("8")),
    }
    source = FlakySource(tabs, broken_stamps=[d2.strftime("%m-%d-%Y"), d2.isoformat()])

    report = make_service(source, probe_workers=workers).get_analytics(3, TODAY)

    assert isinstance(report, AnalyticsReport)
    assert report.days_analyzed == 2
    assert report.window_days == 3
    assert report.is_partial
    assert report.latest_date == TODAY
