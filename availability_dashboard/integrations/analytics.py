"""Day-over-day, week-over-week and trend statistics over a series.

Everything is recomputed from the resolved snapshots on each call.
Records with an unknown wait (-1) count towards ``totalLinks`` only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from ..models import (
    AnalyticsReport,
    AvailabilityRecord,
    CurrentStats,
    DaySnapshot,
    HistoricalSeries,
    NoDataAvailable,
    RegionStat,
    TrendPoint,
    WaitChange,
)

log = logging.getLogger(__name__)

FRAME_COLUMNS = ["name", "category", "location", "days"]


@dataclass(frozen=True)
class AnalyticsSettings:
    categories: Sequence[str] = ("HRT", "TRT", "Provider")
    trackable_categories: Sequence[str] = ("HRT", "TRT")
    region_keywords: Mapping[str, Sequence[str]] = field(default_factory=dict)
    immediate_threshold: int = 3
    ranking_size: int = 10
    weekly_min_days: int = 7
    weekly_min_change: int = 2


def _frame(records: Iterable[AvailabilityRecord]) -> pd.DataFrame:
    rows = [
        (r.name, r.category, r.location, r.days_until_available) for r in records
    ]
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


def _known(frame: pd.DataFrame) -> pd.DataFrame:
    return frame[frame["days"] >= 0]


def _mean(values: pd.Series) -> float:
    return float(values.mean()) if len(values) else 0.0


def current_stats(records: Sequence[AvailabilityRecord], immediate_threshold: int = 3) -> CurrentStats:
    known = _known(_frame(records))
    return CurrentStats(
        total_links=len(records),
        avg_wait=_mean(known["days"]),
        immediate=int((known["days"] <= immediate_threshold).sum()),
    )


def _trackable(records: Sequence[AvailabilityRecord], categories: Sequence[str]) -> List[AvailabilityRecord]:
    wanted = set(categories)
    return [r for r in records if r.category in wanted and r.has_known_wait]


def rankings(
    records: Sequence[AvailabilityRecord], trackable_categories: Sequence[str], size: int = 10
) -> Tuple[Tuple[AvailabilityRecord, ...], Tuple[AvailabilityRecord, ...]]:
    """Shortest and longest waits; ties keep sheet order."""
    eligible = _trackable(records, trackable_categories)
    best = sorted(eligible, key=lambda r: r.days_until_available)[:size]
    worst = sorted(eligible, key=lambda r: -r.days_until_available)[:size]
    return tuple(best), tuple(worst)


def regional_stats(
    records: Sequence[AvailabilityRecord],
    region_keywords: Mapping[str, Sequence[str]],
    trackable_categories: Sequence[str],
) -> Tuple[RegionStat, ...]:
    """Plain substring lookup of region keywords in location or name.

    A record can land in more than one region when keywords overlap.
    """
    eligible = _trackable(records, trackable_categories)
    stats = []
    for region, keywords in region_keywords.items():
        waits = [
            r.days_until_available
            for r in eligible
            if any(k in r.location or k in r.name for k in keywords)
        ]
        avg = sum(waits) / len(waits) if waits else 0.0
        stats.append(RegionStat(region=region, count=len(waits), avg_wait=float(avg)))
    return tuple(stats)


def wait_changes(
    latest: DaySnapshot, baseline: DaySnapshot, min_change: int = 1
) -> Tuple[WaitChange, ...]:
    """Per-name wait deltas between two snapshots, most improved first.

    Names are matched against the first occurrence in ``baseline``;
    either side having an unknown wait drops the pair.
    """
    earlier: Dict[str, AvailabilityRecord] = {}
    for record in baseline.records:
        earlier.setdefault(record.name, record)

    changes = []
    for record in latest.records:
        before = earlier.get(record.name)
        if before is None or not (record.has_known_wait and before.has_known_wait):
            continue
        change = record.days_until_available - before.days_until_available
        if change == 0 or abs(change) < min_change:
            continue
        changes.append(
            WaitChange(
                name=record.name,
                category=record.category,
                change=change,
                current=record.days_until_available,
                previous=before.days_until_available,
            )
        )
    return tuple(sorted(changes, key=lambda c: c.change))


def trend_point(snapshot: DaySnapshot, categories: Sequence[str], immediate_threshold: int = 3) -> TrendPoint:
    frame = _frame(snapshot.records)
    known = _known(frame)
    by_category = known.groupby("category")["days"].mean()
    averages = {
        category: float(by_category[category]) if category in by_category.index else 0.0
        for category in categories
    }
    return TrendPoint(
        day=snapshot.day,
        avg_wait=_mean(known["days"]),
        total_links=len(frame),
        immediate=int((known["days"] <= immediate_threshold).sum()),
        category_averages=averages,
    )


def analyze(series: HistoricalSeries, settings: AnalyticsSettings):
    """Build the report for ``series``, or ``NoDataAvailable`` if it is empty."""
    latest = series.latest
    if latest is None:
        return NoDataAvailable(window_days=series.window_days)

    daily: Optional[Tuple[WaitChange, ...]] = None
    if series.previous is not None:
        daily = wait_changes(latest, series.previous)

    weekly: Optional[Tuple[WaitChange, ...]] = None
    if len(series) >= settings.weekly_min_days:
        weekly = wait_changes(latest, series.oldest, min_change=settings.weekly_min_change)

    best, worst = rankings(latest.records, settings.trackable_categories, settings.ranking_size)
    report = AnalyticsReport(
        current_stats=current_stats(latest.records, settings.immediate_threshold),
        best=best,
        worst=worst,
        regional_stats=regional_stats(
            latest.records, settings.region_keywords, settings.trackable_categories
        ),
        daily_changes=daily,
        weekly_changes=weekly,
        trend=tuple(
            trend_point(s, settings.categories, settings.immediate_threshold)
            for s in series.snapshots
        ),
        days_analyzed=len(series),
        window_days=series.window_days,
        latest_date=latest.day,
    )
    log.debug(
        "Analytics computed",
        extra={"days_analyzed": report.days_analyzed, "latest": latest.tab_name},
    )
    return report
