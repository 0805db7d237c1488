"""In-memory record and report shapes shared by the integrations and routes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date as _date
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

UNKNOWN_WAIT = -1


@dataclass(frozen=True)
class AvailabilityRecord:
    name: str
    category: str
    location: str = ""
    days_until_available: int = UNKNOWN_WAIT
    first_available_date: Optional[str] = None
    captured_at: str = ""
    error_tag: Optional[str] = None

    @property
    def has_known_wait(self) -> bool:
        return self.days_until_available >= 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.category,
            "location": self.location,
            "daysOutUntilAppointment": self.days_until_available,
            "firstAvailableDate": self.first_available_date,
            "scrapedAt": self.captured_at,
            "error": self.error_tag,
        }


@dataclass(frozen=True)
class DaySnapshot:
    """Validated records resolved for one calendar date."""

    day: _date
    tab_name: str
    captured_at: datetime
    records: Tuple[AvailabilityRecord, ...] = ()


@dataclass(frozen=True)
class HistoricalSeries:
    """Snapshots in strictly increasing date order; unresolved days are absent."""

    snapshots: Tuple[DaySnapshot, ...] = ()
    window_days: int = 0

    def __post_init__(self):
        days = [s.day for s in self.snapshots]
        if any(later <= earlier for earlier, later in zip(days, days[1:])):
            raise ValueError("Series snapshots must be strictly increasing by date")

    def __len__(self) -> int:
        return len(self.snapshots)

    @property
    def dates(self) -> List[_date]:
        return [s.day for s in self.snapshots]

    @property
    def latest(self) -> Optional[DaySnapshot]:
        return self.snapshots[-1] if self.snapshots else None

    @property
    def previous(self) -> Optional[DaySnapshot]:
        return self.snapshots[-2] if len(self.snapshots) > 1 else None

    @property
    def oldest(self) -> Optional[DaySnapshot]:
        return self.snapshots[0] if self.snapshots else None

    @property
    def is_partial(self) -> bool:
        return len(self.snapshots) < self.window_days


@dataclass(frozen=True)
class RecordsResult:
    """Answer to a single-day records request."""

    snapshot: DaySnapshot
    records: Tuple[AvailabilityRecord, ...]

    @property
    def day(self) -> _date:
        return self.snapshot.day

    @property
    def captured_at(self) -> datetime:
        return self.snapshot.captured_at

    @property
    def last_updated(self) -> str:
        if self.records and self.records[0].captured_at:
            return self.records[0].captured_at
        return self.snapshot.captured_at.isoformat()


@dataclass(frozen=True)
class NoDataAvailable:
    """Nothing resolved anywhere in the requested window."""

    window_days: int
    reason: str = "No data available for analysis"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "status": "no_data",
            "error": self.reason,
            "windowDays": self.window_days,
            "daysAnalyzed": 0,
        }


@dataclass(frozen=True)
class CurrentStats:
    total_links: int
    avg_wait: float
    immediate: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalLinks": self.total_links,
            "avgWait": self.avg_wait,
            "immediate": self.immediate,
        }


@dataclass(frozen=True)
class WaitChange:
    name: str
    category: str
    change: int
    current: int
    previous: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.category,
            "change": self.change,
            "current": self.current,
            "previous": self.previous,
        }


@dataclass(frozen=True)
class RegionStat:
    region: str
    count: int
    avg_wait: float

    def to_dict(self) -> Dict[str, Any]:
        return {"region": self.region, "count": self.count, "avgWait": self.avg_wait}


@dataclass(frozen=True)
class TrendPoint:
    day: _date
    avg_wait: float
    total_links: int
    immediate: int
    category_averages: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "avgWait": self.avg_wait,
            "totalLinks": self.total_links,
            "immediate": self.immediate,
            "categoryAverages": dict(self.category_averages),
        }


@dataclass(frozen=True)
class AnalyticsReport:
    """Derived from a HistoricalSeries on every request; never persisted.

    ``daily_changes`` is ``None`` when only one day resolved and
    ``weekly_changes`` is ``None`` when the window is too short to say
    anything about a week, so callers can omit those sections.
    """

    current_stats: CurrentStats
    best: Tuple[AvailabilityRecord, ...]
    worst: Tuple[AvailabilityRecord, ...]
    regional_stats: Tuple[RegionStat, ...]
    daily_changes: Optional[Tuple[WaitChange, ...]]
    weekly_changes: Optional[Tuple[WaitChange, ...]]
    trend: Tuple[TrendPoint, ...]
    days_analyzed: int
    window_days: int
    latest_date: _date

    @property
    def is_partial(self) -> bool:
        return self.days_analyzed < self.window_days

    @property
    def improved(self) -> Tuple[WaitChange, ...]:
        return tuple(c for c in self.daily_changes or () if c.change < 0)

    @property
    def worsened(self) -> Tuple[WaitChange, ...]:
        return tuple(c for c in self.daily_changes or () if c.change > 0)

    @property
    def significant_changes(self) -> Tuple[WaitChange, ...]:
        return tuple(sorted(self.daily_changes or (), key=lambda c: -abs(c.change)))

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": True,
            "status": "partial" if self.is_partial else "complete",
            "currentStats": self.current_stats.to_dict(),
            "bestStates": [_ranked(r) for r in self.best],
            "worstStates": [_ranked(r) for r in self.worst],
            "regionalStats": [r.to_dict() for r in self.regional_stats],
            "trendData": [p.to_dict() for p in self.trend],
            "daysAnalyzed": self.days_analyzed,
            "windowDays": self.window_days,
            "latestDate": self.latest_date.isoformat(),
        }
        if self.daily_changes is not None:
            payload["dailyChanges"] = [c.to_dict() for c in self.daily_changes]
            payload["improved"] = [c.to_dict() for c in self.improved]
            payload["worsened"] = [c.to_dict() for c in self.worsened]
            payload["significantChanges"] = [c.to_dict() for c in self.significant_changes]
        if self.weekly_changes is not None:
            payload["weeklyChanges"] = [c.to_dict() for c in self.weekly_changes]
        return payload


def _ranked(record: AvailabilityRecord) -> Dict[str, Any]:
    return {
        "name": record.name,
        "type": record.category,
        "location": record.location,
        "daysOut": record.days_until_available,
    }
