"""Finding each day's results tab and stitching days into a series.

Resolution is guess-and-check: fetch every candidate name for a date and
keep the first (in candidate order) whose document carries at least one
genuine availability row.  Fetch failures, tiny placeholder documents
and tabs holding only dashboard rows all mean "try the next name".  A
date where nothing matches is a gap, never an error.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import replace
from datetime import date as _date
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence

import pytz

from ..models import AvailabilityRecord, DaySnapshot, HistoricalSeries
from .published_sheet import TabFetchError
from .sheet_rows import RowRules, parse_csv, validate_rows
from .tab_names import parse_tab_timestamp

log = logging.getLogger(__name__)


class TabResolver:
    def __init__(
        self,
        source,
        candidates: Callable[[_date], List[str]],
        rules: RowRules,
        min_bytes: int = 100,
        probe_workers: int = 6,
        tz=pytz.UTC,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.source = source
        self.candidates = candidates
        self.rules = rules
        self.min_bytes = min_bytes
        self.probe_workers = max(1, probe_workers)
        self.tz = tz
        self.clock = clock or (lambda: datetime.now(tz))

    def probe(self, tab_name: str) -> Optional[List[AvailabilityRecord]]:
        """Validated records of ``tab_name``, or ``None`` if it is not a match."""
        try:
            text = self.source.fetch_published_tab(tab_name)
        except TabFetchError as exc:
            log.debug("Candidate miss (fetch): %s", exc)
            return None
        except Exception:
            log.exception("Candidate miss (unexpected source error): %s", tab_name)
            return None

        if not text or len(text) < self.min_bytes:
            log.debug("Candidate miss (too small): %s", tab_name)
            return None

        records = validate_rows(parse_csv(text), self.rules)
        if not records:
            log.debug("Candidate miss (no valid rows): %s", tab_name)
            return None
        return records

    def resolve(self, day: _date) -> Optional[DaySnapshot]:
        names = self.candidates(day)
        if self.probe_workers == 1:
            for name in names:
                records = self.probe(name)
                if records:
                    return self._snapshot(day, name, records)
        else:
            found = self._probe_concurrently(names)
            if found:
                return self._snapshot(day, *found)

        log.info("No results tab resolved for %s (%d candidates)", day.isoformat(), len(names))
        return None

    def _probe_concurrently(self, names: Sequence[str]):
        pool = ThreadPoolExecutor(max_workers=self.probe_workers, thread_name_prefix="tab-probe")
        try:
            futures = [pool.submit(self.probe, name) for name in names]
            for name, future in zip(names, futures):
                records = future.result()
                if records:
                    return name, records
            return None
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

    def _snapshot(self, day: _date, tab_name: str, records: List[AvailabilityRecord]) -> DaySnapshot:
        captured_at = parse_tab_timestamp(tab_name, self.tz) or self.clock()
        stamp = captured_at.isoformat()
        # Rows without their own scrape stamp inherit the tab's.
        records = tuple(
            r if r.captured_at else _with_captured_at(r, stamp) for r in records
        )
        log.info(
            "Resolved %s -> %r (%d records)", day.isoformat(), tab_name, len(records)
        )
        return DaySnapshot(day=day, tab_name=tab_name, captured_at=captured_at, records=records)


def _with_captured_at(record: AvailabilityRecord, stamp: str) -> AvailabilityRecord:
    return replace(record, captured_at=stamp)


# ---------------------------------------------------------------------------
# Series assembly
# ---------------------------------------------------------------------------


class SeriesAssembler:
    """Drives a per-day resolver over trailing windows of calendar days."""

    def __init__(self, resolve_day: Callable[[_date], Optional[DaySnapshot]], day_workers: int = 7):
        self.resolve_day = resolve_day
        self.day_workers = max(1, day_workers)

    def assemble(self, window_days: int, today: _date, timeout: Optional[float] = None) -> HistoricalSeries:
        """Resolve ``window_days`` days ending at ``today``.

        Days still unresolved when ``timeout`` elapses are treated as
        gaps; the caller gets whatever finished.
        """
        days = [today - timedelta(days=offset) for offset in range(max(0, window_days))]
        if not days:
            return HistoricalSeries((), window_days=0)

        resolved: Dict[_date, DaySnapshot] = {}
        pool = ThreadPoolExecutor(
            max_workers=min(self.day_workers, len(days)), thread_name_prefix="day-resolve"
        )
        try:
            futures = {pool.submit(self.resolve_day, day): day for day in days}
            done, pending = wait(futures, timeout=timeout)
            for future in done:
                day = futures[future]
                try:
                    snapshot = future.result()
                except Exception:
                    log.exception("Resolution failed for %s; treating it as a gap", day.isoformat())
                    continue
                if snapshot is not None:
                    resolved[day] = snapshot
            if pending:
                log.warning(
                    "Resolution timed out for %d of %d days: %s",
                    len(pending),
                    len(days),
                    sorted(futures[f].isoformat() for f in pending),
                )
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        ordered = tuple(resolved[day] for day in sorted(resolved))
        log.info("Assembled series: %d of %d days resolved", len(ordered), len(days))
        return HistoricalSeries(ordered, window_days=len(days))

    def latest_at_or_before(self, day: _date, lookback_days: int = 3) -> Optional[DaySnapshot]:
        """Walk backward from ``day`` until a snapshot resolves."""
        for offset in range(max(0, lookback_days) + 1):
            candidate = day - timedelta(days=offset)
            try:
                snapshot = self.resolve_day(candidate)
            except Exception:
                log.exception("Resolution failed for %s; trying an earlier day", candidate.isoformat())
                continue
            if snapshot is not None:
                return snapshot
        log.info("Nothing resolved within %d days before %s", lookback_days, day.isoformat())
        return None
