"""Short-lived memoization of resolved days.

Resolving one day can cost dozens of HTTP probes, and a dashboard page
load asks for the same handful of days several times.  Entries live in
process memory only and are keyed by calendar date.  An entry expires
when its TTL runs out or when the daily publish boundary (defaults to
0500 America/New_York) passes after it was stored, whichever is first.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date as _date
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

import pytz

from ..models import DaySnapshot

log = logging.getLogger(__name__)


def get_timezone(tz_name: str):
    try:
        return pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        log.warning("Invalid timezone '%s'; defaulting to UTC", tz_name)
        return pytz.UTC


@dataclass(frozen=True)
class _Entry:
    snapshot: Optional[DaySnapshot]
    stored_at: datetime


class _DayLock:
    """Lock shared by the callers currently resolving one day."""

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class SnapshotCache:
    def __init__(
        self,
        tz=pytz.UTC,
        ttl_seconds: int = 900,
        miss_ttl_seconds: int = 300,
        max_entries: int = 128,
        refresh_hour: int = 5,
        refresh_minute: int = 0,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.tz = tz
        self.ttl = timedelta(seconds=ttl_seconds)
        self.miss_ttl = timedelta(seconds=miss_ttl_seconds)
        self.max_entries = max(1, max_entries)
        self.refresh_hour = refresh_hour
        self.refresh_minute = refresh_minute
        self.clock = clock or (lambda: datetime.now(tz))
        self._entries: Dict[_date, _Entry] = {}
        self._lock = threading.Lock()
        self._day_locks: Dict[_date, _DayLock] = {}

    def _last_refresh(self, now: datetime) -> datetime:
        boundary = now.replace(
            hour=self.refresh_hour, minute=self.refresh_minute, second=0, microsecond=0
        )
        if now < boundary:
            boundary -= timedelta(days=1)
        return boundary

    def _is_fresh(self, entry: _Entry, now: datetime) -> bool:
        ttl = self.ttl if entry.snapshot is not None else self.miss_ttl
        if now - entry.stored_at >= ttl:
            return False
        return entry.stored_at >= self._last_refresh(now)

    def lookup(self, day: _date):
        """Return ``(hit, snapshot)``; a hit may carry ``None`` for a known gap."""
        now = self.clock()
        with self._lock:
            entry = self._entries.get(day)
            if entry is None:
                return False, None
            if not self._is_fresh(entry, now):
                del self._entries[day]
                log.debug("Cache entry for %s is stale; dropping.", day.isoformat())
                return False, None
            return True, entry.snapshot

    def store(self, day: _date, snapshot: Optional[DaySnapshot]) -> None:
        now = self.clock()
        with self._lock:
            self._entries[day] = _Entry(snapshot=snapshot, stored_at=now)
            self._prune(now)

    def _prune(self, now: datetime) -> None:
        # Caller holds self._lock.
        stale = [d for d, e in self._entries.items() if not self._is_fresh(e, now)]
        for day in stale:
            del self._entries[day]
        overflow = len(self._entries) - self.max_entries
        if overflow > 0:
            oldest = sorted(self._entries, key=lambda d: self._entries[d].stored_at)[:overflow]
            for day in oldest:
                del self._entries[day]
        if stale or overflow > 0:
            log.debug("Pruned %d stale and %d overflow cache entries", len(stale), max(0, overflow))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> int:
        with self._lock:
            dropped = len(self._entries)
            self._entries.clear()
        log.info("Snapshot cache cleared (%d entries)", dropped)
        return dropped

    def get_or_resolve(self, day: _date, resolve: Callable[[_date], Optional[DaySnapshot]]):
        """Memoized ``resolve(day)``; concurrent callers for one day share a single resolution."""
        hit, snapshot = self.lookup(day)
        if hit:
            return snapshot

        with self._lock:
            slot = self._day_locks.setdefault(day, _DayLock())
            slot.users += 1
        try:
            with slot.lock:
                hit, snapshot = self.lookup(day)
                if hit:
                    return snapshot
                snapshot = resolve(day)
                self.store(day, snapshot)
                return snapshot
        finally:
            with self._lock:
                slot.users -= 1
                if slot.users == 0:
                    self._day_locks.pop(day, None)
