"""Guessing what the publisher called a given day's results tab.

Tabs are named ``"<prefix> <date>[ <HH:MM:SS> <ZONE>]"``, where the date
convention has changed over time and the stamp is whenever the early
morning publish job happened to finish.  Nobody can know the exact
second, so we enumerate a short, curated list of guesses instead of a
per-minute sweep.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date as _date
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

import pytz

log = logging.getLogger(__name__)

# Standard/daylight abbreviations are fixed offsets; the bare regional
# labels follow the local DST rules of their zone.
ZONE_ALIASES = {
    "EST": pytz.FixedOffset(-300),
    "EDT": pytz.FixedOffset(-240),
    "ET": pytz.timezone("America/New_York"),
    "CST": pytz.FixedOffset(-360),
    "CDT": pytz.FixedOffset(-300),
    "CT": pytz.timezone("America/Chicago"),
    "PST": pytz.FixedOffset(-480),
    "PDT": pytz.FixedOffset(-420),
    "PT": pytz.timezone("America/Los_Angeles"),
    "UTC": pytz.UTC,
    "GMT": pytz.UTC,
}

_DATE_PATTERNS = (
    (re.compile(r"(?<!\d)(\d{2})-(\d{2})-(\d{4})(?!\d)"), ("month", "day", "year")),
    (re.compile(r"(?<!\d)(\d{4})-(\d{2})-(\d{2})(?!\d)"), ("year", "month", "day")),
)
_TIME_RE = re.compile(r"(?<!\d)(\d{1,2}):(\d{2})(?::(\d{2}))?(?:\s+([A-Za-z]{2,4}))?")


@dataclass(frozen=True)
class TabNaming:
    """Configuration data describing the publisher's naming habits."""

    prefix: str = "Results"
    date_formats: Sequence[str] = ("%m-%d-%Y", "%Y-%m-%d")
    preferred_suffixes: Sequence[str] = ()
    window_hours: Sequence[int] = (3, 4, 5)
    window_minutes: Sequence[int] = (0, 30, 48)
    zones: Sequence[str] = ("EST", "ET")
    max_candidates: int = 48

    def grid_suffixes(self) -> List[str]:
        return [
            f"{hour:02d}:{minute:02d}:00 {zone}"
            for hour in self.window_hours
            for minute in self.window_minutes
            for zone in self.zones
        ]


def _dedupe(names: Iterable[str]) -> List[str]:
    seen = set()
    ordered = []
    for name in names:
        if name not in seen:
            seen.add(name)
            ordered.append(name)
    return ordered


def tab_candidates(day: _date, naming: TabNaming) -> List[str]:
    """Ordered tab names to try for ``day``, most likely first.

    Order: the primary date format with the known stamps, then the bare
    name in every format, then the known stamps for the other formats,
    then the publish-window grid.  Capped at ``naming.max_candidates``.
    """
    stamps = [day.strftime(fmt) for fmt in naming.date_formats]
    if not stamps:
        return []

    def named(stamp: str, suffix: str = "") -> str:
        return f"{naming.prefix} {stamp} {suffix}".strip()

    ordered: List[str] = [named(stamps[0], s) for s in naming.preferred_suffixes]
    ordered.extend(named(stamp) for stamp in stamps)
    for stamp in stamps[1:]:
        ordered.extend(named(stamp, s) for s in naming.preferred_suffixes)
    grid = naming.grid_suffixes()
    for stamp in stamps:
        ordered.extend(named(stamp, s) for s in grid)

    candidates = _dedupe(ordered)[: max(0, naming.max_candidates)]
    log.debug("Generated %d tab candidates for %s", len(candidates), day.isoformat())
    return candidates


def _zone(label: Optional[str], default_tz):
    if not label:
        return default_tz
    return ZONE_ALIASES.get(label.upper(), default_tz)


def parse_tab_timestamp(tab_name: str, default_tz=pytz.UTC) -> Optional[datetime]:
    """Pull the publish moment out of a tab name.

    A bare date gives midnight of that date in ``default_tz``; a name
    without a recognisable date gives ``None``.
    """
    found = None
    for pattern, order in _DATE_PATTERNS:
        match = pattern.search(tab_name or "")
        if match:
            parts = dict(zip(order, (int(g) for g in match.groups())))
            found = (match, parts)
            break
    if not found:
        return None

    match, parts = found
    try:
        day = _date(parts["year"], parts["month"], parts["day"])
    except ValueError:
        return None

    hour = minute = second = 0
    zone_label = None
    time_match = _TIME_RE.search(tab_name, match.end())
    if time_match:
        hour, minute = int(time_match.group(1)), int(time_match.group(2))
        second = int(time_match.group(3) or 0)
        zone_label = time_match.group(4)
        if hour > 23 or minute > 59 or second > 59:
            hour = minute = second = 0
            zone_label = None

    tz = _zone(zone_label, default_tz)
    naive = datetime(day.year, day.month, day.day, hour, minute, second)
    return tz.localize(naive)
