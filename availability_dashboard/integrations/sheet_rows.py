#!/usr/bin/env python3
"""Turning a fetched results tab into availability records.

Every step here is a pure function over strings so a bad tab only ever
costs us the rows it contains; nothing in this module raises for
malformed input.

Source columns (positional, row 0 is the header):

    0 Category   1 Location   2 Name   3 URL   4 Days Out   5 Score
    6 Change     7 First Available     8 Scraped At
    9 Error Code 10 Error Details
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from ..models import UNKNOWN_WAIT, AvailabilityRecord

log = logging.getLogger(__name__)

COL_CATEGORY = 0
COL_LOCATION = 1
COL_NAME = 2
COL_URL = 3
COL_DAYS_OUT = 4
COL_FIRST_AVAILABLE = 7
COL_SCRAPED_AT = 8
COL_ERROR_CODE = 9
COL_ERROR_DETAILS = 10

# "42 (88.5%)" style summary cells from the dashboard block.
AGGREGATE_NAME_RE = re.compile(r"^\s*\d+\s*\(\s*\d+(?:\.\d+)?\s*%\s*\)")
DIGITS_RE = re.compile(r"(\d+)")


# ---------------------------------------------------------------------------
# CSV lines
# ---------------------------------------------------------------------------


def parse_csv(text: str) -> List[List[str]]:
    """Split CSV text into rows of raw field strings.

    Fields may be wrapped in double quotes, inside which commas are
    literal and ``""`` stands for one quote.  Rows end at a newline and
    blank lines are skipped.  An unterminated quote swallows the rest of
    its line into the current field instead of failing the sheet.
    """
    rows: List[List[str]] = []
    for line in (text or "").split("\n"):
        line = line.rstrip("\r")
        if not line.strip():
            continue
        rows.append(_parse_line(line))
    return rows


def _parse_line(line: str) -> List[str]:
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    i = 0
    while i < len(line):
        char = line[i]
        if char == '"':
            if in_quotes and i + 1 < len(line) and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1
    fields.append("".join(current))
    return fields


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RowRules:
    """What a genuine scraped row must look like."""

    categories: frozenset
    url_domain: str
    excluded_names: frozenset = frozenset()

    @classmethod
    def build(cls, categories: Iterable[str], url_domain: str, excluded_names: Iterable[str] = ()):
        return cls(
            categories=frozenset(c.strip() for c in categories if c.strip()),
            url_domain=(url_domain or "").strip().lower(),
            excluded_names=frozenset(_norm_name(n) for n in excluded_names if n.strip()),
        )


def _norm_name(value: str) -> str:
    return re.sub(r"\s+", " ", (value or "").strip()).casefold()


def _cell(row: Sequence[str], index: int) -> str:
    return row[index].strip() if index < len(row) else ""


def rejection_reason(row: Sequence[str], rules: RowRules) -> Optional[str]:
    """Return why ``row`` is not a genuine availability row, or ``None``."""
    category = _cell(row, COL_CATEGORY)
    if category not in rules.categories:
        return "category"
    name = _cell(row, COL_NAME)
    if not name:
        return "empty-name"
    if AGGREGATE_NAME_RE.match(name):
        return "aggregate"
    if _norm_name(name) in rules.excluded_names:
        return "excluded-name"
    if rules.url_domain and rules.url_domain not in _cell(row, COL_URL).lower():
        return "url-domain"
    return None


def parse_days_out(raw: str) -> int:
    """First run of digits in a decorated cell such as ``"⚡ 1"``; else -1."""
    match = DIGITS_RE.search(raw or "")
    return int(match.group(1)) if match else UNKNOWN_WAIT


def record_from_row(row: Sequence[str], captured_at: str = "") -> AvailabilityRecord:
    error_tag = _cell(row, COL_ERROR_CODE) or _cell(row, COL_ERROR_DETAILS)
    return AvailabilityRecord(
        name=_cell(row, COL_NAME),
        category=_cell(row, COL_CATEGORY),
        location=_cell(row, COL_LOCATION),
        days_until_available=parse_days_out(_cell(row, COL_DAYS_OUT)),
        first_available_date=_cell(row, COL_FIRST_AVAILABLE) or None,
        captured_at=_cell(row, COL_SCRAPED_AT) or captured_at,
        error_tag=error_tag or None,
    )


def validate_rows(
    rows: Sequence[Sequence[str]], rules: RowRules, captured_at: str = ""
) -> List[AvailabilityRecord]:
    """Map every genuine data row (header skipped) to a record."""
    records: List[AvailabilityRecord] = []
    rejected = {}
    for row in rows[1:]:
        reason = rejection_reason(row, rules)
        if reason:
            rejected[reason] = rejected.get(reason, 0) + 1
            continue
        records.append(record_from_row(row, captured_at))
    if rejected:
        log.debug("Rejected rows by reason: %s", rejected)
    return records


def sort_for_listing(records: Iterable[AvailabilityRecord]) -> List[AvailabilityRecord]:
    """Errors last, then unknown waits, then shortest wait first."""
    return sorted(
        records,
        key=lambda r: (
            r.error_tag is not None,
            not r.has_known_wait,
            r.days_until_available,
        ),
    )
