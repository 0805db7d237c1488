"""Entry points the HTTP layer calls.

Every operation takes the reference date explicitly; only the routes
decide what "today" is.
"""

from __future__ import annotations

import logging
from datetime import date as _date
from typing import List, Optional

from .integrations.analytics import AnalyticsSettings, analyze
from .integrations.published_sheet import PublishedSheetSource
from .integrations.sheet_rows import RowRules, sort_for_listing
from .integrations.tab_names import TabNaming, tab_candidates
from .integrations.tab_resolver import SeriesAssembler, TabResolver
from .models import DaySnapshot, HistoricalSeries, RecordsResult
from .utils.snapshot_cache import SnapshotCache, get_timezone

log = logging.getLogger(__name__)

EXTENSION_KEY = "availability_report"


class AvailabilityReportService:
    def __init__(
        self,
        source,
        naming: TabNaming,
        rules: RowRules,
        settings: AnalyticsSettings,
        cache: Optional[SnapshotCache] = None,
        tz=None,
        min_tab_bytes: int = 100,
        probe_workers: int = 6,
        max_window_days: int = 14,
        lookback_days: int = 3,
        resolve_timeout: Optional[float] = None,
        clock=None,
    ):
        self.naming = naming
        self.settings = settings
        self.cache = cache
        self.max_window_days = max_window_days
        self.lookback_days = lookback_days
        self.resolve_timeout = resolve_timeout
        resolver_kwargs = {"tz": tz} if tz is not None else {}
        self.resolver = TabResolver(
            source,
            candidates=lambda day: tab_candidates(day, naming),
            rules=rules,
            min_bytes=min_tab_bytes,
            probe_workers=probe_workers,
            clock=clock,
            **resolver_kwargs,
        )
        self.assembler = SeriesAssembler(self.resolve_day, day_workers=max_window_days)

    @classmethod
    def from_config(cls, config) -> "AvailabilityReportService":
        tz = get_timezone(config.get("TZ", "America/New_York"))
        source = config.get("SHEET_SOURCE") or PublishedSheetSource(
            sheet_id=config.get("GOOGLE_SHEET_ID", ""),
            url_template=config["SHEET_CSV_URL_TEMPLATE"],
            timeout=config.get("FETCH_TIMEOUT_SECONDS", 15),
            max_concurrent=config.get("MAX_CONCURRENT_FETCHES", 8),
        )
        naming = TabNaming(
            prefix=config.get("TAB_PREFIX", "Results"),
            date_formats=tuple(config["TAB_DATE_FORMATS"]),
            preferred_suffixes=tuple(config["TAB_TIME_SUFFIXES"]),
            window_hours=tuple(config["PUBLISH_WINDOW_HOURS"]),
            window_minutes=tuple(config["PUBLISH_WINDOW_MINUTES"]),
            zones=tuple(config["PUBLISH_ZONES"]),
            max_candidates=config.get("MAX_TAB_CANDIDATES", 48),
        )
        rules = RowRules.build(
            config["CATEGORY_WHITELIST"],
            config.get("SOURCE_URL_DOMAIN", ""),
            config.get("EXCLUDED_NAMES", ()),
        )
        settings = AnalyticsSettings(
            categories=tuple(config["CATEGORY_WHITELIST"]),
            trackable_categories=tuple(config["TRACKABLE_CATEGORIES"]),
            region_keywords=dict(config["REGION_KEYWORDS"]),
            immediate_threshold=config.get("IMMEDIATE_THRESHOLD_DAYS", 3),
            ranking_size=config.get("RANKING_SIZE", 10),
            weekly_min_days=config.get("WEEKLY_MIN_DAYS", 7),
            weekly_min_change=config.get("WEEKLY_MIN_CHANGE", 2),
        )
        cache = SnapshotCache(
            tz=tz,
            ttl_seconds=config.get("CACHE_TTL_SECONDS", 900),
            miss_ttl_seconds=config.get("CACHE_MISS_TTL_SECONDS", 300),
            max_entries=config.get("CACHE_MAX_ENTRIES", 128),
            refresh_hour=config.get("CACHE_REFRESH_HOUR", 5),
            refresh_minute=config.get("CACHE_REFRESH_MINUTE", 0),
        )
        return cls(
            source,
            naming=naming,
            rules=rules,
            settings=settings,
            cache=cache,
            tz=tz,
            min_tab_bytes=config.get("MIN_TAB_BYTES", 100),
            probe_workers=config.get("PROBE_WORKERS", 6),
            max_window_days=config.get("MAX_WINDOW_DAYS", 14),
            lookback_days=config.get("LOOKBACK_DAYS", 3),
            resolve_timeout=config.get("RESOLVE_TIMEOUT_SECONDS"),
        )

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def resolve_day(self, day: _date) -> Optional[DaySnapshot]:
        if self.cache is None:
            return self.resolver.resolve(day)
        return self.cache.get_or_resolve(day, self.resolver.resolve)

    def clamp_window(self, window_days: int) -> int:
        return max(1, min(int(window_days), self.max_window_days))

    def get_series(self, window_days: int, today: _date) -> HistoricalSeries:
        return self.assembler.assemble(
            self.clamp_window(window_days), today, timeout=self.resolve_timeout
        )

    def get_records(self, day: _date) -> Optional[RecordsResult]:
        """Records for ``day``, or the closest earlier day within the lookback."""
        snapshot = self.assembler.latest_at_or_before(day, self.lookback_days)
        if snapshot is None:
            return None
        return RecordsResult(snapshot=snapshot, records=tuple(sort_for_listing(snapshot.records)))

    def get_analytics(self, window_days: int, today: _date):
        """``AnalyticsReport`` over the window, or ``NoDataAvailable``."""
        series = self.get_series(window_days, today)
        return analyze(series, self.settings)

    def get_available_dates(self, window_days: int, today: _date) -> List[_date]:
        """Dates that resolved, most recent first."""
        return list(reversed(self.get_series(window_days, today).dates))

    def refresh(self) -> int:
        return self.cache.clear() if self.cache is not None else 0


def get_report_service(app) -> AvailabilityReportService:
    """The app-wide service, built from config on first use."""
    service = app.extensions.get(EXTENSION_KEY)
    if service is None:
        service = AvailabilityReportService.from_config(app.config)
        app.extensions[EXTENSION_KEY] = service
        app.logger.info(
            "Availability service ready (max window %d days)", service.max_window_days
        )
    return service
