"""Shared fixtures: fake published tabs and services wired to them."""

from datetime import date, timedelta
from typing import List, Sequence

import pytest
import pytz

from availability_dashboard.integrations.analytics import AnalyticsSettings
from availability_dashboard.integrations.published_sheet import TableSheetSource
from availability_dashboard.integrations.sheet_rows import RowRules
from availability_dashboard.integrations.tab_names import TabNaming
from availability_dashboard.service import AvailabilityReportService

TODAY = date(2026, 10, 17)

HEADER = [
    "Category", "Location", "Name", "URL", "Days Out", "Score", "Change",
    "First Available", "Scraped At", "Error Code", "Error Details",
]

NAMING = TabNaming(
    prefix="Results",
    date_formats=("%m-%d-%Y", "%Y-%m-%d"),
    preferred_suffixes=("03:48:30 EST", "03:00:00 EST"),
    window_hours=(4,),
    window_minutes=(0,),
    zones=("EST",),
    max_candidates=48,
)

RULES = RowRules.build(("HRT", "TRT", "Provider"), "fountain", ("Site Admin",))

SETTINGS = AnalyticsSettings(
    categories=("HRT", "TRT", "Provider"),
    trackable_categories=("HRT", "TRT"),
    region_keywords={
        "South": ["Texas", "Florida"],
        "West": ["California"],
        "Northeast": ["New York"],
    },
)


# ============================================================================
# DATA FACTORIES
# ============================================================================


def make_row(
    name: str,
    days: str = "3",
    category: str = "HRT",
    location: str = "Texas",
    url: str = "https://go.fountain.net/book/abc",
    first_available: str = "",
    scraped_at: str = "",
    error_code: str = "",
) -> List[str]:
    return [
        category, location, name, url, days, "", "", first_available,
        scraped_at, error_code, "",
    ]


def to_csv(rows: Sequence[Sequence[str]], header: Sequence[str] = HEADER) -> str:
    def quote(value: str) -> str:
        return '"' + value.replace('"', '""') + '"'

    return "\n".join(",".join(quote(v) for v in row) for row in [header, *rows]) + "\n"


def tab_name(day: date, suffix: str = "03:48:30 EST") -> str:
    return f"Results {day.strftime('%m-%d-%Y')} {suffix}".strip()


def standard_rows(alpha_days: str) -> List[List[str]]:
    return [
        make_row("Alpha", alpha_days, location="Texas"),
        make_row("Bravo", "7", category="TRT", location="California"),
        make_row("Charlie", "10", category="Provider", location="New York"),
    ]


def make_service(tabs, probe_workers: int = 4, **kwargs) -> AvailabilityReportService:
    source = tabs if isinstance(tabs, TableSheetSource) else TableSheetSource(tabs)
    return AvailabilityReportService(
        source,
        naming=kwargs.pop("naming", NAMING),
        rules=kwargs.pop("rules", RULES),
        settings=kwargs.pop("settings", SETTINGS),
        tz=pytz.UTC,
        probe_workers=probe_workers,
        **kwargs,
    )


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def two_day_tabs():
    return {
        tab_name(TODAY): to_csv(standard_rows("⚡ 2")),
        tab_name(TODAY - timedelta(days=1)): to_csv(standard_rows("✅ 5")),
    }


@pytest.fixture
def app_factory(tmp_path):
    from availability_dashboard import create_app

    def _build(tabs, **overrides):
        config = {
            "TESTING": True,
            "TZ": "UTC",
            "LOG_DIR": str(tmp_path / "logs"),
            "SHEET_SOURCE": TableSheetSource(tabs),
            "REFRESH_SECRET": "s3cret",
            "SOURCE_URL_DOMAIN": "fountain",
            "EXCLUDED_NAMES": (),
            "RESOLVE_TIMEOUT_SECONDS": 30,
        }
        config.update(overrides)
        return create_app(config)

    return _build
