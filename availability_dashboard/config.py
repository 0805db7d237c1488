import json
import os


def _csv_env(name: str, default: str) -> tuple:
    raw = os.getenv(name, default)
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _int_list_env(name: str, default: str) -> tuple:
    return tuple(int(part) for part in _csv_env(name, default))


DEFAULT_REGION_KEYWORDS = {
    "West": [
        "California", "Oregon", "Washington", "Nevada", "Arizona", "Utah",
        "Colorado", "New Mexico", "Montana", "Idaho", "Wyoming",
    ],
    "Midwest": [
        "Ohio", "Michigan", "Indiana", "Illinois", "Wisconsin", "Minnesota",
        "Iowa", "Missouri", "Nebraska", "Kansas",
    ],
    "South": [
        "Texas", "Florida", "Georgia", "North Carolina", "Virginia",
        "Tennessee", "Kentucky", "Maryland", "South Carolina",
    ],
    "Northeast": [
        "New York", "New Jersey", "Pennsylvania", "Massachusetts",
        "Connecticut", "New Hampshire",
    ],
}

# Stamps the publisher has actually used, most common first.
DEFAULT_TIME_SUFFIXES = "03:48:30 EST,03:48:30 ET,03:00:00 EST,08:00:00 EST,08:00:00 UTC"


def _region_keywords_env() -> dict:
    raw = os.getenv("REGION_KEYWORDS_JSON", "")
    if not raw:
        return DEFAULT_REGION_KEYWORDS
    return json.loads(raw)


class Config:
    """Base configuration loaded from environment variables."""

    # --- General ---
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_DIR = os.getenv("LOG_DIR", "")
    LOG_FILE = os.getenv("LOG_FILE", "availability_dashboard.log")
    TZ = os.getenv("TZ", "America/New_York")

    # --- Published sheet ---
    GOOGLE_SHEET_ID = os.getenv("GOOGLE_SHEET_ID", "")
    SHEET_CSV_URL_TEMPLATE = os.getenv(
        "SHEET_CSV_URL_TEMPLATE",
        "https://docs.google.com/spreadsheets/d/{sheet_id}/gviz/tq?tqx=out:csv",
    )
    FETCH_TIMEOUT_SECONDS = float(os.getenv("FETCH_TIMEOUT_SECONDS", "15"))
    MAX_CONCURRENT_FETCHES = int(os.getenv("MAX_CONCURRENT_FETCHES", "8"))
    PROBE_WORKERS = int(os.getenv("PROBE_WORKERS", "6"))
    RESOLVE_TIMEOUT_SECONDS = float(os.getenv("RESOLVE_TIMEOUT_SECONDS", "45"))

    # --- Tab naming ---
    TAB_PREFIX = os.getenv("TAB_PREFIX", "Results")
    TAB_DATE_FORMATS = _csv_env("TAB_DATE_FORMATS", "%m-%d-%Y,%Y-%m-%d")
    TAB_TIME_SUFFIXES = _csv_env("TAB_TIME_SUFFIXES", DEFAULT_TIME_SUFFIXES)
    PUBLISH_WINDOW_HOURS = _int_list_env("PUBLISH_WINDOW_HOURS", "3,4,5")
    PUBLISH_WINDOW_MINUTES = _int_list_env("PUBLISH_WINDOW_MINUTES", "0,30,48")
    PUBLISH_ZONES = _csv_env("PUBLISH_ZONES", "EST,ET")
    MAX_TAB_CANDIDATES = int(os.getenv("MAX_TAB_CANDIDATES", "48"))
    MIN_TAB_BYTES = int(os.getenv("MIN_TAB_BYTES", "100"))

    # --- Row validation ---
    CATEGORY_WHITELIST = _csv_env("CATEGORY_WHITELIST", "HRT,TRT,Provider")
    TRACKABLE_CATEGORIES = _csv_env("TRACKABLE_CATEGORIES", "HRT,TRT")
    SOURCE_URL_DOMAIN = os.getenv("SOURCE_URL_DOMAIN", "fountain")
    EXCLUDED_NAMES = _csv_env("EXCLUDED_NAMES", "")

    # --- Analytics ---
    REGION_KEYWORDS = _region_keywords_env()
    IMMEDIATE_THRESHOLD_DAYS = int(os.getenv("IMMEDIATE_THRESHOLD_DAYS", "3"))
    DEFAULT_WINDOW_DAYS = int(os.getenv("DEFAULT_WINDOW_DAYS", "7"))
    MAX_WINDOW_DAYS = int(os.getenv("MAX_WINDOW_DAYS", "14"))
    LOOKBACK_DAYS = int(os.getenv("LOOKBACK_DAYS", "3"))
    WEEKLY_MIN_DAYS = int(os.getenv("WEEKLY_MIN_DAYS", "7"))
    WEEKLY_MIN_CHANGE = int(os.getenv("WEEKLY_MIN_CHANGE", "2"))
    RANKING_SIZE = int(os.getenv("RANKING_SIZE", "10"))

    # --- Cache ---
    CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", "900"))
    CACHE_MISS_TTL_SECONDS = int(os.getenv("CACHE_MISS_TTL_SECONDS", "300"))
    CACHE_MAX_ENTRIES = int(os.getenv("CACHE_MAX_ENTRIES", "128"))
    CACHE_REFRESH_HOUR = int(os.getenv("CACHE_REFRESH_HOUR", "5"))  # 0500 ET
    CACHE_REFRESH_MINUTE = int(os.getenv("CACHE_REFRESH_MINUTE", "0"))
    REFRESH_SECRET = os.getenv("REFRESH_SECRET", "")

    # --- Misc ---
    DEBUG = os.getenv("FLASK_DEBUG", "False").lower() == "true"
