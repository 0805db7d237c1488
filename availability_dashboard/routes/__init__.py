"""HTTP routes; every module exposing a Blueprint is registered by the factory."""

from datetime import date, datetime

from flask import abort, current_app, jsonify, request

from ..utils.snapshot_cache import get_timezone


def today_for(app) -> date:
    """Calendar date "now" in the configured zone."""
    return datetime.now(get_timezone(app.config.get("TZ", "America/New_York"))).date()


def date_arg(name: str = "date"):
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        abort(400, description=f"'{name}' must be YYYY-MM-DD")


def window_arg(name: str = "days") -> int:
    default = current_app.config.get("DEFAULT_WINDOW_DAYS", 7)
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        abort(400, description=f"'{name}' must be an integer")
    if value < 1:
        abort(400, description=f"'{name}' must be at least 1")
    return value


def error_response(message: str, status: int):
    return jsonify({"success": False, "error": message}), status
