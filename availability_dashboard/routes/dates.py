from flask import Blueprint, current_app, jsonify

from ..service import get_report_service
from . import date_arg, error_response, today_for, window_arg

URL_PREFIX = "/api/dates"
bp = Blueprint("dates", __name__)


@bp.get("/")
def available_dates():
    app = current_app
    window = window_arg("days")
    today = date_arg("date") or today_for(app)

    try:
        dates = get_report_service(app).get_available_dates(window, today)
    except Exception:
        app.logger.exception("Failed to list available dates", extra={"window": window})
        return error_response("Failed to fetch dates", 500)

    payload = {
        "success": bool(dates),
        "dates": [d.isoformat() for d in dates],
        "count": len(dates),
    }
    if not dates:
        payload["status"] = "no_data"
    return jsonify(payload)
