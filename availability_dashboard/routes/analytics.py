from flask import Blueprint, current_app, jsonify

from ..models import NoDataAvailable
from ..service import get_report_service
from . import date_arg, error_response, today_for, window_arg

URL_PREFIX = "/api/analytics"
bp = Blueprint("analytics", __name__)


@bp.get("/")
def analytics():
    app = current_app
    window = window_arg("days")
    today = date_arg("date") or today_for(app)

    try:
        report = get_report_service(app).get_analytics(window, today)
    except Exception:
        app.logger.exception("Analytics failed", extra={"window": window})
        return error_response("Analysis failed", 500)

    if isinstance(report, NoDataAvailable):
        app.logger.info("Analytics: no data in %d-day window ending %s", window, today)
        return jsonify(report.to_dict())

    app.logger.info(
        "Analytics: %d of %d days resolved, latest %s",
        report.days_analyzed,
        report.window_days,
        report.latest_date.isoformat(),
    )
    return jsonify(report.to_dict())
