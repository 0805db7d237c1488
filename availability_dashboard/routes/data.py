import io

import pandas as pd
from flask import Blueprint, Response, current_app, jsonify, request

from ..service import get_report_service
from . import date_arg, error_response, today_for

URL_PREFIX = "/api/data"
bp = Blueprint("data", __name__)

CSV_COLUMNS = ["Name", "Type", "Location", "Days Out", "First Available", "Scraped At"]


def _as_csv(result) -> Response:
    frame = pd.DataFrame(
        [
            (
                r.name,
                r.category,
                r.location,
                r.days_until_available,
                r.first_available_date or "",
                r.captured_at,
            )
            for r in result.records
        ],
        columns=CSV_COLUMNS,
    )
    buffer = io.StringIO()
    frame.to_csv(buffer, index=False)
    filename = f"availability-{result.day.isoformat()}.csv"
    return Response(
        buffer.getvalue(),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@bp.get("/")
def records():
    app = current_app
    day = date_arg("date") or today_for(app)
    app.logger.debug("Records requested", extra={"date": day.isoformat()})

    try:
        result = get_report_service(app).get_records(day)
    except Exception:
        app.logger.exception("Failed to resolve records", extra={"date": day.isoformat()})
        return error_response("Failed to fetch data", 500)

    if result is None:
        app.logger.info("No results tab found at or before %s", day.isoformat())
        return jsonify({"success": False, "status": "no_data", "error": "No Results tab found", "data": []}), 404

    if request.args.get("format") == "csv":
        return _as_csv(result)

    return jsonify(
        {
            "success": True,
            "count": len(result.records),
            "date": result.day.isoformat(),
            "tabName": result.snapshot.tab_name,
            "capturedAt": result.captured_at.isoformat(),
            "lastUpdated": result.last_updated,
            "data": [r.to_dict() for r in result.records],
        }
    )
