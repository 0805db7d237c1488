import secrets
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request

from ..service import get_report_service

URL_PREFIX = "/admin"
bp = Blueprint("admin", __name__)


@bp.post("/refresh-cache")
def refresh_cache_now():
    expected = current_app.config.get("REFRESH_SECRET", "")
    provided = request.args.get("secret", "")
    if not expected or not secrets.compare_digest(provided, expected):
        current_app.logger.warning(
            "Rejected cache refresh", extra={"remote_addr": request.remote_addr}
        )
        return jsonify({"refreshed": False, "error": "Invalid secret"}), 401

    dropped = get_report_service(current_app).refresh()
    current_app.logger.info(
        "Manual cache refresh", extra={"dropped": dropped, "remote_addr": request.remote_addr}
    )
    return jsonify(
        {
            "refreshed": True,
            "dropped": dropped,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    )
