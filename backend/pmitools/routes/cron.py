import time
from datetime import datetime
from flask import Blueprint, jsonify, current_app
from pmitools.attendance import find_at_risk_students, summarize_at_risk
from utils.decorators import cron_secret_required

cron_bp = Blueprint('cron', __name__)


@cron_bp.route('/attendance-alerts', methods=['GET'])
@cron_secret_required
def attendance_alerts():
    started = time.monotonic()
    current_app.logger.info("[ATTENDANCE-ALERTS] Cron started at %s", datetime.utcnow().isoformat())

    try:
        at_risk = find_at_risk_students()
    except Exception as e:
        current_app.logger.exception("[ATTENDANCE-ALERTS] Sweep failed: %s", e)
        return jsonify({"success": False, "error": "Failed to compute attendance alerts"}), 500

    summary = summarize_at_risk(at_risk)
    summary["success"] = True
    summary["duration_ms"] = int((time.monotonic() - started) * 1000)

    current_app.logger.info(
        "[ATTENDANCE-ALERTS] Completed: at_risk=%d critical=%d warning=%d duration_ms=%d",
        summary["at_risk_count"], summary["critical_count"], summary["warning_count"], summary["duration_ms"],
    )
    return jsonify(summary), 200
