from flask import request, jsonify, make_response
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from datetime import datetime


def log_rate_limit_violation(request_limit):
    from pmitools.extensions import db
    from pmitools.models import AuditLog, User

    try:
        verify_jwt_in_request(optional=True)
        user = User.find_by_email(get_jwt_identity())
    except Exception:
        user = None

    log = AuditLog(
        user_id=user.id if user else None,
        action=f"RATE_LIMIT_EXCEEDED: {request.method} {request.path}",
        ip_address=request.remote_addr,
        timestamp=datetime.utcnow(),
    )
    db.session.add(log)
    db.session.commit()

    return make_response(jsonify({
        "success": False,
        "error": "Rate limit exceeded. Please slow down."
    }), 429)
