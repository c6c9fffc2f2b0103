import hmac
from functools import wraps
from flask import jsonify, request, current_app, g
from flask_jwt_extended import get_jwt_identity
from pmitools.models import User
from utils.permissions import has_min_role


def get_current_user():
    """Resolve the session email to a user row (case-insensitive)."""
    return User.find_by_email(get_jwt_identity())


def min_role_required(required_role):
    """
    Require a session whose user holds ``required_role`` or higher.
    Usage: @min_role_required("lead_instructor")
    The resolved user is available as ``g.current_user``.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = get_current_user()
            if not user or not user.is_active:
                return jsonify({"success": False, "error": "Unauthorized"}), 401

            if not has_min_role(user.role, required_role):
                return jsonify({"success": False, "error": f"Forbidden - {required_role}+ required"}), 403

            g.current_user = user
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def cron_secret_required(fn):
    """
    Authenticate the scheduled job runner with ``Authorization: Bearer <CRON_SECRET>``.
    When no secret is configured the check is skipped.
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        secret = current_app.config.get("CRON_SECRET")
        if secret:
            header = request.headers.get("Authorization", "")
            if not hmac.compare_digest(header, f"Bearer {secret}"):
                current_app.logger.warning("[CRON] Unauthorized cron request to %s", request.path)
                return jsonify({"success": False, "error": "Unauthorized"}), 401
        return fn(*args, **kwargs)
    return wrapper
