from flask import Blueprint, jsonify, current_app
from sqlalchemy import text
from pmitools.extensions import db

base_bp = Blueprint("base", __name__)

@base_bp.route("/")
def home():
    return jsonify({"message": "PMI Tools API"})

@base_bp.route("/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
        return jsonify({"success": True, "status": "ok"})
    except Exception as e:
        current_app.logger.error("Health check failed: %s", e)
        return jsonify({"success": False, "error": "Database unavailable"}), 503
