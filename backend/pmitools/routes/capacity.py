from datetime import datetime
from flask import Blueprint, request, jsonify, current_app, g
from flask_jwt_extended import jwt_required
from pmitools.extensions import db
from pmitools.capacity import (
    SiteKind, parse_site_kind, resolve_site, count_committed, check_capacity, site_utilization
)
from utils.decorators import min_role_required
from utils.serialization import to_dict
from utils.audit import log_event

capacity_bp = Blueprint('capacity', __name__)

SOURCE_ERROR = 'source must be "agency" or "clinical_site"'


def _parse_date(value):
    return datetime.strptime(value, "%Y-%m-%d").date() if value else None


def _is_positive_int(value):
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


@capacity_bp.route('', methods=['GET'])
@jwt_required()
@min_role_required('lead_instructor')
def list_capacity():
    date_param = request.args.get('date')
    try:
        on_date = _parse_date(date_param)
    except ValueError:
        return jsonify({"success": False, "error": "Invalid date format, use YYYY-MM-DD"}), 400

    default_max = current_app.config["DEFAULT_MAX_STUDENTS_PER_DAY"]
    return jsonify({
        "success": True,
        "date": date_param,
        "agencies": site_utilization(SiteKind.agency, on_date, default_max),
        "clinical_sites": site_utilization(SiteKind.clinical_site, on_date, default_max),
    }), 200


@capacity_bp.route('/check', methods=['GET'])
@jwt_required()
@min_role_required('lead_instructor')
def capacity_check():
    site_id = request.args.get('site_id', type=int)
    if not site_id:
        return jsonify({"success": False, "error": "site_id is required"}), 400

    try:
        kind = parse_site_kind(request.args.get('source', SiteKind.agency.value))
    except ValueError:
        return jsonify({"success": False, "error": SOURCE_ERROR}), 400

    try:
        on_date = _parse_date(request.args.get('date'))
    except ValueError:
        return jsonify({"success": False, "error": "Invalid date format, use YYYY-MM-DD"}), 400

    try:
        student_count = int(request.args.get('student_count', 1))
    except ValueError:
        student_count = 0
    if student_count < 1:
        return jsonify({"success": False, "error": "student_count must be a positive integer"}), 400

    site = resolve_site(kind, site_id)
    if not site:
        return jsonify({"success": False, "error": "Site not found"}), 404

    result = check_capacity(
        site.max_students_per_day,
        count_committed(kind, site.id, on_date),
        student_count,
        default_max=current_app.config["DEFAULT_MAX_STUDENTS_PER_DAY"],
    )

    payload = result.to_dict()
    payload.update({"success": True, "site_name": site.name})
    return jsonify(payload), 200


@capacity_bp.route('', methods=['PATCH'])
@jwt_required()
@min_role_required('admin')
def update_capacity():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"success": False, "error": "Request body must be a JSON object"}), 400
    site_id = data.get('site_id')
    max_per_day = data.get('max_students_per_day')

    if not site_id:
        return jsonify({"success": False, "error": "site_id is required"}), 400

    try:
        kind = parse_site_kind(data.get('source'))
    except ValueError:
        return jsonify({"success": False, "error": SOURCE_ERROR}), 400

    if 'max_students_per_day' in data and not _is_positive_int(max_per_day):
        return jsonify({"success": False, "error": "max_students_per_day must be a positive integer"}), 400

    per_rotation = data.get('max_students_per_rotation')
    if per_rotation is not None and not _is_positive_int(per_rotation):
        return jsonify({"success": False, "error": "max_students_per_rotation must be a positive integer or null"}), 400

    notes = data.get('capacity_notes')
    if notes is not None and not isinstance(notes, str):
        return jsonify({"success": False, "error": "capacity_notes must be a string or null"}), 400

    site = resolve_site(kind, site_id)
    if not site:
        return jsonify({"success": False, "error": "Site not found"}), 404

    for field in ('max_students_per_day', 'max_students_per_rotation', 'capacity_notes'):
        if field in data:
            setattr(site, field, data[field])
    site.updated_at = datetime.utcnow()
    db.session.commit()

    log_event(
        "CAPACITY_UPDATED",
        actor=g.current_user.email,
        ip=request.remote_addr,
        description=f"{kind.value} {site.id} max_per_day={site.max_students_per_day}",
    )

    return jsonify({
        "success": True,
        "site": to_dict(site, fields={"id", "name", "max_students_per_day", "max_students_per_rotation", "capacity_notes"}),
    }), 200
