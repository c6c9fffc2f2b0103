from flask import Blueprint, request, jsonify, current_app, g
from flask_jwt_extended import jwt_required
from sqlalchemy import func
from pmitools.extensions import db
from pmitools.models import StudentInternship, StudentShift
from pmitools.closeout import (
    build_checklist, parse_checklist, finalize_closeout, get_total_hours,
    ChecklistIncomplete, AlreadyCompleted,
)
from utils.decorators import min_role_required
from utils.audit import log_event

closeout_bp = Blueprint('closeout', __name__)


def _iso(value):
    return value.isoformat() if value else None


def _load_internship(internship_id):
    return StudentInternship.query.get_or_404(internship_id, description="Internship not found")


def _checklist_for(internship):
    return build_checklist(
        internship,
        get_total_hours(internship.student_id),
        current_app.config["REQUIRED_CLINICAL_HOURS"],
    )


@closeout_bp.route('/<int:internship_id>/closeout', methods=['GET'])
@jwt_required()
@min_role_required('lead_instructor')
def get_closeout(internship_id):
    internship = _load_internship(internship_id)

    return jsonify({
        "success": True,
        "checklist": [item.to_dict() for item in _checklist_for(internship)],
        "completed_at": _iso(internship.completed_at),
        "completed_by": internship.completed_by,
    }), 200


@closeout_bp.route('/<int:internship_id>/closeout', methods=['POST'])
@jwt_required()
@min_role_required('admin')
def complete_closeout(internship_id):
    internship = _load_internship(internship_id)

    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"success": False, "error": "Request body must be a JSON object"}), 400

    try:
        checklist = parse_checklist(data.get('checklist'))
    except ValueError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    actor = g.current_user.email
    try:
        finalize_closeout(internship, checklist, actor)
    except ChecklistIncomplete as e:
        return jsonify({"success": False, "error": str(e), "missing": e.labels}), 400
    except AlreadyCompleted:
        return jsonify({"success": False, "error": "Internship closeout is already completed"}), 409

    log_event(
        "CLOSEOUT_COMPLETED",
        actor=actor,
        ip=request.remote_addr,
        description=f"Internship {internship.id} marked complete",
    )

    return jsonify({
        "success": True,
        "internship": {
            "id": internship.id,
            "completed_at": _iso(internship.completed_at),
            "completed_by": internship.completed_by,
        },
    }), 200


@closeout_bp.route('/<int:internship_id>/closeout/summary', methods=['GET'])
@jwt_required()
@min_role_required('lead_instructor')
def closeout_summary(internship_id):
    internship = _load_internship(internship_id)

    if not internship.completed_at:
        return jsonify({"success": False, "error": "Internship has not been marked complete yet"}), 400

    total_shifts = db.session.query(func.count(StudentShift.id)).filter(
        StudentShift.student_id == internship.student_id,
        StudentShift.status == "completed",
    ).scalar() or 0

    student = internship.student
    agency = internship.agency
    return jsonify({
        "success": True,
        "summary": {
            "internship_id": internship.id,
            "student": student.to_dict() if student else None,
            "cohort_label": student.cohort.label if student and student.cohort else None,
            "agency": agency.name if agency else None,
            "total_hours": get_total_hours(internship.student_id),
            "required_hours": current_app.config["REQUIRED_CLINICAL_HOURS"],
            "total_shifts": total_shifts,
            "written_exam_date": _iso(internship.written_exam_date),
            "psychomotor_exam_date": _iso(internship.psychomotor_exam_date),
            "checklist": [item.to_dict() for item in _checklist_for(internship)],
            "completed_at": _iso(internship.completed_at),
            "completed_by": internship.completed_by,
        },
    }), 200
