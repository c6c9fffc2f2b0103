from datetime import datetime
from flask import Blueprint, request, jsonify, current_app, g, Response
from flask_jwt_extended import jwt_required
import pandas as pd
from pmitools.extensions import db
from pmitools.models import Cohort, Student, LabDay, LabDayAttendance, AttendanceStatusEnum, StudentStatusEnum
from pmitools.attendance import find_at_risk_students, summarize_at_risk, ATTENDED_STATUSES
from utils.decorators import min_role_required
from utils.serialization import to_dict

attendance_bp = Blueprint('attendance', __name__)

REPORT_THRESHOLD = 80
VALID_STATUSES = {s.value for s in AttendanceStatusEnum}


def _parse_date(value):
    return datetime.strptime(value, "%Y-%m-%d").date() if value else None


def _validate_row(student_ids, student_id, status):
    """Return an error message for a bad attendance row, or None."""
    try:
        student_id = int(student_id)
    except (TypeError, ValueError):
        return "Invalid student_id"
    if status not in VALID_STATUSES:
        return f"Invalid status '{status}'"
    if student_id not in student_ids:
        return f"Student {student_id} is not in this lab day's cohort"
    return None


def _upsert(lab_day, student_id, status, actor, notes=None):
    record = LabDayAttendance.query.filter_by(lab_day_id=lab_day.id, student_id=student_id).first()
    if not record:
        record = LabDayAttendance(lab_day_id=lab_day.id, student_id=student_id)
        db.session.add(record)
    record.status = AttendanceStatusEnum(status)
    record.marked_by = actor
    if notes is not None:
        record.notes = notes
    return record


def _cohort_student_ids(lab_day):
    return {sid for (sid,) in db.session.query(Student.id).filter(Student.cohort_id == lab_day.cohort_id).all()}


@attendance_bp.route('/at-risk', methods=['GET'])
@jwt_required()
@min_role_required('instructor')
def at_risk():
    cohort_id = request.args.get('cohort_id', type=int)

    try:
        students = find_at_risk_students(cohort_id=cohort_id)
    except Exception as e:
        current_app.logger.exception("[AT-RISK] Error: %s", e)
        return jsonify({"success": False, "error": "Failed to compute at-risk students"}), 500

    summary = summarize_at_risk(students)
    summary["success"] = True
    summary["total"] = summary["at_risk_count"]
    return jsonify(summary), 200


@attendance_bp.route('/lab-days/<int:lab_day_id>', methods=['GET'])
@jwt_required()
@min_role_required('instructor')
def get_lab_day_attendance(lab_day_id):
    lab_day = LabDay.query.get_or_404(lab_day_id, description="Lab day not found")

    students = Student.query.filter_by(
        cohort_id=lab_day.cohort_id, status=StudentStatusEnum.active
    ).order_by(Student.last_name, Student.first_name).all()
    marks = {r.student_id: r for r in LabDayAttendance.query.filter_by(lab_day_id=lab_day.id).all()}

    roster = []
    for student in students:
        record = marks.get(student.id)
        roster.append({
            "student_id": student.id,
            "first_name": student.first_name,
            "last_name": student.last_name,
            "email": student.email,
            "status": record.status.value if record else None,
            "notes": record.notes if record else None,
            "marked_by": record.marked_by if record else None,
            "marked_at": record.marked_at.isoformat() if record and record.marked_at else None,
        })
    # Unmarked first; sort is stable so name order holds within each group
    roster.sort(key=lambda row: row["status"] is not None)

    summary = {"total": len(roster), "unmarked": sum(1 for row in roster if row["status"] is None)}
    for status in AttendanceStatusEnum:
        summary[status.value] = sum(1 for row in roster if row["status"] == status.value)

    return jsonify({
        "success": True,
        "lab_day": lab_day.to_dict(),
        "students": roster,
        "summary": summary,
    }), 200


@attendance_bp.route('/lab-days/<int:lab_day_id>', methods=['POST'])
@jwt_required()
@min_role_required('instructor')
def mark_attendance(lab_day_id):
    lab_day = LabDay.query.get_or_404(lab_day_id, description="Lab day not found")

    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"success": False, "error": "Request body must be a JSON object"}), 400

    records = data.get('records')
    if not isinstance(records, list) or not records:
        return jsonify({"success": False, "error": "records must be a non-empty list"}), 400

    student_ids = _cohort_student_ids(lab_day)
    for record in records:
        if not isinstance(record, dict):
            return jsonify({"success": False, "error": "Each record must be an object"}), 400
        error = _validate_row(student_ids, record.get('student_id'), record.get('status'))
        if error:
            return jsonify({"success": False, "error": error}), 400

    actor = g.current_user.email
    saved = [
        _upsert(lab_day, int(r['student_id']), r['status'], actor, r.get('notes'))
        for r in records
    ]
    db.session.commit()

    return jsonify({
        "success": True,
        "message": "Attendance recorded",
        "attendance": [to_dict(r) for r in saved],
    }), 200


@attendance_bp.route('/lab-days/<int:lab_day_id>/import', methods=['POST'])
@jwt_required()
@min_role_required('instructor')
def import_attendance(lab_day_id):
    lab_day = LabDay.query.get_or_404(lab_day_id, description="Lab day not found")

    file = request.files.get('file')
    if not file or not file.filename:
        return jsonify({"success": False, "error": "No file uploaded"}), 400
    if not file.filename.lower().endswith('.csv'):
        return jsonify({"success": False, "error": "Unsupported file format. Use CSV."}), 400

    try:
        df = pd.read_csv(file, dtype=str)
    except Exception as e:
        current_app.logger.warning("Failed to read attendance CSV: %s", e)
        return jsonify({"success": False, "error": "Failed to read file"}), 400

    missing = {'student_id', 'status'} - set(df.columns)
    if missing:
        return jsonify({"success": False, "error": f"Missing columns: {', '.join(sorted(missing))}"}), 400

    student_ids = _cohort_student_ids(lab_day)
    actor = g.current_user.email
    imported = 0
    skipped = []

    for idx, row in df.iterrows():
        status = str(row['status']).strip().lower()
        error = _validate_row(student_ids, row['student_id'], status)
        if error:
            skipped.append({"row": int(idx) + 2, "error": error})  # +2: header line and 1-based rows
            continue
        _upsert(lab_day, int(row['student_id']), status, actor)
        imported += 1

    db.session.commit()
    return jsonify({"success": True, "imported": imported, "skipped": skipped}), 200


@attendance_bp.route('/report', methods=['GET'])
@jwt_required()
@min_role_required('lead_instructor')
def attendance_report():
    cohort_id = request.args.get('cohort_id', type=int)
    if not cohort_id:
        return jsonify({"success": False, "error": "cohort_id is required"}), 400

    try:
        start_date = _parse_date(request.args.get('start_date'))
        end_date = _parse_date(request.args.get('end_date'))
    except ValueError:
        return jsonify({"success": False, "error": "Invalid date format, use YYYY-MM-DD"}), 400

    cohort = db.session.get(Cohort, cohort_id)
    if not cohort:
        return jsonify({"success": False, "error": "Cohort not found"}), 404

    students = (
        Student.query
        .filter_by(cohort_id=cohort.id, status=StudentStatusEnum.active)
        .order_by(Student.last_name, Student.first_name)
        .all()
    )

    lab_day_query = LabDay.query.filter_by(cohort_id=cohort.id)
    if start_date:
        lab_day_query = lab_day_query.filter(LabDay.date >= start_date)
    if end_date:
        lab_day_query = lab_day_query.filter(LabDay.date <= end_date)
    lab_day_ids = [ld.id for ld in lab_day_query.order_by(LabDay.date).all()]
    total_lab_days = len(lab_day_ids)

    attended = {s.id: 0 for s in students}
    if lab_day_ids and students:
        rows = LabDayAttendance.query.filter(
            LabDayAttendance.lab_day_id.in_(lab_day_ids),
            LabDayAttendance.student_id.in_(list(attended)),
        ).all()
        for r in rows:
            if r.status.value in ATTENDED_STATUSES:
                attended[r.student_id] += 1

    # Unlike the risk sweep, this report counts unmarked lab days as missed
    student_rows = []
    for s in students:
        count = attended[s.id]
        rate = round(100 * count / total_lab_days) if total_lab_days else 100
        student_rows.append({
            "id": s.id,
            "name": s.full_name,
            "email": s.email,
            "attended": count,
            "missed": total_lab_days - count,
            "total_labs": total_lab_days,
            "rate": rate,
            "below_threshold": rate < REPORT_THRESHOLD,
        })
    student_rows.sort(key=lambda r: r["rate"])

    if request.args.get('format') == 'csv':
        columns = ["id", "name", "email", "attended", "missed", "total_labs", "rate", "below_threshold"]
        csv_data = pd.DataFrame(student_rows, columns=columns).to_csv(index=False)
        return Response(
            csv_data,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename=attendance_cohort_{cohort.id}.csv"},
        )

    total_students = len(student_rows)
    return jsonify({
        "success": True,
        "cohort": cohort.to_dict(),
        "date_range": {
            "start": start_date.isoformat() if start_date else None,
            "end": end_date.isoformat() if end_date else None,
        },
        "summary": {
            "total_lab_days": total_lab_days,
            "total_students": total_students,
            "avg_rate": round(sum(r["rate"] for r in student_rows) / total_students) if total_students else 0,
            "below_threshold_count": sum(1 for r in student_rows if r["below_threshold"]),
        },
        "students": student_rows,
    }), 200
