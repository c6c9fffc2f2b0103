import logging
from datetime import date, datetime, timedelta

import pytest
from flask_jwt_extended import create_access_token

from pmitools import create_app
from pmitools.config import TestConfig
from pmitools.extensions import db
from pmitools.models import (
    User, Program, Cohort, Student, LabDay, LabDayAttendance, AttendanceStatusEnum, StudentStatusEnum,
    Agency, ClinicalSite, StudentInternship, StudentClinicalHours,
)
import utils.audit as audit

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
)

ROLES = ["superadmin", "admin", "lead_instructor", "instructor", "guest"]
PASSWORD = "correct-horse-battery"


# ---------------------------------------------------------------------------
# App, client and users
# ---------------------------------------------------------------------------
@pytest.fixture
def app(tmp_path, monkeypatch):
    """Fresh in-memory database per test, one user per role."""
    monkeypatch.setattr(audit, "AUDIT_LOG_FILE", str(tmp_path / "logs" / "audit.log"))
    app = create_app(TestConfig)

    with app.app_context():
        for role in ROLES:
            user = User(email=f"{role}@example.edu", name=role.title(), role=role)
            user.set_password(PASSWORD)
            db.session.add(user)
        db.session.commit()

        yield app

        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def headers(app):
    """headers("admin") -> Authorization header for that role's seeded user."""
    def _headers(role_or_email):
        email = role_or_email if "@" in role_or_email else f"{role_or_email}@example.edu"
        return {"Authorization": f"Bearer {create_access_token(identity=email)}"}
    return _headers


@pytest.fixture
def cron_headers(app):
    return {"Authorization": f"Bearer {app.config['CRON_SECRET']}"}


# ---------------------------------------------------------------------------
# Attendance data
# ---------------------------------------------------------------------------
def mark(lab_days, student, statuses):
    for lab_day, status in zip(lab_days, statuses):
        if status is None:
            continue
        db.session.add(LabDayAttendance(
            lab_day_id=lab_day.id,
            student_id=student.id,
            status=AttendanceStatusEnum(status),
        ))


@pytest.fixture
def cohort(app):
    """
    A cohort with four past lab days (oldest first) and one future lab day.

    - critical: present, absent, absent, absent
    - warning: absent, absent, present, present
    - fine: present, late, present, excused
    - unmarked: no attendance at all
    - withdrawn: absent x4 but not active
    """
    program = Program(name="Paramedic", abbreviation="PM")
    cohort = Cohort(cohort_number=12, program=program)
    db.session.add_all([program, cohort])
    db.session.flush()

    today = date.today()
    lab_days = [LabDay(cohort_id=cohort.id, date=today - timedelta(days=d), title=f"Lab {i}")
                for i, d in enumerate([28, 21, 14, 7], start=1)]
    future_day = LabDay(cohort_id=cohort.id, date=today + timedelta(days=7), title="Future lab")
    db.session.add_all(lab_days + [future_day])

    students = {
        key: Student(first_name=key.title(), last_name="Student", email=f"{key}@students.edu", cohort_id=cohort.id)
        for key in ("critical", "warning", "fine", "unmarked")
    }
    students["withdrawn"] = Student(first_name="Withdrawn", last_name="Student", cohort_id=cohort.id,
                                    status=StudentStatusEnum.withdrawn)
    db.session.add_all(students.values())
    db.session.flush()

    mark(lab_days, students["critical"], ["present", "absent", "absent", "absent"])
    mark(lab_days, students["warning"], ["absent", "absent", "present", "present"])
    mark(lab_days, students["fine"], ["present", "late", "present", "excused"])
    mark(lab_days, students["withdrawn"], ["absent", "absent", "absent", "absent"])
    # A future absence must not count toward the sweep
    mark([future_day], students["fine"], ["absent"])
    db.session.commit()

    return {"cohort": cohort, "lab_days": lab_days, "future_day": future_day, "students": students}


# ---------------------------------------------------------------------------
# Clinical data
# ---------------------------------------------------------------------------
@pytest.fixture
def student(app):
    s = Student(first_name="Casey", last_name="Nguyen", email="casey@students.edu")
    db.session.add(s)
    db.session.commit()
    return s


@pytest.fixture
def make_internship(app, student):
    """Internship with every closeout gate satisfied unless overridden."""
    def _make(hours=480, **fields):
        values = dict(
            student_id=student.id,
            phase_2_eval_completed=True,
            phase_2_eval_scheduled=date(2026, 5, 1),
            internship_completion_date=date(2026, 5, 20),
            snhd_field_docs_submitted_at=datetime(2026, 5, 22, 9, 30),
            snhd_course_completion_submitted_at=datetime(2026, 5, 23, 14, 0),
            written_exam_passed=True,
            written_exam_date=date(2026, 6, 1),
            psychomotor_exam_passed=True,
            psychomotor_exam_date=date(2026, 6, 2),
        )
        values.update(fields)
        internship = StudentInternship(**values)
        db.session.add(internship)
        hours_row = StudentClinicalHours.query.filter_by(student_id=student.id).first()
        if hours_row:
            hours_row.total_hours = hours
        else:
            db.session.add(StudentClinicalHours(student_id=student.id, total_hours=hours))
        db.session.commit()
        return internship
    return _make


@pytest.fixture
def agency(app):
    a = Agency(name="Metro Fire Rescue", abbreviation="MFR", type="ems", max_students_per_day=2)
    db.session.add(a)
    db.session.commit()
    return a


@pytest.fixture
def clinical_site(app):
    s = ClinicalSite(name="University Medical Center", abbreviation="UMC", system="County", max_students_per_day=None)
    db.session.add(s)
    db.session.commit()
    return s
