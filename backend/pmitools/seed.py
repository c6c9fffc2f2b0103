import os
from datetime import date, timedelta
from pmitools.extensions import db
from pmitools.models import (
    User, TokenBlocklist, AuditLog, Program, Cohort, Student, LabDay, LabDayAttendance, AttendanceStatusEnum,
    Agency, ClinicalSite, ClinicalSiteVisit, StudentInternship, StudentClinicalHours, StudentShift,
    InternshipStatusEnum,
)


def seed_data():
    # Clear existing data (for local development only)
    for model in (LabDayAttendance, LabDay, StudentInternship, StudentClinicalHours, StudentShift,
                  ClinicalSiteVisit, AuditLog, TokenBlocklist,
                  Student, Cohort, Program, Agency, ClinicalSite, User):
        model.query.delete()
    db.session.commit()

    admin_password = os.getenv("ADMIN_PASSWORD", "change-me")

    for email, role in [
        ("superadmin@example.edu", "superadmin"),
        ("admin@example.edu", "admin"),
        ("lead@example.edu", "lead_instructor"),
        ("instructor@example.edu", "instructor"),
        ("guest@example.edu", "guest"),
    ]:
        user = User(email=email, name=role.replace("_", " ").title(), role=role)
        user.set_password(admin_password)
        db.session.add(user)

    program = Program(name="Paramedic", abbreviation="PM")
    cohort = Cohort(cohort_number=14, program=program)
    db.session.add_all([program, cohort])
    db.session.flush()

    students = [
        Student(first_name="Avery", last_name="Stone", email="avery@example.edu", cohort_id=cohort.id),
        Student(first_name="Jordan", last_name="Reyes", email="jordan@example.edu", cohort_id=cohort.id),
        Student(first_name="Sam", last_name="Okafor", email="sam@example.edu", cohort_id=cohort.id),
    ]
    db.session.add_all(students)

    today = date.today()
    lab_days = [LabDay(cohort_id=cohort.id, date=today - timedelta(days=7 * n), title=f"Lab {6 - n}") for n in range(5, 0, -1)]
    db.session.add_all(lab_days)
    db.session.flush()

    patterns = [
        ["present", "present", "late", "present", "present"],
        ["present", "absent", "present", "absent", "present"],
        ["present", "present", "absent", "absent", "absent"],
    ]
    for student, statuses in zip(students, patterns):
        for lab_day, status in zip(lab_days, statuses):
            db.session.add(LabDayAttendance(
                lab_day_id=lab_day.id,
                student_id=student.id,
                status=AttendanceStatusEnum(status),
                marked_by="instructor@example.edu",
            ))

    agency = Agency(name="Metro Fire Rescue", abbreviation="MFR", type="ems", max_students_per_day=2)
    site = ClinicalSite(name="University Medical Center", abbreviation="UMC", system="County", max_students_per_day=3)
    db.session.add_all([agency, site])
    db.session.flush()

    db.session.add(StudentInternship(
        student_id=students[0].id,
        cohort_id=cohort.id,
        agency_id=agency.id,
        placement_date=today,
        status=InternshipStatusEnum.in_progress,
        phase_2_eval_completed=True,
        phase_2_eval_scheduled=today - timedelta(days=3),
        written_exam_passed=True,
        written_exam_date=today - timedelta(days=10),
    ))
    db.session.add(StudentClinicalHours(student_id=students[0].id, total_hours=420))

    db.session.commit()
