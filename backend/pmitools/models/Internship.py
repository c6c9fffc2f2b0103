from pmitools.extensions import db
from .base import TimestampMixin, InternshipStatusEnum


class StudentInternship(db.Model, TimestampMixin):
    __tablename__ = 'student_internships'

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False, index=True)
    cohort_id = db.Column(db.Integer, db.ForeignKey('cohorts.id'), nullable=True)
    agency_id = db.Column(db.Integer, db.ForeignKey('agencies.id'), nullable=True, index=True)
    placement_date = db.Column(db.Date, nullable=True, index=True)
    status = db.Column(db.Enum(InternshipStatusEnum), nullable=False, default=InternshipStatusEnum.not_started, index=True)

    # Phase 2 evaluation
    phase_2_eval_scheduled = db.Column(db.Date, nullable=True)
    phase_2_eval_completed = db.Column(db.Boolean, default=False, nullable=False)
    internship_completion_date = db.Column(db.Date, nullable=True)

    # SNHD submissions
    snhd_field_docs_submitted_at = db.Column(db.DateTime, nullable=True)
    snhd_course_completion_submitted_at = db.Column(db.DateTime, nullable=True)

    # Exams
    written_exam_passed = db.Column(db.Boolean, default=False, nullable=False)
    written_exam_date = db.Column(db.Date, nullable=True)
    psychomotor_exam_passed = db.Column(db.Boolean, default=False, nullable=False)
    psychomotor_exam_date = db.Column(db.Date, nullable=True)

    # Closeout
    completed_at = db.Column(db.DateTime, nullable=True)
    completed_by = db.Column(db.String(255), nullable=True)

    student = db.relationship('Student', backref='internships')


class StudentClinicalHours(db.Model):
    __tablename__ = 'student_clinical_hours'

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False, unique=True)
    total_hours = db.Column(db.Float, nullable=False, default=0)


class StudentShift(db.Model):
    __tablename__ = 'student_shifts'

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False, index=True)
    shift_date = db.Column(db.Date, nullable=False)
    hours = db.Column(db.Float, nullable=False, default=0)
    status = db.Column(db.String(20), nullable=False, default="scheduled")  # 'scheduled' | 'completed' | 'cancelled'
