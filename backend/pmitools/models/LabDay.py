from datetime import datetime
from pmitools.extensions import db
from .base import TimestampMixin, AttendanceStatusEnum


class LabDay(db.Model, TimestampMixin):
    __tablename__ = 'lab_days'

    id = db.Column(db.Integer, primary_key=True)
    cohort_id = db.Column(db.Integer, db.ForeignKey('cohorts.id'), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False, index=True)
    title = db.Column(db.String(255), nullable=True)

    attendance = db.relationship('LabDayAttendance', back_populates='lab_day', lazy=True, cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "cohort_id": self.cohort_id,
            "date": self.date.isoformat(),
            "title": self.title,
        }


class LabDayAttendance(db.Model):
    __tablename__ = 'lab_day_attendance'

    id = db.Column(db.Integer, primary_key=True)
    lab_day_id = db.Column(db.Integer, db.ForeignKey('lab_days.id'), nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False, index=True)
    status = db.Column(db.Enum(AttendanceStatusEnum), nullable=False)
    notes = db.Column(db.String(255), nullable=True)
    marked_by = db.Column(db.String(255), nullable=True)
    marked_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    lab_day = db.relationship('LabDay', back_populates='attendance')
    student = db.relationship('Student', back_populates='attendance')

    __table_args__ = (
        db.UniqueConstraint('lab_day_id', 'student_id', name='uq_lab_day_student'),
    )
