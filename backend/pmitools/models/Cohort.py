from pmitools.extensions import db
from .base import TimestampMixin, StudentStatusEnum


class Program(db.Model):
    __tablename__ = 'programs'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    abbreviation = db.Column(db.String(20), nullable=False)

    cohorts = db.relationship('Cohort', backref='program', lazy=True)


class Cohort(db.Model, TimestampMixin):
    __tablename__ = 'cohorts'

    id = db.Column(db.Integer, primary_key=True)
    cohort_number = db.Column(db.Integer, nullable=False, index=True)
    program_id = db.Column(db.Integer, db.ForeignKey('programs.id'), nullable=True)
    start_date = db.Column(db.Date, nullable=True)

    students = db.relationship('Student', backref='cohort', lazy=True)
    lab_days = db.relationship('LabDay', backref='cohort', lazy=True, order_by='LabDay.date')

    @property
    def label(self):
        if self.program:
            return f"{self.program.abbreviation} Cohort {self.cohort_number}"
        return f"Cohort {self.cohort_number}"

    def to_dict(self):
        return {
            "id": self.id,
            "cohort_number": self.cohort_number,
            "label": self.label,
            "program": self.program.name if self.program else None,
        }


class Student(db.Model, TimestampMixin):
    __tablename__ = 'students'

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(80), nullable=False)
    last_name = db.Column(db.String(80), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    cohort_id = db.Column(db.Integer, db.ForeignKey('cohorts.id'), nullable=True, index=True)
    status = db.Column(db.Enum(StudentStatusEnum), nullable=False, default=StudentStatusEnum.active, index=True)

    attendance = db.relationship('LabDayAttendance', back_populates='student', lazy=True, cascade="all, delete-orphan")

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    def to_dict(self):
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "cohort_id": self.cohort_id,
            "status": self.status.value if self.status else None,
        }
