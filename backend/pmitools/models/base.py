from datetime import datetime
from pmitools.extensions import db
import enum


class TimestampMixin:
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class CapacityMixin:
    """Per-day and per-rotation student limits shared by agencies and clinical sites."""
    max_students_per_day = db.Column(db.Integer, nullable=True)
    max_students_per_rotation = db.Column(db.Integer, nullable=True)
    capacity_notes = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False, index=True)


class AttendanceStatusEnum(enum.Enum):
    present = "present"
    late = "late"
    absent = "absent"
    excused = "excused"


class StudentStatusEnum(enum.Enum):
    active = "active"
    graduated = "graduated"
    withdrawn = "withdrawn"
    on_hold = "on_hold"


class InternshipStatusEnum(enum.Enum):
    not_started = "not_started"
    in_progress = "in_progress"
    on_track = "on_track"
    at_risk = "at_risk"
    extended = "extended"
    completed = "completed"
    withdrawn = "withdrawn"
