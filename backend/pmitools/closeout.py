"""
Internship closeout checklist.

An internship can be signed off only when every gate below is either satisfied
by the stored record (``auto_checked``) or waived by staff (``manual_override``).
Completion is one-way and records who finalized it and when.
"""
from dataclasses import dataclass, asdict
from datetime import datetime
import enum

from sqlalchemy import update
from pmitools.extensions import db
from pmitools.models import StudentInternship, StudentClinicalHours


class ChecklistKey(enum.Enum):
    shifts_completed = "shifts_completed"
    final_eval_submitted = "final_eval_submitted"
    preceptor_signoff = "preceptor_signoff"
    hours_verified = "hours_verified"
    snhd_field_docs = "snhd_field_docs"
    snhd_course_completion = "snhd_course_completion"
    written_exam = "written_exam"
    psychomotor_exam = "psychomotor_exam"


CHECKLIST_LABELS = {
    ChecklistKey.shifts_completed: "All required shifts completed",
    ChecklistKey.final_eval_submitted: "Final evaluation submitted",
    ChecklistKey.preceptor_signoff: "Preceptor sign-off received",
    ChecklistKey.hours_verified: "Clinical hours verified",
    ChecklistKey.snhd_field_docs: "SNHD field docs submitted",
    ChecklistKey.snhd_course_completion: "SNHD course completion submitted",
    ChecklistKey.written_exam: "Written exam passed",
    ChecklistKey.psychomotor_exam: "Psychomotor exam passed",
}

GATE_ORDER = list(ChecklistKey)


class ChecklistIncomplete(Exception):
    def __init__(self, labels):
        self.labels = labels
        super().__init__(f"Cannot complete: the following items are not yet done: {', '.join(labels)}")


class AlreadyCompleted(Exception):
    pass


def _flag(data, name):
    # Only real booleans; "false" or 1 must not satisfy a gate
    value = data.get(name, False)
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be true or false")
    return value


@dataclass
class ChecklistItem:
    key: ChecklistKey
    label: str
    auto_checked: bool
    manual_override: bool = False
    details: str = ""

    @property
    def is_satisfied(self):
        return self.auto_checked or self.manual_override

    def to_dict(self):
        data = asdict(self)
        data["key"] = self.key.value
        return data

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValueError("Checklist items must be objects")
        try:
            key = ChecklistKey(data.get("key"))
        except ValueError:
            raise ValueError(f"Unknown checklist item: {data.get('key')!r}")
        return cls(
            key=key,
            label=CHECKLIST_LABELS[key],
            auto_checked=_flag(data, "auto_checked"),
            manual_override=_flag(data, "manual_override"),
            details=data.get("details") or "",
        )


def _fmt_date(value):
    return f"{value.month}/{value.day}/{value.year}"


def _fmt_hours(hours):
    return f"{hours:g}"


def get_total_hours(student_id):
    record = StudentClinicalHours.query.filter_by(student_id=student_id).first()
    return record.total_hours if record and record.total_hours else 0


def build_checklist(internship, total_hours, required_hours, overrides=None):
    """
    Build the eight closeout gates for ``internship`` in their fixed order.

    ``overrides`` maps a ChecklistKey (or its string value) to ``True`` for gates
    staff have waived.
    """
    overrides = {ChecklistKey(k): bool(v) for k, v in (overrides or {}).items()}
    hours_met = total_hours >= required_hours
    i = internship

    if i.internship_completion_date:
        final_eval_details = f"Completed {_fmt_date(i.internship_completion_date)}"
    elif i.phase_2_eval_completed:
        final_eval_details = "Phase 2 eval completed"
    else:
        final_eval_details = ""

    gates = {
        ChecklistKey.shifts_completed: (
            hours_met,
            f"{_fmt_hours(total_hours)}/{_fmt_hours(required_hours)} hours",
        ),
        ChecklistKey.final_eval_submitted: (
            bool(i.phase_2_eval_completed or i.internship_completion_date),
            final_eval_details,
        ),
        ChecklistKey.preceptor_signoff: (
            bool(i.phase_2_eval_completed),
            f"Eval scheduled {_fmt_date(i.phase_2_eval_scheduled)}" if i.phase_2_eval_scheduled else "",
        ),
        ChecklistKey.hours_verified: (
            hours_met,
            f"{_fmt_hours(total_hours)} total hours logged",
        ),
        ChecklistKey.snhd_field_docs: (
            bool(i.snhd_field_docs_submitted_at),
            f"Submitted {_fmt_date(i.snhd_field_docs_submitted_at)}" if i.snhd_field_docs_submitted_at else "",
        ),
        ChecklistKey.snhd_course_completion: (
            bool(i.snhd_course_completion_submitted_at),
            f"Submitted {_fmt_date(i.snhd_course_completion_submitted_at)}" if i.snhd_course_completion_submitted_at else "",
        ),
        ChecklistKey.written_exam: (
            bool(i.written_exam_passed),
            f"Passed {_fmt_date(i.written_exam_date)}" if i.written_exam_date else "",
        ),
        ChecklistKey.psychomotor_exam: (
            bool(i.psychomotor_exam_passed),
            f"Passed {_fmt_date(i.psychomotor_exam_date)}" if i.psychomotor_exam_date else "",
        ),
    }

    return [
        ChecklistItem(
            key=key,
            label=CHECKLIST_LABELS[key],
            auto_checked=gates[key][0],
            manual_override=overrides.get(key, False),
            details=gates[key][1],
        )
        for key in GATE_ORDER
    ]


def parse_checklist(items):
    """Turn a submitted JSON list into ChecklistItems. Raises ValueError on bad input."""
    if not isinstance(items, list):
        raise ValueError("checklist must be a list")
    parsed = [ChecklistItem.from_dict(item) for item in items]
    keys = [item.key for item in parsed]
    if len(set(keys)) != len(keys):
        raise ValueError("checklist contains duplicate items")
    return parsed


def unsatisfied_labels(checklist):
    """
    Labels of gates that are neither auto-checked nor overridden, in gate order.
    A gate missing from ``checklist`` counts as unsatisfied.
    """
    by_key = {item.key: item for item in checklist}
    return [
        CHECKLIST_LABELS[key]
        for key in GATE_ORDER
        if key not in by_key or not by_key[key].is_satisfied
    ]


def finalize_closeout(internship, checklist, actor):
    """
    Stamp ``internship`` as completed by ``actor``.

    The write only applies while ``completed_at`` is still empty, so two admins
    finalizing at once cannot both succeed.
    """
    missing = unsatisfied_labels(checklist)
    if missing:
        raise ChecklistIncomplete(missing)

    if internship.completed_at is not None:
        raise AlreadyCompleted()

    now = datetime.utcnow()
    result = db.session.execute(
        update(StudentInternship)
        .where(StudentInternship.id == internship.id, StudentInternship.completed_at.is_(None))
        .values(completed_at=now, completed_by=actor, updated_at=now)
    )
    if result.rowcount == 0:
        db.session.rollback()
        raise AlreadyCompleted()

    db.session.commit()
    db.session.refresh(internship)
    return internship
