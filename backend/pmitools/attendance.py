from dataclasses import dataclass, asdict
from datetime import date
import enum
import logging

from pmitools.models import Cohort, Student, LabDay, LabDayAttendance, StudentStatusEnum, AttendanceStatusEnum

logger = logging.getLogger(__name__)

ATTENDED_STATUSES = {AttendanceStatusEnum.present.value, AttendanceStatusEnum.late.value}
ABSENT = AttendanceStatusEnum.absent.value

CRITICAL_ABSENCES = 3
CRITICAL_STREAK = 3
WARNING_ABSENCES = 2


class RiskLevel(enum.Enum):
    none = "none"
    warning = "warning"
    critical = "critical"


RISK_RANK = {RiskLevel.none: 0, RiskLevel.warning: 1, RiskLevel.critical: 2}


@dataclass(frozen=True)
class AttendanceAnalysis:
    total_sessions_marked: int
    total_absences: int
    consecutive_misses: int
    attendance_pct: int
    last_attended_date: date | None


@dataclass
class StudentRiskSummary:
    student_id: int
    first_name: str
    last_name: str
    cohort_id: int
    cohort_label: str
    total_sessions_marked: int
    total_absences: int
    consecutive_misses: int
    attendance_pct: int
    last_attended_date: date | None
    risk_level: RiskLevel

    def to_dict(self):
        data = asdict(self)
        data["total_labs"] = self.total_sessions_marked
        data["risk_level"] = self.risk_level.value
        data["last_attended_date"] = self.last_attended_date.isoformat() if self.last_attended_date else None
        return data


def _status_value(status):
    return status.value if isinstance(status, enum.Enum) else status


def count_consecutive_misses(statuses):
    """Length of the trailing run of absences in an oldest-to-newest status list."""
    streak = 0
    for status in reversed(statuses):
        if _status_value(status) != ABSENT:
            break
        streak += 1
    return streak


def analyze_attendance(records):
    """
    Summarise one student's marked sessions.

    ``records`` is an iterable of ``(session_date, status)`` pairs. Only sessions
    where attendance was actually taken belong here; unmarked sessions are left
    out rather than counted as absences. Returns ``None`` when nothing was marked,
    so the student is skipped instead of being scored as 100%.
    """
    ordered = sorted(records, key=lambda r: r[0])
    if not ordered:
        return None

    statuses = [_status_value(status) for _, status in ordered]
    total = len(statuses)
    attended_dates = [d for (d, _), status in zip(ordered, statuses) if status in ATTENDED_STATUSES]

    return AttendanceAnalysis(
        total_sessions_marked=total,
        total_absences=statuses.count(ABSENT),
        consecutive_misses=count_consecutive_misses(statuses),
        attendance_pct=round(100 * len(attended_dates) / total),
        last_attended_date=attended_dates[-1] if attended_dates else None,
    )


def classify_risk(total_absences, consecutive_misses):
    if total_absences >= CRITICAL_ABSENCES or consecutive_misses >= CRITICAL_STREAK:
        return RiskLevel.critical
    if total_absences >= WARNING_ABSENCES:
        return RiskLevel.warning
    return RiskLevel.none


def sort_at_risk(summaries):
    """Critical before warning, then most absences first. Ties keep their input order."""
    return sorted(summaries, key=lambda s: (-RISK_RANK[s.risk_level], -s.total_absences))


def summarize_at_risk(summaries):
    return {
        "at_risk_count": len(summaries),
        "critical_count": sum(1 for s in summaries if s.risk_level is RiskLevel.critical),
        "warning_count": sum(1 for s in summaries if s.risk_level is RiskLevel.warning),
        "at_risk_students": [s.to_dict() for s in summaries],
    }


def build_risk_summary(student, cohort, records):
    analysis = analyze_attendance(records)
    if analysis is None:
        return None

    risk = classify_risk(analysis.total_absences, analysis.consecutive_misses)
    return StudentRiskSummary(
        student_id=student.id,
        first_name=student.first_name,
        last_name=student.last_name,
        cohort_id=cohort.id,
        cohort_label=cohort.label,
        total_sessions_marked=analysis.total_sessions_marked,
        total_absences=analysis.total_absences,
        consecutive_misses=analysis.consecutive_misses,
        attendance_pct=analysis.attendance_pct,
        last_attended_date=analysis.last_attended_date,
        risk_level=risk,
    )


def _cohort_records(cohort, as_of):
    """Return ``{student_id: [(lab_day_date, status), ...]}`` for past lab days in the cohort."""
    rows = (
        LabDayAttendance.query
        .join(LabDay, LabDayAttendance.lab_day_id == LabDay.id)
        .with_entities(LabDayAttendance.student_id, LabDay.date, LabDayAttendance.status)
        .filter(LabDay.cohort_id == cohort.id, LabDay.date <= as_of)
        .all()
    )

    by_student = {}
    for student_id, lab_date, status in rows:
        by_student.setdefault(student_id, []).append((lab_date, status))
    return by_student


def find_at_risk_students(cohort_id=None, as_of=None):
    """
    Sweep cohorts (newest first) and their active students for attendance risk.

    A failure while analysing one student is logged and skipped so the rest of
    the sweep still completes.
    """
    as_of = as_of or date.today()

    cohort_query = Cohort.query.order_by(Cohort.cohort_number.desc())
    if cohort_id is not None:
        cohort_query = cohort_query.filter(Cohort.id == cohort_id)

    at_risk = []
    for cohort in cohort_query.all():
        students = Student.query.filter_by(cohort_id=cohort.id, status=StudentStatusEnum.active).all()
        if not students:
            continue

        records_by_student = _cohort_records(cohort, as_of)

        for student in students:
            try:
                summary = build_risk_summary(student, cohort, records_by_student.get(student.id, []))
            except Exception:
                logger.exception("[ATTENDANCE] Failed to analyse student %s in cohort %s", student.id, cohort.id)
                continue

            if summary and summary.risk_level is not RiskLevel.none:
                at_risk.append(summary)

    return sort_at_risk(at_risk)
