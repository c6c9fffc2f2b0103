from dataclasses import dataclass, asdict
import enum

from sqlalchemy import func
from pmitools.extensions import db
from pmitools.models import Agency, ClinicalSite, ClinicalSiteVisit, StudentInternship, InternshipStatusEnum

DEFAULT_MAX_STUDENTS_PER_DAY = 2

# Placements in these states no longer occupy a seat at the agency
INACTIVE_PLACEMENT_STATUSES = (InternshipStatusEnum.completed, InternshipStatusEnum.withdrawn)


class SiteKind(enum.Enum):
    agency = "agency"
    clinical_site = "clinical_site"


SITE_MODELS = {
    SiteKind.agency: Agency,
    SiteKind.clinical_site: ClinicalSite,
}


@dataclass(frozen=True)
class CapacityCheck:
    current: int
    additional_requested: int
    projected: int
    max: int
    allowed: bool
    would_exceed: bool
    utilization_percentage: int
    message: str

    def to_dict(self):
        return asdict(self)


def utilization_percentage(count, max_per_day):
    if max_per_day <= 0:
        return 0
    return round(100 * count / max_per_day)


def check_capacity(max_per_day, current_committed, additional_requested=1, default_max=DEFAULT_MAX_STUDENTS_PER_DAY):
    """
    Decide whether ``additional_requested`` more students fit at a site for a day.

    ``max_per_day`` of ``None`` means the site was never configured and falls back
    to ``default_max``.
    """
    if max_per_day is None:
        max_per_day = default_max
    if max_per_day < 0 or current_committed < 0:
        raise ValueError("capacity counts must be non-negative")
    if additional_requested < 1:
        raise ValueError("additional_requested must be at least 1")

    projected = current_committed + additional_requested
    would_exceed = projected > max_per_day
    pct = utilization_percentage(projected, max_per_day)

    if would_exceed:
        over = projected - max_per_day
        message = f"Over capacity: would be {projected} students (max {max_per_day}) — {over} over limit"
    else:
        message = f"OK: {projected} of {max_per_day} student(s) ({pct}% capacity)"

    return CapacityCheck(
        current=current_committed,
        additional_requested=additional_requested,
        projected=projected,
        max=max_per_day,
        allowed=not would_exceed,
        would_exceed=would_exceed,
        utilization_percentage=pct,
        message=message,
    )


def parse_site_kind(value):
    """Raises ValueError for anything other than 'agency' or 'clinical_site'."""
    return SiteKind(value)


def resolve_site(kind, site_id):
    return db.session.get(SITE_MODELS[kind], site_id)


def count_committed(kind, site_id, on_date=None):
    """
    Seats already taken at a site.

    Agencies count open internship placements (optionally on ``placement_date``);
    clinical sites count visits (optionally on ``visit_date``).
    """
    if kind is SiteKind.agency:
        query = db.session.query(func.count(StudentInternship.id)).filter(
            StudentInternship.agency_id == site_id,
            StudentInternship.status.notin_(INACTIVE_PLACEMENT_STATUSES),
        )
        if on_date:
            query = query.filter(StudentInternship.placement_date == on_date)
    else:
        query = db.session.query(func.count(ClinicalSiteVisit.id)).filter(ClinicalSiteVisit.site_id == site_id)
        if on_date:
            query = query.filter(ClinicalSiteVisit.visit_date == on_date)
    return query.scalar() or 0


def _counts_by_site(kind, on_date=None):
    if kind is SiteKind.agency:
        column = StudentInternship.agency_id
        query = db.session.query(column, func.count(StudentInternship.id)).filter(
            column.isnot(None),
            StudentInternship.status.notin_(INACTIVE_PLACEMENT_STATUSES),
        )
        if on_date:
            query = query.filter(StudentInternship.placement_date == on_date)
    else:
        column = ClinicalSiteVisit.site_id
        query = db.session.query(column, func.count(ClinicalSiteVisit.id))
        if on_date:
            query = query.filter(ClinicalSiteVisit.visit_date == on_date)
    return dict(query.group_by(column).all())


def site_utilization(kind, on_date=None, default_max=DEFAULT_MAX_STUDENTS_PER_DAY):
    """Capacity rows for every active site of one kind, ordered by name."""
    model = SITE_MODELS[kind]
    counts = _counts_by_site(kind, on_date)

    rows = []
    for site in model.query.filter_by(is_active=True).order_by(model.name).all():
        current = counts.get(site.id, 0)
        max_per_day = site.max_students_per_day if site.max_students_per_day is not None else default_max
        row = {
            "id": site.id,
            "source": kind.value,
            "name": site.name,
            "abbreviation": site.abbreviation,
            "type": site.type if kind is SiteKind.agency else "hospital",
            "max_students_per_day": max_per_day,
            "max_students_per_rotation": site.max_students_per_rotation,
            "capacity_notes": site.capacity_notes,
            "current_student_count": current,
            "utilization_percentage": utilization_percentage(current, max_per_day),
            "is_over_capacity": current > max_per_day,
        }
        if kind is SiteKind.clinical_site:
            row["system"] = site.system
        rows.append(row)
    return rows
