from datetime import date

import pytest

from pmitools.capacity import check_capacity, count_committed, parse_site_kind, SiteKind
from pmitools.extensions import db
from pmitools.models import StudentInternship, ClinicalSiteVisit, InternshipStatusEnum


# ---------------------------------------------------------------------------
# Capacity accountant
# ---------------------------------------------------------------------------
def test_over_capacity_by_one():
    result = check_capacity(max_per_day=2, current_committed=2, additional_requested=1)

    assert result.projected == 3
    assert result.allowed is False
    assert result.would_exceed is True
    assert result.utilization_percentage == 150
    assert "1 over limit" in result.message
    assert result.message == "Over capacity: would be 3 students (max 2) — 1 over limit"


def test_within_capacity_message():
    result = check_capacity(max_per_day=4, current_committed=1, additional_requested=2)

    assert result.allowed is True
    assert result.would_exceed is False
    assert result.message == "OK: 3 of 4 student(s) (75% capacity)"


def test_exactly_at_capacity_is_allowed():
    result = check_capacity(max_per_day=2, current_committed=1)

    assert result.allowed is True
    assert result.utilization_percentage == 100


def test_unset_max_defaults_to_two():
    result = check_capacity(max_per_day=None, current_committed=1)

    assert result.max == 2
    assert result.allowed is True


def test_zero_max_reports_zero_utilization():
    result = check_capacity(max_per_day=0, current_committed=0)

    assert result.utilization_percentage == 0
    assert result.would_exceed is True


@pytest.mark.parametrize("kwargs", [
    dict(max_per_day=2, current_committed=0, additional_requested=0),
    dict(max_per_day=-1, current_committed=0),
    dict(max_per_day=2, current_committed=-3),
])
def test_invalid_inputs_raise(kwargs):
    with pytest.raises(ValueError):
        check_capacity(**kwargs)


def test_allowed_and_would_exceed_are_exclusive():
    for max_per_day in range(0, 5):
        for current in range(0, 6):
            for extra in range(1, 4):
                result = check_capacity(max_per_day, current, extra)
                assert result.allowed != result.would_exceed
                if max_per_day == 0:
                    assert result.utilization_percentage == 0


def test_parse_site_kind():
    assert parse_site_kind("agency") is SiteKind.agency
    assert parse_site_kind("clinical_site") is SiteKind.clinical_site
    with pytest.raises(ValueError):
        parse_site_kind("hospital")


# ---------------------------------------------------------------------------
# Committed placement counts
# ---------------------------------------------------------------------------
def _placement(agency, student, status, placement_date=None):
    db.session.add(StudentInternship(
        student_id=student.id, agency_id=agency.id, status=status, placement_date=placement_date,
    ))


def test_agency_count_excludes_completed_and_withdrawn(agency, student):
    _placement(agency, student, InternshipStatusEnum.in_progress, date(2026, 3, 2))
    _placement(agency, student, InternshipStatusEnum.on_track, date(2026, 3, 3))
    _placement(agency, student, InternshipStatusEnum.completed, date(2026, 3, 2))
    _placement(agency, student, InternshipStatusEnum.withdrawn, date(2026, 3, 2))
    db.session.commit()

    assert count_committed(SiteKind.agency, agency.id) == 2
    assert count_committed(SiteKind.agency, agency.id, date(2026, 3, 2)) == 1


def test_clinical_site_counts_visits(clinical_site):
    db.session.add_all([
        ClinicalSiteVisit(site_id=clinical_site.id, visit_date=date(2026, 3, 2)),
        ClinicalSiteVisit(site_id=clinical_site.id, visit_date=date(2026, 3, 2)),
        ClinicalSiteVisit(site_id=clinical_site.id, visit_date=date(2026, 3, 9)),
    ])
    db.session.commit()

    assert count_committed(SiteKind.clinical_site, clinical_site.id) == 3
    assert count_committed(SiteKind.clinical_site, clinical_site.id, date(2026, 3, 2)) == 2


# ---------------------------------------------------------------------------
# HTTP: /clinical/capacity
# ---------------------------------------------------------------------------
def test_check_endpoint_over_capacity(client, headers, agency, student):
    _placement(agency, student, InternshipStatusEnum.in_progress)
    _placement(agency, student, InternshipStatusEnum.in_progress)
    db.session.commit()

    res = client.get(f"/clinical/capacity/check?site_id={agency.id}&source=agency", headers=headers("lead_instructor"))

    assert res.status_code == 200
    body = res.get_json()
    assert body["success"] is True
    assert body["site_name"] == "Metro Fire Rescue"
    assert body["current"] == 2
    assert body["projected"] == 3
    assert body["allowed"] is False
    assert body["would_exceed"] is True
    assert body["utilization_percentage"] == 150


def test_check_endpoint_clinical_site_uses_default_max(client, headers, clinical_site):
    res = client.get(
        f"/clinical/capacity/check?site_id={clinical_site.id}&source=clinical_site&student_count=2&date=2026-03-02",
        headers=headers("admin"),
    )

    body = res.get_json()
    assert res.status_code == 200
    assert body["max"] == 2
    assert body["allowed"] is True
    assert body["message"] == "OK: 2 of 2 student(s) (100% capacity)"


@pytest.mark.parametrize("query, status", [
    ("source=agency", 400),
    ("site_id=1&source=hospital", 400),
    ("site_id=1&source=agency&date=03-02-2026", 400),
    ("site_id=1&source=agency&student_count=0", 400),
    ("site_id=1&source=agency&student_count=abc", 400),
    ("site_id=999&source=agency", 404),
])
def test_check_endpoint_validation(client, headers, agency, query, status):
    res = client.get(f"/clinical/capacity/check?{query}", headers=headers("lead_instructor"))

    assert res.status_code == status
    assert res.get_json()["success"] is False


def test_check_endpoint_requires_lead_instructor(client, headers, agency):
    url = f"/clinical/capacity/check?site_id={agency.id}&source=agency"

    assert client.get(url).status_code == 401
    assert client.get(url, headers=headers("instructor")).status_code == 403
    assert client.get(url, headers=headers("nobody@example.edu")).status_code == 401


def test_list_capacity(client, headers, agency, clinical_site, student):
    _placement(agency, student, InternshipStatusEnum.in_progress)
    db.session.commit()

    res = client.get("/clinical/capacity", headers=headers("lead_instructor"))

    body = res.get_json()
    assert res.status_code == 200
    assert body["agencies"][0]["current_student_count"] == 1
    assert body["agencies"][0]["utilization_percentage"] == 50
    assert body["agencies"][0]["is_over_capacity"] is False
    assert body["clinical_sites"][0]["max_students_per_day"] == 2
    assert body["clinical_sites"][0]["system"] == "County"


def test_update_capacity_as_admin(client, headers, agency):
    res = client.patch("/clinical/capacity", headers=headers("admin"), json={
        "site_id": agency.id, "source": "agency", "max_students_per_day": 4, "capacity_notes": "Two rigs",
    })

    assert res.status_code == 200
    site = res.get_json()["site"]
    assert site["max_students_per_day"] == 4
    assert site["capacity_notes"] == "Two rigs"


@pytest.mark.parametrize("payload, status", [
    ({"source": "agency", "max_students_per_day": 3}, 400),
    ({"site_id": 1, "source": "other"}, 400),
    ({"site_id": 1, "source": "agency", "max_students_per_day": 0}, 400),
    ({"site_id": 1, "source": "agency", "max_students_per_day": "3"}, 400),
    ({"site_id": 1, "source": "agency", "max_students_per_rotation": "6"}, 400),
    ({"site_id": 1, "source": "agency", "max_students_per_rotation": 0}, 400),
    ({"site_id": 1, "source": "agency", "capacity_notes": ["Two rigs"]}, 400),
    ({"site_id": 999, "source": "agency", "max_students_per_day": 3}, 404),
])
def test_update_capacity_validation(client, headers, agency, payload, status):
    res = client.patch("/clinical/capacity", headers=headers("admin"), json=payload)

    assert res.status_code == status


def test_update_capacity_requires_admin(client, headers, agency):
    res = client.patch("/clinical/capacity", headers=headers("lead_instructor"), json={
        "site_id": agency.id, "source": "agency", "max_students_per_day": 4,
    })

    assert res.status_code == 403


def test_update_capacity_clears_rotation_limit(client, headers, agency):
    agency.max_students_per_rotation = 6
    db.session.commit()

    res = client.patch("/clinical/capacity", headers=headers("admin"), json={
        "site_id": agency.id, "source": "agency", "max_students_per_rotation": None,
    })

    assert res.status_code == 200
    assert res.get_json()["site"]["max_students_per_rotation"] is None


@pytest.mark.parametrize("body", [[{"site_id": 1}], "agency", 3])
def test_update_capacity_rejects_non_object_body(client, headers, agency, body):
    res = client.patch("/clinical/capacity", headers=headers("admin"), json=body)

    assert res.status_code == 400
    assert res.get_json() == {"success": False, "error": "Request body must be a JSON object"}
