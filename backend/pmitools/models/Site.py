from pmitools.extensions import db
from .base import TimestampMixin, CapacityMixin


class Agency(db.Model, TimestampMixin, CapacityMixin):
    __tablename__ = 'agencies'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(160), nullable=False)
    abbreviation = db.Column(db.String(20), nullable=True)
    type = db.Column(db.String(20), nullable=False, default="ems")  # 'ems' | 'hospital'

    internships = db.relationship('StudentInternship', backref='agency', lazy=True)


class ClinicalSite(db.Model, TimestampMixin, CapacityMixin):
    __tablename__ = 'clinical_sites'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(160), nullable=False)
    abbreviation = db.Column(db.String(20), nullable=True)
    system = db.Column(db.String(120), nullable=True)

    visits = db.relationship('ClinicalSiteVisit', backref='site', lazy=True)


class ClinicalSiteVisit(db.Model):
    __tablename__ = 'clinical_site_visits'

    id = db.Column(db.Integer, primary_key=True)
    site_id = db.Column(db.Integer, db.ForeignKey('clinical_sites.id'), nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=True)
    visit_date = db.Column(db.Date, nullable=False, index=True)
    visitor_name = db.Column(db.String(120), nullable=True)
