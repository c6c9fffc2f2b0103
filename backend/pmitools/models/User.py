from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime
from sqlalchemy import func
from pmitools.extensions import db
from .base import TimestampMixin


class User(db.Model, TimestampMixin):
    __tablename__ = 'lab_users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    name = db.Column(db.String(120), nullable=True)
    password_hash = db.Column(db.String(512), nullable=True)
    role = db.Column(db.String(40), nullable=False, default="guest")
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    audit_logs = db.relationship('AuditLog', backref='user', lazy=True)

    @classmethod
    def find_by_email(cls, email):
        if not email:
            return None
        return cls.query.filter(func.lower(cls.email) == email.strip().lower()).first()

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return bool(self.password_hash) and check_password_hash(self.password_hash, password)


class TokenBlocklist(db.Model):
    __tablename__ = 'token_blocklist'

    id = db.Column(db.Integer, primary_key=True)
    jti = db.Column(db.String(36), nullable=False, index=True)
    token_type = db.Column(db.String(10), nullable=False, default="access")
    user_id = db.Column(db.Integer, db.ForeignKey('lab_users.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)

    user = db.relationship("User", backref="revoked_tokens")
