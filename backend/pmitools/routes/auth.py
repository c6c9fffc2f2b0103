from flask import Blueprint, request, jsonify, current_app, make_response
from flask_jwt_extended import (
    create_access_token, create_refresh_token, jwt_required,
    get_jwt_identity, get_jwt
)
from pmitools.models import User, TokenBlocklist
from pmitools.extensions import db, limiter
from utils.audit import log_event
from utils.decorators import get_current_user
from utils.permissions import get_role_label
from datetime import datetime, timedelta
import re

auth_bp = Blueprint('auth', __name__)

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def _set_cookie(response, name, token, max_age, path):
    response.set_cookie(
        name,
        token,
        max_age=max_age,
        httponly=True,
        secure=current_app.config["JWT_COOKIE_SECURE"],
        samesite=current_app.config["JWT_COOKIE_SAMESITE"],
        path=path
    )


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("5 per minute", override_defaults=False)
def login():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"success": False, "error": "Request body must be a JSON object"}), 400
    email = (data.get('email') or '').strip()
    password = data.get('password') or ''
    ip = request.remote_addr

    if not email or not password:
        return jsonify({"success": False, "error": "Email and password are required"}), 400

    if not EMAIL_RE.match(email):
        return jsonify({"success": False, "error": "Invalid email format"}), 400

    user = User.find_by_email(email)

    if user and user.is_active and user.check_password(password):
        identity = user.email.lower()
        access_token = create_access_token(
            identity=identity,
            expires_delta=timedelta(hours=1),
            additional_claims={"role": user.role}
        )
        refresh_token = create_refresh_token(
            identity=identity,
            expires_delta=timedelta(days=7)
        )

        response = make_response(jsonify({"success": True, "message": "Login successful", "role": user.role}))
        _set_cookie(response, "access_token_cookie", access_token, 60 * 60, "/")
        _set_cookie(response, "refresh_token_cookie", refresh_token, 60 * 60 * 24 * 7, "/auth/refresh")

        log_event("LOGIN_SUCCESS", actor=identity, ip=ip, description=f"{identity} logged in")
        return response

    log_event("LOGIN_FAILED", ip=ip, description=f"Failed login attempt for {email}")
    return jsonify({"success": False, "error": "Invalid email or password"}), 401


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def get_me():
    user = get_current_user()
    if not user:
        return jsonify({"success": False, "error": "Unauthorized"}), 401

    return jsonify({
        "success": True,
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "role_label": get_role_label(user.role),
    }), 200


@auth_bp.route('/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh_access_token():
    user = get_current_user()
    if not user or not user.is_active:
        return jsonify({"success": False, "error": "Unauthorized"}), 401

    access_token = create_access_token(
        identity=user.email.lower(),
        expires_delta=timedelta(hours=1),
        additional_claims={"role": user.role}
    )

    response = make_response(jsonify({"success": True, "message": "Token refreshed"}))
    _set_cookie(response, "access_token_cookie", access_token, 60 * 60, "/")

    log_event("REFRESH_TOKEN", actor=user.email, ip=request.remote_addr)
    return response


@auth_bp.route("/logout", methods=["POST"])
@jwt_required()
def logout():
    claims = get_jwt()
    user = get_current_user()
    expires = datetime.utcfromtimestamp(claims["exp"])

    token_block = TokenBlocklist(
        jti=claims["jti"],
        token_type=claims.get("type", "access"),
        user_id=user.id if user else None,
        expires_at=expires,
    )
    db.session.add(token_block)
    db.session.commit()

    response = make_response(jsonify({"success": True, "message": "Successfully logged out"}))
    response.delete_cookie("access_token_cookie", path="/")
    response.delete_cookie("refresh_token_cookie", path="/auth/refresh")

    log_event("LOGOUT", actor=get_jwt_identity(), ip=request.remote_addr)
    return response
