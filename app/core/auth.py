from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from werkzeug.security import check_password_hash

from app.core.models import User

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _credentials() -> tuple[str, str]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = request.form
    return (data.get("email") or "").strip().lower(), data.get("password") or ""


@auth_bp.post("/login")
def login_post():
    email, password = _credentials()
    user = User.query.filter_by(email=email).first()
    if not user or not user.is_active or not check_password_hash(user.password_hash, password):
        logger.warning("Failed login for %s", email or "<empty>")
        return jsonify({"success": False, "message": "Credenciales invalidas"}), 401
    login_user(user)
    return jsonify(
        {
            "success": True,
            "message": "Sesion iniciada",
            "data": {"id": user.id, "email": user.email, "nombre": user.full_name, "rol": user.role.value},
        }
    )


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(
        {
            "success": True,
            "message": "",
            "data": {
                "id": current_user.id,
                "email": current_user.email,
                "nombre": current_user.full_name,
                "rol": current_user.role.value,
            },
        }
    )


@auth_bp.post("/logout")
@login_required
def logout():
    logout_user()
    return jsonify({"success": True, "message": "Sesion cerrada", "data": None})
