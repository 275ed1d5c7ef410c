from functools import wraps

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from . import login_manager
from .models import User

auth_bp = Blueprint("auth", __name__, url_prefix="/api")


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"ok": False, "error": "login_required"}), 401


# write operations on flights and tickets are reserved to admins
def admin_required(view):
    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        if not current_user.is_admin:
            return jsonify({"ok": False, "error": "forbidden"}), 403
        return view(*args, **kwargs)

    return wrapped


# login: validate credentials and open a session cookie
@auth_bp.post("/login")
def login():
    payload = request.get_json(silent=True) or {}
    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""

    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        return jsonify({"ok": False, "error": "Invalid email or password."}), 401

    login_user(user)
    return jsonify({"ok": True, "user": user.to_dict()})


@auth_bp.post("/logout")
@login_required
def logout():
    logout_user()
    return jsonify({"ok": True})


@auth_bp.get("/me")
@login_required
def me():
    return jsonify({"ok": True, "user": current_user.to_dict()})
