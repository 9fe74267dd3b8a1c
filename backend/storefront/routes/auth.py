# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/storefront/routes/auth.py
"""
Authentication API routes

- Shopper signup and login, admin login
- Bearer tokens from session_service; logout revokes the presented token
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..services import auth_service
from ..services import session_service
from ..services import user_service
from ..services.auth_service import PasswordValidationError
from ..validation import ValidationError, NotFoundError


auth_bp = Blueprint("auth", __name__)


@auth_bp.post("/signup")
def signup_route():
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.signup(data)
    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"success": True, "userId": user.id}), 201


@auth_bp.post("/login")
def login_route():
    """
    Shopper login.

    Transient connection errors are retried inside auth_service; if they
    persist the caller gets a 500 and may try again.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        return jsonify({"success": False, "error": "Email and password are required"}), 400

    try:
        user = auth_service.authenticate_user(email, password)
    except Exception:
        current_app.logger.exception("Login failed for %s", email)
        return jsonify({
            "success": False,
            "error": "Login failed due to server error. Please try again later.",
        }), 500

    if not user:
        return jsonify({"success": False, "error": "Invalid email or password"}), 401

    _, token = session_service.create_session(session_service.PRINCIPAL_USER, user.id)

    return jsonify({
        "success": True,
        "userId": user.id,
        "username": user.name,
        "token": token,
    }), 200


@auth_bp.post("/admin/login")
def admin_login_route():
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        return jsonify({"success": False, "error": "Email and password are required"}), 400

    admin = auth_service.authenticate_admin(email, password)
    if not admin:
        return jsonify({"success": False, "error": "Invalid email or password"}), 401

    _, token = session_service.create_session(session_service.PRINCIPAL_ADMIN, admin.id)

    return jsonify({
        "success": True,
        "adminId": admin.id,
        "name": admin.name,
        "token": token,
    }), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.end_session(g.session_context.session)
    return jsonify({"success": True}), 200


@auth_bp.get("/user/<int:user_id>")
def get_user_route(user_id: int):
    try:
        return jsonify(user_service.get_profile(user_id)), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
