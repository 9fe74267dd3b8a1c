# Overview: Request authentication decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service


def _resolve_session():
    """Return (context, error_response) for the request's bearer token."""
    auth_header = request.headers.get("Authorization")

    if not auth_header or not auth_header.startswith("Bearer "):
        return None, (jsonify({"error": "Authentication required"}), 401)

    token = auth_header.split(" ", 1)[1]
    context = session_service.validate_session(token)

    if not context:
        return None, (jsonify({"error": "Invalid or expired token"}), 401)

    return context, None


def require_auth(f):
    """
    Require any valid bearer token, shopper or admin.

    Sets g.session_context, plus g.current_user or g.current_admin.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        context, error = _resolve_session()
        if error:
            return error

        g.session_context = context
        if context.is_admin:
            g.current_admin = context.principal
        else:
            g.current_user = context.principal

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """
    Require an admin bearer token.

    401 without a valid token, 403 for a shopper token.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        context, error = _resolve_session()
        if error:
            return error

        if not context.is_admin:
            return jsonify({"error": "Admin access required"}), 403

        g.session_context = context
        g.current_admin = context.principal

        return f(*args, **kwargs)

    return decorated_function
