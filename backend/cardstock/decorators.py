# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import g, jsonify, session

from .extensions import db
from .models import User


def _is_authenticated() -> bool:
    return getattr(g, "current_user", None) is not None


def require_auth(f):
    """
    Require an authenticated actor.

    Sets g.current_user from the signed session cookie (session["user_id"]).

    Returns 401 if no user id is in the session or it no longer resolves,
    403 if the account has been deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_id = session.get("user_id")
        if not user_id:
            return jsonify({"success": False, "message": "Authentication required"}), 401

        user = db.session.get(User, user_id)
        if user is None:
            session.pop("user_id", None)
            return jsonify({"success": False, "message": "Invalid session"}), 401

        if not user.is_active:
            return jsonify({"success": False, "message": "Account is deactivated"}), 403

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """Coarse role gate. Store-level checks happen in permission_service."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return jsonify({"success": False, "message": "Authentication required"}), 401

            if g.current_user.role not in roles:
                return jsonify({
                    "success": False,
                    "message": "Insufficient permissions",
                    "required_roles": list(roles),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
