"""Decorators for the auth blueprint."""

from functools import wraps

from flask import g, jsonify, session


def login_required(f=None):
    """Refuse the request with 401 if no user is signed in.

    Usage:
    @login_required
    def protected_view():
        ...
    """

    def decorator(func):
        @wraps(func)
        def decorated_function(*args, **kwargs):
            if "user_id" not in session or g.get("user") is None:
                return jsonify({"error": "Authentication required."}), 401
            return func(*args, **kwargs)

        return decorated_function

    if f:
        return decorator(f)
    return decorator
