# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .errors import NotFoundError, StoreError
from .services import token_service


def bearer_token() -> str | None:
    """Token from the Authorization header, or None if absent/malformed."""
    auth_header = request.headers.get("Authorization")

    if not auth_header or not auth_header.startswith("Bearer "):
        return None

    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def json_object() -> dict | None:
    """
    Request body as a dict.

    A missing or unparseable body reads as {}; valid JSON that is not an
    object returns None so the route can answer 400.
    """
    data = request.get_json(silent=True)
    if data is None:
        return {}
    return data if isinstance(data, dict) else None


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.current_user to the token's owner.

    Returns 401 if:
    - No Authorization header
    - Unknown or expired token
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        try:
            user = token_service.resolve_user(token)
        except NotFoundError:
            return jsonify({"error": "Invalid or expired token"}), 401
        except StoreError:
            current_app.logger.exception("Failed to resolve authentication token")
            return jsonify({"error": "Internal server error"}), 500

        g.current_user = user

        return f(*args, **kwargs)

    return decorated_function
