# Overview: Flask API routes for authentication; parses input and returns JSON responses.

# backend/storefront/routes/auth.py
"""
Authentication API routes

- POST /api/authenticate issues a token for email + password
- POST /api/is-authenticated checks a bearer token
"""

from datetime import timedelta

from flask import Blueprint, jsonify, current_app

from ..errors import AuthError, NotFoundError, StorefrontError
from ..services import auth_service
from ..services import token_service
from ..decorators import bearer_token, json_object


auth_bp = Blueprint("auth", __name__, url_prefix="/api")


@auth_bp.post("/authenticate")
def create_auth_token():
    """
    Authenticate a staff user and issue a token.

    Issuing a token deletes any earlier token of the same user.
    Unknown email and wrong password get the same 401 response.
    """
    data = json_object()
    if data is None:
        return jsonify({"error": True, "message": "request body must be a JSON object"}), 400
    email = data.get("email")
    password = data.get("password")

    if not all([email, password]):
        return jsonify({"error": True, "message": "email and password required"}), 400

    try:
        user = auth_service.authenticate(email, password)

        ttl = timedelta(hours=current_app.config["TOKEN_TTL_HOURS"])
        token = token_service.generate_token(user.id, ttl, token_service.SCOPE_AUTHENTICATION)
        token_service.persist_token(token, user)

    except (NotFoundError, AuthError):
        return jsonify({"error": True, "message": "invalid authentication credentials"}), 401
    except StorefrontError:
        current_app.logger.exception("Failed to issue authentication token")
        return jsonify({"error": True, "message": "Internal server error"}), 500

    return jsonify({
        "error": False,
        "message": f"token for {user.email} created",
        "authentication_token": token.to_dict(),
    }), 200


@auth_bp.post("/is-authenticated")
def check_authentication():
    """
    Validate a bearer token.

    Expects Authorization header: Bearer <token>
    """
    token = bearer_token()
    if not token:
        return jsonify({"error": True, "message": "no authorization header received"}), 401

    try:
        user = token_service.resolve_user(token)
    except NotFoundError:
        return jsonify({"error": True, "message": "invalid or expired token"}), 401
    except StorefrontError:
        current_app.logger.exception("Failed to validate token")
        return jsonify({"error": True, "message": "Internal server error"}), 500

    return jsonify({"error": False, "message": f"authenticated {user.email}"}), 200
