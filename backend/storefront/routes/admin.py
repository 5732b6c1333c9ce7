# Overview: Flask API routes for back-office operations; parses input and returns JSON responses.

# backend/storefront/routes/admin.py
"""
Admin routes for sales, subscriptions and staff users.

Provides endpoints for:
- Orders and subscriptions (paged lists, single order, status update)
- Staff user management (list, get, create/update, delete)

All endpoints require a valid bearer token.
"""

from flask import Blueprint, jsonify, g, current_app

from ..decorators import json_object, require_auth
from ..errors import NotFoundError, QueryTimeoutError, StorefrontError
from ..realtime import InboundEvent, get_hub
from ..realtime.hub import ACTION_DELETE_USER
from ..services import auth_service, order_service
from ..services.auth_service import PasswordValidationError

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")

DEFAULT_PAGE_SIZE = 10


def _int_field(data: dict, name: str, default: int | None = None) -> int:
    value = data.get(name, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    return value


def _store_failure(message: str, exc: StorefrontError):
    if isinstance(exc, QueryTimeoutError):
        current_app.logger.warning("%s: %s", message, exc)
        return jsonify({"error": "Database timeout"}), 503
    current_app.logger.exception(message)
    return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# ORDERS & SUBSCRIPTIONS
# =============================================================================

def _paged_response(recurring: bool):
    data = json_object()
    if data is None:
        return jsonify({"error": "Request body must be a JSON object"}), 400
    try:
        page_size = _int_field(data, "page_size", DEFAULT_PAGE_SIZE)
        page = _int_field(data, "page", 1)
        result = order_service.list_paged(page_size, page, recurring=recurring)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except StorefrontError as e:
        return _store_failure("Failed to list orders", e)

    return jsonify(result.to_dict())


@admin_bp.post("/all-sales")
@require_auth
def all_sales():
    """
    One page of one-off orders, most recent first.

    Request body:
    - page_size: int (default 10)
    - page: int (default 1)

    last_page is total_records // page_size; a partial final page
    is the client's to detect.
    """
    return _paged_response(recurring=False)


@admin_bp.post("/all-subscriptions")
@require_auth
def all_subscriptions():
    """One page of subscriptions; same body and response as /all-sales."""
    return _paged_response(recurring=True)


@admin_bp.get("/get-sale/<int:order_id>")
@require_auth
def get_sale(order_id: int):
    """Get one order (sale or subscription) with widget, transaction and customer."""
    try:
        order = order_service.get_order_by_id(order_id)
    except NotFoundError:
        return jsonify({"error": "Order not found"}), 404
    except StorefrontError as e:
        return _store_failure("Failed to load order", e)

    return jsonify(order)


@admin_bp.post("/orders/<int:order_id>/status")
@require_auth
def update_order_status(order_id: int):
    """
    Set an order's status id.

    Request body:
    - status_id: int (1 cleared, 2 refunded, 3 cancelled)
    """
    data = json_object()
    if data is None:
        return jsonify({"error": "Request body must be a JSON object"}), 400
    try:
        status_id = _int_field(data, "status_id")
        order_service.update_order_status(order_id, status_id)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except StorefrontError as e:
        return _store_failure("Failed to update order status", e)

    return jsonify({"error": False, "message": "Order status updated"})


# =============================================================================
# USER MANAGEMENT
# =============================================================================

@admin_bp.get("/all-users")
@require_auth
def list_users():
    try:
        users = auth_service.list_users()
    except StorefrontError as e:
        return _store_failure("Failed to list users", e)

    return jsonify({"users": [u.to_dict() for u in users], "count": len(users)})


@admin_bp.get("/all-users/<int:user_id>")
@require_auth
def get_user(user_id: int):
    try:
        user = auth_service.get_user(user_id)
    except NotFoundError:
        return jsonify({"error": "User not found"}), 404
    except StorefrontError as e:
        return _store_failure("Failed to load user", e)

    return jsonify({"user": user.to_dict()})


@admin_bp.post("/all-users/edit/<int:user_id>")
@require_auth
def edit_user(user_id: int):
    """
    Create (user_id 0) or update a user.

    Request body:
    - first_name, last_name, email: str (required)
    - password: str (required on create; optional on update)
    """
    data = json_object()
    if data is None:
        return jsonify({"error": "Request body must be a JSON object"}), 400
    first_name = data.get("first_name")
    last_name = data.get("last_name")
    email = data.get("email")
    password = data.get("password") or None

    if not all([first_name, last_name, email]):
        return jsonify({"error": "first_name, last_name and email required"}), 400

    try:
        if user_id == 0:
            if not password:
                return jsonify({"error": "password required"}), 400
            user = auth_service.create_user(first_name, last_name, email, password)
            status_code = 201
        else:
            user = auth_service.update_user(user_id, first_name, last_name, email, password)
            status_code = 200
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError:
        return jsonify({"error": "User not found"}), 404
    except ValueError as e:
        return jsonify({"error": str(e)}), 409
    except StorefrontError as e:
        return _store_failure("Failed to save user", e)

    return jsonify({"user": user.to_dict()}), status_code


@admin_bp.post("/all-users/delete/<int:user_id>")
@require_auth
def delete_user(user_id: int):
    """
    Delete a user and their tokens, then log them out of every open browser
    through the websocket hub.
    """
    if user_id == g.current_user.id:
        return jsonify({"error": "You cannot delete your own account"}), 400

    try:
        auth_service.delete_user(user_id)
    except StorefrontError as e:
        return _store_failure("Failed to delete user", e)

    get_hub().submit(InboundEvent(action=ACTION_DELETE_USER, user_id=user_id))

    return jsonify({"error": False, "message": "User deleted"})
