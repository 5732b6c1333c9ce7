# Overview: Flask API routes for the public widget catalog.

from flask import Blueprint, current_app, jsonify

from ..errors import NotFoundError, StorefrontError
from ..services import order_service

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")


@catalog_bp.get("/widget/<int:widget_id>")
def get_widget(widget_id: int):
    """Public: widget details for the storefront's buy pages."""
    try:
        widget = order_service.get_widget(widget_id)
    except NotFoundError:
        return jsonify({"error": "Widget not found"}), 404
    except StorefrontError:
        current_app.logger.exception("Failed to load widget")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(widget.to_dict())
