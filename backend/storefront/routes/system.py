# backend/storefront/routes/system.py
"""
System health endpoint.

Reports database reachability and whether the websocket dispatcher is
running, for load balancers and deployment debugging.
"""

import time
from flask import Blueprint, current_app, jsonify

from ..errors import StoreError
from ..extensions import db
from ..models import Order, User
from ..realtime import get_hub
from ..services.concurrency import run_bounded

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity with two cheap counts.

    Returns dict with status and details.
    """
    start_time = time.time()

    def _op(deadline):
        return {
            "orders": db.session.query(Order).count(),
            "users": db.session.query(User).count(),
        }

    try:
        details = run_bounded(_op)
    except StoreError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }

    elapsed_ms = (time.time() - start_time) * 1000
    return {
        "status": "healthy",
        "latency_ms": round(elapsed_ms, 2),
        "details": details,
    }


@system_bp.get("/health")
def health():
    database = check_database_health()
    hub_running = get_hub().running

    status = "ok" if database["status"] == "healthy" else "degraded"
    return jsonify({
        "status": status,
        "database": database,
        "broadcast_hub": {"running": hub_running},
    }), 200 if status == "ok" else 503
