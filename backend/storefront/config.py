# backend/storefront/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/storefront.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location, e.g. mysql+pymysql://...
        "sqlite:///storefront.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Lifetime of authentication tokens issued by /api/authenticate
    TOKEN_TTL_HOURS = int(os.environ.get("TOKEN_TTL_HOURS", "24"))

    # Every database operation is abandoned once it runs past this bound
    QUERY_TIMEOUT_SECONDS = float(os.environ.get("QUERY_TIMEOUT_SECONDS", "3"))

    # Start the websocket dispatcher thread inside create_app()
    BROADCAST_HUB_AUTOSTART = os.environ.get("BROADCAST_HUB_AUTOSTART", "true").lower() == "true"

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Browser origin allowed by the CORS headers
    FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:4000")
