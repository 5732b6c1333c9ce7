import atexit
import logging

from flask import Flask, request

from .config import Config
from .extensions import db, migrate, sock
from .realtime import BroadcastHub, HUB_EXTENSION_KEY


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    logging.getLogger("storefront").setLevel(app.config["LOG_LEVEL"])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    sock.init_app(app)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.catalog import catalog_bp
    from .routes.admin import admin_bp
    from .routes.ws import realtime_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(realtime_bp)

    # One hub per application; started here unless the caller drives it
    hub = BroadcastHub()
    app.extensions[HUB_EXTENSION_KEY] = hub
    if app.config["BROADCAST_HUB_AUTOSTART"]:
        hub.start()
        atexit.register(hub.stop)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            app.config["FRONTEND_URL"],
            "http://localhost:4000",
            "http://127.0.0.1:4000",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
