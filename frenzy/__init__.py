import logging
import os
import re

from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

from config import config

logger = logging.getLogger(__name__)

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
cors = CORS()


def get_real_ip():
    """
    Get the real client IP address, accounting for reverse proxies.
    Checks X-Forwarded-For, X-Real-IP, and falls back to remote_addr.
    """
    # X-Forwarded-For: client, proxy1, proxy2, ...
    if request.headers.get("X-Forwarded-For"):
        return request.headers.get("X-Forwarded-For").split(",")[0].strip()
    if request.headers.get("X-Real-IP"):
        return request.headers.get("X-Real-IP")
    return get_remote_address()


limiter = Limiter(
    key_func=get_real_ip,
    default_limits=["10000 per day", "1000 per hour"],
)


def cors_origins(raw):
    """
    Turn the CORS_ORIGIN setting into the list Flask-CORS expects.

    Plain origins are passed through, "*" allows everything and
    "*.example.com" becomes a regex matching any subdomain over http(s).
    """
    origins = []
    for item in (raw or "").split(","):
        item = item.strip().rstrip("/")
        if not item:
            continue
        if item == "*":
            return "*"
        if item.startswith("*."):
            suffix = re.escape(item[2:])
            origins.append(rf"^https?://([a-z0-9-]+\.)+{suffix}$")
        else:
            origins.append(item)
    return origins


def create_app(config_name=None):
    app = Flask(__name__)

    if config_name is None:
        config_name = os.environ.get("FLASK_CONFIG", "default")

    app.config.from_object(config[config_name]())
    app.json.sort_keys = False

    # Setup logging first so extension start-up is captured
    from frenzy.utils.logging_config import setup_logging

    setup_logging(app)

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors.init_app(
        app,
        origins=cors_origins(app.config.get("CORS_ORIGIN")),
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    )

    from frenzy.utils.auth import load_user_from_request

    login_manager.request_loader(load_user_from_request)

    # Import and register blueprints
    from frenzy.routes.auth import bp as auth_bp

    app.register_blueprint(auth_bp, url_prefix="/auth")

    from frenzy.routes.games import bp as games_bp

    app.register_blueprint(games_bp)

    from frenzy.routes.picks import bp as picks_bp

    app.register_blueprint(picks_bp, url_prefix="/picks")

    from frenzy.routes.leaderboard import bp as leaderboard_bp

    app.register_blueprint(leaderboard_bp, url_prefix="/leaderboard")

    from frenzy.routes.admin import bp as admin_bp

    app.register_blueprint(admin_bp, url_prefix="/admin")

    register_error_handlers(app)
    show_config_warnings(app, config_name)

    # Create database tables
    with app.app_context():
        db.create_all()

    # Initialize background scheduler
    if not app.config.get("TESTING", False):
        from frenzy.services.scheduler_service import scheduler_service

        scheduler_service.init_app(app)

    return app


def show_config_warnings(app, config_name):
    """Log configuration status and warnings"""
    logger.info(f"NFL Frenzy starting with '{config_name}' configuration")

    if config_name == "production" and app.config.get("DEBUG"):
        logger.warning("DEBUG mode is enabled in production!")

    if not app.config.get("ODDS_API_KEY"):
        logger.warning("ODDS_API_KEY not set - odds sync and odds kickoffs disabled")
    if not app.config.get("SPORTSDATA_API_KEY"):
        logger.warning("SPORTSDATA_API_KEY not set - SportsData kickoffs disabled")

    db_url = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if "sqlite" in db_url:
        logger.info(
            "Using SQLite database " + ("(in-memory)" if "memory" in db_url else "(file)")
        )
    elif "postgresql" in db_url:
        match = re.search(r"postgresql.*?://.*?@([^:/]+):?(\d+)?/([^?]+)", db_url)
        if match:
            host, port, dbname = match.groups()
            logger.info(f"Using PostgreSQL database {dbname} at {host}:{port or '5432'}")
        else:
            logger.info("Using PostgreSQL database")


def register_error_handlers(app):
    """Register global JSON error handlers"""

    @app.after_request
    def after_request(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Cache-Control"] = "no-store"

        if not app.config.get("DEBUG"):
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    @app.route("/healthz")
    def healthz():
        from frenzy.utils.timezone_utils import get_utc_time

        return jsonify(
            {
                "ok": True,
                "time": get_utc_time().isoformat(),
                "cors": app.config.get("CORS_ORIGIN"),
            }
        )

    @app.errorhandler(400)
    def bad_request_error(error):
        app.logger.warning(
            f"400 Bad Request: {error} - Path: {request.path} - Method: {request.method}"
        )
        return jsonify({"error": getattr(error, "description", None) or "Bad request"}), 400

    @app.errorhandler(401)
    def unauthorized_error(error):
        return jsonify({"error": "Authentication required"}), 401

    @app.errorhandler(403)
    def forbidden_error(error):
        return jsonify({"error": "Access forbidden"}), 403

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({"error": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(429)
    def too_many_requests_error(error):
        return jsonify({"error": "Too many requests"}), 429

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({"error": "Internal server error"}), 500


from frenzy import models  # noqa: F401, E402 - imported for model registration
