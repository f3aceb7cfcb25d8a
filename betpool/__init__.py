import logging
import os

from flask import Flask, g, jsonify, request
from flask_caching import Cache
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

from config import config

logger = logging.getLogger(__name__)

db = SQLAlchemy()
login_manager = LoginManager()
cache = Cache()
migrate = Migrate()


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


def api_error(code, message, status, field=None):
    """Build the JSON error envelope shared by every API endpoint"""
    return (
        jsonify({"error": {"code": code, "message": message, "field": field}}),
        status,
    )


def create_app(config_name=None):
    app = Flask(__name__)

    # Determine configuration
    if config_name is None:
        config_name = os.environ.get("FLASK_CONFIG", "default")

    app.config.from_object(config[config_name]())

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)
    cache.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    # JSON API: answer 401 instead of redirecting to a login page
    @login_manager.unauthorized_handler
    def unauthorized():
        return api_error("UNAUTHORIZED", "Not logged in", 401)

    # Import and register blueprints
    from betpool.routes.auth import bp as auth_bp

    app.register_blueprint(auth_bp, url_prefix="/api/v1")

    from betpool.routes.api import bp as api_bp

    app.register_blueprint(api_bp, url_prefix="/api/v1")

    from betpool.routes.admin import bp as admin_bp

    app.register_blueprint(admin_bp, url_prefix="/api/v1/admin")

    # Register error handlers
    register_error_handlers(app)

    # Setup logging
    from betpool.utils.logging_config import setup_logging

    setup_logging(app)

    show_config_warnings(app, config_name)

    # Create database tables
    with app.app_context():
        db.create_all()

    return app


def show_config_warnings(app, config_name):
    """Log configuration warnings and status"""
    logger.info(f"Betting pool starting with '{config_name}' configuration")

    if config_name == "production" and app.config.get("DEBUG"):
        logger.warning("DEBUG mode is enabled in production!")

    if not os.environ.get("SECRET_KEY") and not app.config.get("TESTING"):
        logger.warning(
            "Using auto-generated SECRET_KEY (sessions will reset on restart)"
        )

    db_url = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    backend = db_url.split("://")[0] if "://" in db_url else "unknown"
    logger.info(f"Using database backend: {backend}")


def register_error_handlers(app):
    """Register global error handlers"""

    @app.before_request
    def reset_request_metrics():
        g.pop("performance_metrics", None)

    @app.after_request
    def after_request(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if request.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store"

        from betpool.utils.performance import request_metrics

        timings = request_metrics()
        if timings:
            response.headers["Server-Timing"] = ", ".join(
                f"{m['operation']};dur={m['duration'] * 1000:.1f}" for m in timings
            )
        return response

    @app.errorhandler(400)
    def bad_request_error(error):
        app.logger.warning(
            f"400 Bad Request: {str(error)} - Path: {request.path} - Method: {request.method}"
        )
        return api_error("BAD_REQUEST", "Bad request", 400)

    @app.errorhandler(403)
    def forbidden_error(error):
        return api_error("FORBIDDEN", "Access forbidden", 403)

    @app.errorhandler(404)
    def not_found_error(error):
        return api_error("NOT_FOUND", "Resource not found", 404)

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return api_error("METHOD_NOT_ALLOWED", "Method not allowed", 405)

    @app.errorhandler(429)
    def too_many_requests_error(error):
        return api_error("TOO_MANY_REQUESTS", "Too many requests", 429)

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return api_error("INTERNAL_ERROR", "Internal server error", 500)


from betpool import models  # noqa: F401, E402 - imported for model registration
