"""
Field Service Platform
Flask Application Factory.

Usage:
    from app import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from app.config import config
from app.core.exceptions import (
    ConflictError,
    InvalidRoleError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.middleware.auth_context import init_auth_context
from app.middleware.logging_config import configure_logging
from app.middleware.permission_required import FORBIDDEN_MESSAGE
from app.middleware.rate_limiter import init_rate_limits
from app.middleware.security_headers import init_security_headers
from app.middleware.timing import init_request_timing
from app.models import db
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit, applied per blueprint
    storage_uri=os.getenv("RATELIMIT_STORAGE_URI", "memory://"),
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # Instantiated so ProductionConfig can refuse unsafe environments
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Security headers (CSP, HSTS, X-Frame-Options, etc.) ─────────────
    init_security_headers(app)

    # ── Request timing middleware (assigns g.request_id) ─────────────────
    init_request_timing(app)

    # ── Principal resolution (JWT or dev headers → g.principal) ──────────
    init_auth_context(app)

    # Registered after auth context so limits can key on the organization
    limiter.init_app(app)

    # ── Request guards (input length + Content-Type) ─────────────────────
    @app.before_request
    def _guard_request():
        from flask import abort
        max_len = app.config.get("MAX_CONTENT_LENGTH")
        if max_len and request.content_length and request.content_length > max_len:
            abort(413, description="Request body too large")
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if request.data and "json" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Import all models so create_all sees every table ─────────────────
    from app.models import auth as _auth_models               # noqa: F401
    from app.models import customer as _customer_models       # noqa: F401
    from app.models import work_order as _work_order_models   # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    if config_name != "testing":
        with app.app_context():
            os.makedirs(app.instance_path, exist_ok=True)
            db.create_all()
            app.logger.info("db.create_all() completed successfully")

    # ── Blueprints ───────────────────────────────────────────────────────
    from app.blueprints.auth_bp import auth_bp
    from app.blueprints.customer_bp import customer_bp
    from app.blueprints.health_bp import health_bp
    from app.blueprints.task_bp import task_bp
    from app.blueprints.user_bp import user_bp
    from app.blueprints.visit_bp import visit_bp
    from app.blueprints.work_order_bp import work_order_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(user_bp)
    app.register_blueprint(customer_bp)
    app.register_blueprint(work_order_bp)
    app.register_blueprint(task_bp)
    app.register_blueprint(visit_bp)

    _register_error_handlers(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app


def _register_error_handlers(app):
    """Map domain exceptions and HTTP errors to the standard JSON error body."""

    @app.errorhandler(NotFoundError)
    def _not_found_error(e):
        logger.info("Not found: %s", e)
        return api_error(E.NOT_FOUND, e.public_message)

    @app.errorhandler(ValidationError)
    def _validation_error(e):
        return api_error(E.VALIDATION_RULE, str(e), details=e.details)

    @app.errorhandler(ConflictError)
    def _conflict_error(e):
        return api_error(E.CONFLICT_DUPLICATE, str(e), details={"field": e.field})

    @app.errorhandler(InvalidRoleError)
    def _invalid_role(e):
        logger.warning("Invalid role reached service layer: %s", e)
        return api_error(E.FORBIDDEN, FORBIDDEN_MESSAGE)

    @app.errorhandler(PermissionDeniedError)
    def _permission_denied(e):
        return api_error(E.FORBIDDEN, FORBIDDEN_MESSAGE)

    @app.errorhandler(404)
    def not_found(e):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error(E.VALIDATION_INVALID, "Method not allowed", status=405)

    @app.errorhandler(413)
    def too_large(e):
        return api_error(E.VALIDATION_INVALID, "Request body too large", status=413)

    @app.errorhandler(415)
    def unsupported_media(e):
        return api_error(E.VALIDATION_INVALID, "Content-Type must be application/json", status=415)

    @app.errorhandler(429)
    def rate_limited(e):
        return api_error(
            E.VALIDATION_INVALID, "Too many requests", status=429,
            details={"retry_after": e.description},
        )

    @app.errorhandler(500)
    def server_error(e):
        original = getattr(e, "original_exception", None) or e
        logger.exception("Unhandled error on %s %s: %s", request.method, request.path, original)
        return api_error(E.INTERNAL, "Internal server error")
