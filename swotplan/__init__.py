"""
SWOT Planning Workshop Platform
Flask Application Factory.

Usage:
    from swotplan import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from swotplan.config import config
from swotplan.middleware.logging_config import configure_logging
from swotplan.middleware.timing import init_request_timing
from swotplan.models import db
from swotplan.services import cache_service
from swotplan.utils.errors import E, api_error

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


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
    app.config.from_object(config[config_name]())
    os.makedirs(app.instance_path, exist_ok=True)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    cache_service.init_cache(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Import all models so create_all() sees them ──────────────────────
    from swotplan.models import planning as _planning_models          # noqa: F401
    from swotplan.models import problem_tree as _problem_tree_models  # noqa: F401

    with app.app_context():
        db.create_all()

    # ── Blueprints ───────────────────────────────────────────────────────
    from swotplan.blueprints.health_bp import health_bp
    from swotplan.blueprints.planning_bp import planning_bp
    from swotplan.blueprints.problem_tree_bp import problem_tree_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(planning_bp)
    app.register_blueprint(problem_tree_bp)

    # ── App-level JSON errors (unrouted paths, wrong methods) ────────────
    @app.errorhandler(404)
    def not_found(e):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error(E.VALIDATION_INVALID, "Method not allowed", status=405)

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")

    logger.debug("App created with config=%s", config_name)
    return app
