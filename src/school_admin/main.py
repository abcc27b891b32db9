from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .academics.controller import register as register_academics
from .accounting.controller import register as register_accounting
from .config import get_settings_module
from .container import Container, build_container
from .core.exceptions import AuthorizationError, ConflictError, DomainError, NotFoundError, ValidationError
from .core.logging_config import configure_logging
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables
from .fees.controller import register as register_fees
from .grading.controller import register as register_grading
from .lesson_plans.controller import register as register_lesson_plans
from .library.controller import register as register_library
from .scheduler.jobs import start_scheduler

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
)


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def domain_error(exc: DomainError):
        status = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 400)
        return jsonify({"error": str(exc)}), status

    @app.errorhandler(HTTPException)
    def http_error(exc: HTTPException):
        return jsonify({"error": exc.description or exc.name}), exc.code or 500

    @app.errorhandler(Exception)
    def unexpected_error(exc: Exception):
        logger.exception("Unhandled error")
        return jsonify({"error": "Internal server error"}), 500


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    if container is None:
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
        if getattr(settings, "AUTO_INIT_DB", False):
            apply_schema(db_config)
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
        if getattr(settings, "AUTO_SEED_DB", False):
            apply_seed_sql(db_config)
            logger.info("Demo seed ready")
        container = build_container(db_config=db_config)

        if getattr(settings, "SCHEDULER_ENABLED", False):
            start_scheduler(
                container.fee_jobs,
                timezone=getattr(settings, "SCHEDULER_TIMEZONE", "UTC"),
                late_fee_cron=getattr(settings, "LATE_FEE_CRON", "0 1 * * *"),
                monthly_fee_cron=getattr(settings, "MONTHLY_FEE_CRON", "0 2 1 * *"),
            )

    app.extensions["container"] = container
    _register_error_handlers(app)

    @app.route("/health", methods=["GET"], endpoint="health")
    def health():
        return jsonify({"status": "ok"})

    register_fees(app, container)
    register_academics(app, container)
    register_accounting(app, container)
    register_grading(app, container)
    register_library(app, container)
    register_lesson_plans(app, container)

    return app
