import logging
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, g, jsonify, request
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from app.batchflow.config import load_config
from app.batchflow.db import init_db, teardown_db_session
from app.batchflow.errors import ConflictError, NotFoundError, ValidationError
from app.batchflow.models import Base
from app.batchflow.routes import bp as routes_bp
from app.batchflow.auth import bp as auth_bp, load_current_user
from app.batchflow.modules.catalog.api import bp as catalog_bp
from app.batchflow.modules.work_orders.api import bp as work_orders_bp
from app.batchflow.modules.batch_records.api import bp as batch_records_bp
from app.batchflow.modules.quality_reviews.api import bp as quality_reviews_bp
from app.batchflow.modules.dashboard.api import bp as dashboard_bp

API_PREFIX = "/api"


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True
    app.json.sort_keys = False

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        import os
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix=API_PREFIX)
    app.register_blueprint(catalog_bp, url_prefix=API_PREFIX)
    app.register_blueprint(work_orders_bp, url_prefix=API_PREFIX)
    app.register_blueprint(batch_records_bp, url_prefix=API_PREFIX)
    app.register_blueprint(quality_reviews_bp, url_prefix=API_PREFIX)
    app.register_blueprint(dashboard_bp, url_prefix=API_PREFIX)

    # Session user first, then CSRF (the guard needs the session populated).
    app.before_request(load_current_user)

    from app.batchflow.security import ensure_csrf_token, validate_csrf

    @app.before_request
    def _csrf_guard():
        if not request.path.startswith(API_PREFIX):
            return None
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            # Login is how a client obtains its token.
            if request.endpoint == "auth.login_post":
                return None
            # Anonymous callers get 401, not a CSRF 403.
            if getattr(g, "current_user", None) is None:
                return jsonify({"error": "Authentication required"}), 401
            ensure_csrf_token()
            if not validate_csrf(request):
                app.logger.warning(
                    "CSRF rejected %s %s (request_id=%s)", request.method, request.path, getattr(g, "request_id", None)
                )
                return jsonify({"error": "CSRF token missing or invalid."}), 403
        return None

    app.teardown_appcontext(teardown_db_session)

    # Migration health (lean): log drift between models and DB schema.
    def _run_schema_health_check() -> None:
        engine = app.extensions["sqlalchemy_engine"]
        try:
            insp = sa_inspect(engine)
            missing = [t for t in Base.metadata.tables if not insp.has_table(t)]
        except Exception as e:
            app.logger.exception("Schema health check failed: %s", e)
            return
        if missing:
            app.logger.warning("DB schema out of date; run `alembic upgrade head`. Missing: %s", ", ".join(missing))

    _run_schema_health_check()

    def _rollback() -> None:
        s = getattr(g, "db_session", None)
        if s is not None:
            s.rollback()

    @app.errorhandler(ValidationError)
    def _err_validation(e: ValidationError):
        _rollback()
        return jsonify({"error": e.message, "details": e.errors}), 400

    @app.errorhandler(NotFoundError)
    def _err_not_found(e: NotFoundError):
        _rollback()
        return jsonify({"error": e.message}), 404

    @app.errorhandler(ConflictError)
    def _err_conflict(e: ConflictError):
        _rollback()
        app.logger.info("Conflict: %s (request_id=%s)", e.message, getattr(g, "request_id", None))
        return jsonify({"error": e.message}), 409

    @app.errorhandler(IntegrityError)
    def _err_integrity(e: IntegrityError):
        # Unique constraint races (work order / batch numbers, one-to-one rows).
        _rollback()
        app.logger.warning("Integrity error (request_id=%s): %s", getattr(g, "request_id", None), e.orig)
        return jsonify({"error": "Conflicting record already exists"}), 409

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):
        _rollback()
        if e.code == 403:
            missing = getattr(g, "missing_role", None)
            if missing:
                app.logger.warning("Forbidden: missing_role=%s request_id=%s", missing, getattr(g, "request_id", None))
                return jsonify({"error": f"Requires role: {missing}"}), 403
        messages = {
            401: "Authentication required",
            403: "Forbidden",
            404: "Not found",
            405: "Method not allowed",
            413: "Request body too large",
        }
        return jsonify({"error": messages.get(e.code or 500, e.name)}), e.code

    @app.errorhandler(Exception)
    def _err_500(e: Exception):  # type: ignore[no-redef]
        _rollback()
        rid = getattr(g, "request_id", None)
        app.logger.exception("Unhandled 500 (request_id=%s)", rid)
        return jsonify({"error": "Internal Server Error", "requestId": rid}), 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
