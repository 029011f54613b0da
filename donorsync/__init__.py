# donorsync/__init__.py
# donorsync: Flask app factory
# - checkout intake (/donate) and Stripe webhook (/stripe/webhook)
# - reconciliation engine wired from config
# - JSON error shape everywhere; webhook errors never leak bodies

from __future__ import annotations

import logging
import os
import time
from typing import Any, Optional, Type, Union
from uuid import uuid4

from dotenv import load_dotenv
from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

# IMPORTANT: never override real env vars in prod
load_dotenv(override=False)

ConfigLike = Union[str, Type[Any]]

from donorsync.extensions import db, init_stripe, mail, migrate  # noqa: E402


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def _env_mode() -> str:
    for key in ("APP_ENV", "ENV", "FLASK_ENV"):
        val = (os.getenv(key) or "").strip().lower()
        if val:
            if val in {"prod"}:
                return "production"
            if val in {"dev"}:
                return "development"
            if val in {"test"}:
                return "testing"
            return val
    return "development"


def _resolve_config(target: Optional[ConfigLike]) -> ConfigLike:
    """
    Choose config class/module path.
    - If explicitly provided, respect it.
    - Else if FLASK_CONFIG is set, use it.
    - Else pick by APP_ENV / ENV / FLASK_ENV.
    """
    if target is not None:
        return target

    explicit = (os.getenv("FLASK_CONFIG") or "").strip()
    if explicit:
        return explicit

    from donorsync.config import CONFIG_BY_NAME

    return CONFIG_BY_NAME.get(_env_mode(), CONFIG_BY_NAME["development"])


def _json_error(message: str, status: int, **extra: Any):
    payload: dict = {"ok": False, "error": {"code": int(status), "message": str(message)}}
    if extra:
        payload["error"].update(extra)
    resp = jsonify(payload)
    resp.status_code = int(status)
    return resp


# -----------------------------------------------------------------------------
# Logging with request_id
# -----------------------------------------------------------------------------
class _RequestIDFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        try:
            record.request_id = getattr(g, "request_id", "-")
        except RuntimeError:
            # outside an app/request context (CLI, background work)
            record.request_id = "-"
        return True


def _configure_logging(app: Flask) -> None:
    fmt = "%(asctime)s [%(levelname)s] %(name)s [rid=%(request_id)s]: %(message)s"
    root = logging.getLogger()

    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt))
        handler.addFilter(_RequestIDFilter())
        root.addHandler(handler)
    else:
        for h in root.handlers:
            h.addFilter(_RequestIDFilter())
            if not getattr(h, "formatter", None) or "%(request_id)s" not in getattr(h.formatter, "_fmt", ""):
                h.setFormatter(logging.Formatter(fmt))

    root.setLevel(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    logging.getLogger("werkzeug").setLevel(str(app.config.get("WERKZEUG_LOG_LEVEL", "WARNING")).upper())
    app.logger.info("Loaded config: ENV=%s DEBUG=%s", app.config.get("ENV", "?"), app.debug)


# -----------------------------------------------------------------------------
# Database
# -----------------------------------------------------------------------------
def _maybe_create_sqlite_tables(app: Flask) -> None:
    uri = (app.config.get("SQLALCHEMY_DATABASE_URI") or "").strip()
    if not uri.startswith("sqlite"):
        return
    if app.config.get("AUTO_CREATE_SQLITE", True) is not True:
        return

    from donorsync import models  # noqa: F401  (register tables)

    try:
        with app.app_context():
            db.create_all()
    except Exception:
        app.logger.exception("SQLite create_all failed (continuing)")


# -----------------------------------------------------------------------------
# Request lifecycle + errors
# -----------------------------------------------------------------------------
def _register_request_lifecycle(app: Flask) -> None:
    @app.before_request
    def _bootstrap_request():
        g.request_id = request.headers.get("X-Request-ID") or uuid4().hex
        g._start_ts = time.perf_counter()

    @app.after_request
    def _attach_request_headers(resp):
        resp.headers["X-Request-ID"] = getattr(g, "request_id", "-")
        start = getattr(g, "_start_ts", None)
        if start:
            resp.headers["X-Response-Time-ms"] = str(int((time.perf_counter() - start) * 1000))
        return resp


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(HTTPException)
    def _http_err(err: HTTPException):
        return _json_error(err.description or err.name, err.code or 500, request_id=getattr(g, "request_id", "-"))

    @app.errorhandler(Exception)
    def _uncaught(err: Exception):
        app.logger.exception("Unhandled error")

        if (request.path or "").startswith("/stripe/webhook"):
            return ("", 500)

        return _json_error("Internal Server Error", 500, request_id=getattr(g, "request_id", "-"))


def _register_blueprints(app: Flask) -> None:
    from donorsync.blueprints.donate import bp as donate_bp
    from donorsync.blueprints.webhook import bp as webhook_bp

    for blueprint in (donate_bp, webhook_bp):
        app.register_blueprint(blueprint)
        app.logger.debug("Registered blueprint: %s", blueprint.name)


def _register_health_endpoints(app: Flask) -> None:
    @app.get("/healthz")
    def _healthz():
        return {
            "status": "ok",
            "env": app.config.get("ENV", "unknown"),
            "request_id": getattr(g, "request_id", "-"),
        }


# -----------------------------------------------------------------------------
# App Factory
# -----------------------------------------------------------------------------
def create_app(config_class: Optional[ConfigLike] = None) -> Flask:
    app = Flask(__name__)

    cfg = _resolve_config(config_class)
    app.config.from_object(cfg)

    init_hook = getattr(cfg, "init_app", None) if not isinstance(cfg, str) else None
    if init_hook is None and isinstance(cfg, str):
        from werkzeug.utils import import_string

        init_hook = getattr(import_string(cfg), "init_app", None)
    if callable(init_hook):
        init_hook(app)

    app.config.setdefault("JSON_SORT_KEYS", False)

    _configure_logging(app)

    db.init_app(app)
    _maybe_create_sqlite_tables(app)
    migrate.init_app(app, db, compare_type=True, render_as_batch=True)
    mail.init_app(app)
    init_stripe(app)

    _register_request_lifecycle(app)
    _register_error_handlers(app)
    _register_blueprints(app)
    _register_health_endpoints(app)

    from donorsync.cli import donations_cli

    app.cli.add_command(donations_cli)

    return app
