# donorsync/config/config.py
# Canonical donorsync configuration (env-first, production-safe)

from __future__ import annotations

import os
from typing import Optional


# ----------------------------
# Env helpers
# ----------------------------
_TRUTHY = {"1", "true", "yes", "on", "y"}
_FALSY = {"0", "false", "no", "off", "n"}


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    if v is None:
        return default
    s = str(v).strip()
    return s if s else default


def _bool(name: str, default: bool = False) -> bool:
    v = _env(name)
    if v is None:
        return default
    s = v.strip().lower()
    if s in _TRUTHY:
        return True
    if s in _FALSY:
        return False
    return default


def _int(name: str, default: int) -> int:
    v = _env(name)
    if v is None:
        return default
    try:
        return int(str(v).strip())
    except Exception:
        return default


def _csv(name: str, default: str = "") -> tuple:
    raw = _env(name, default) or ""
    return tuple(p.strip() for p in raw.split(",") if p.strip())


def _clean_base_url(v: Optional[str]) -> str:
    s = (v or "").strip().rstrip("/")
    return s


# ----------------------------
# Config classes
# ----------------------------
class BaseConfig:
    """
    Env-first config:
    - all important settings can be overridden via environment variables
    - safe defaults for local dev
    """

    ENV = (_env("APP_ENV") or _env("ENV") or _env("FLASK_ENV") or "base").strip().lower()

    DEBUG = _bool("FLASK_DEBUG", False)
    TESTING = _bool("TESTING", False)

    SECRET_KEY = _env("SECRET_KEY", "dev-change-me")
    LOG_LEVEL = _env("LOG_LEVEL", "INFO")
    WERKZEUG_LOG_LEVEL = _env("WERKZEUG_LOG_LEVEL", "WARNING")

    # Used in donation descriptions ("Online donation from ...")
    PUBLIC_BASE_URL = _clean_base_url(_env("PUBLIC_BASE_URL", "http://127.0.0.1:5000"))

    # Local clock for year windows, renewal dates and descriptions
    TIMEZONE = _env("TIMEZONE", "America/Chicago")

    # SQLAlchemy (the CRM store)
    SQLALCHEMY_DATABASE_URI = _env("SQLALCHEMY_DATABASE_URI", "sqlite:///donorsync-dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}
    AUTO_CREATE_SQLITE = _bool("AUTO_CREATE_SQLITE", True)

    # Stripe
    STRIPE_SECRET_KEY = _env("STRIPE_SECRET_KEY", "")
    STRIPE_PUBLISHABLE_KEY = _env("STRIPE_PUBLISHABLE_KEY", "")
    STRIPE_WEBHOOK_SECRET = _env("STRIPE_WEBHOOK_SECRET", "")
    STRIPE_MAX_NETWORK_RETRIES = _int("STRIPE_MAX_NETWORK_RETRIES", 2)
    STRIPE_DONATION_PRODUCT = _env("STRIPE_DONATION_PRODUCT", "")
    DEFAULT_CURRENCY = (_env("DEFAULT_CURRENCY", "usd") or "usd").lower()
    MIN_DONATION_CENTS = _int("MIN_DONATION_CENTS", 51)

    # Event types the webhook feeds into reconciliation; everything else is acked
    WEBHOOK_RECONCILE_EVENTS = _csv("WEBHOOK_RECONCILE_EVENTS", "charge.succeeded")

    # Notifications
    DONOR_SINGLE_TEMPLATE = _env("DONOR_SINGLE_TEMPLATE", "donor_single")
    DONOR_MONTHLY_TEMPLATE = _env("DONOR_MONTHLY_TEMPLATE", "donor_monthly")
    DONOR_ANNUAL_TEMPLATE = _env("DONOR_ANNUAL_TEMPLATE", "donor_annual")
    SENDER_DISPLAY_NAME = _env("SENDER_DISPLAY_NAME", "Spark")
    ALERT_SENDER_NAME = _env("ALERT_SENDER_NAME", "Spark Donations")
    EMAIL_REPLY_TO = _env("EMAIL_REPLY_TO", "")
    ALERT_EMAIL_LIST = _csv("ALERT_EMAIL_LIST", "")
    CRM_RECORD_URL = _clean_base_url(_env("CRM_RECORD_URL", "http://127.0.0.1:5000/contacts"))

    # Flask-Mail
    MAIL_SERVER = _env("MAIL_SERVER", "localhost")
    MAIL_PORT = _int("MAIL_PORT", 25)
    MAIL_USE_TLS = _bool("MAIL_USE_TLS", False)
    MAIL_USE_SSL = _bool("MAIL_USE_SSL", False)
    MAIL_USERNAME = _env("MAIL_USERNAME")
    MAIL_PASSWORD = _env("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = _env("MAIL_DEFAULT_SENDER", "donations@localhost")
    MAIL_SUPPRESS_SEND = _bool("MAIL_SUPPRESS_SEND", False)

    @classmethod
    def init_app(cls, app) -> None:
        """
        Optional hook for factory boot hardening.
        Called from create_app() after app.config.from_object(...)
        """
        uri = str(app.config.get("SQLALCHEMY_DATABASE_URI") or "")

        if uri.startswith("sqlite:"):
            opts = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
            connect_args = dict(opts.get("connect_args") or {})
            connect_args.setdefault("check_same_thread", False)
            opts["connect_args"] = connect_args
            opts.setdefault("pool_pre_ping", True)
            app.config["SQLALCHEMY_ENGINE_OPTIONS"] = opts


class DevelopmentConfig(BaseConfig):
    ENV = "development"
    DEBUG = True
    LOG_LEVEL = _env("LOG_LEVEL", "DEBUG")

    SQLALCHEMY_DATABASE_URI = _env("SQLALCHEMY_DATABASE_URI", "sqlite:///donorsync-dev.db")
    MAIL_SUPPRESS_SEND = _bool("MAIL_SUPPRESS_SEND", True)


class TestingConfig(BaseConfig):
    ENV = "testing"
    TESTING = True
    DEBUG = False

    SECRET_KEY = "testing"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WTF_CSRF_ENABLED = False
    MAIL_SUPPRESS_SEND = True
    STRIPE_WEBHOOK_SECRET = ""
    PUBLIC_BASE_URL = "https://donate.example.org"
    CRM_RECORD_URL = "https://crm.example.org/contacts"
    ALERT_EMAIL_LIST = ("alerts@example.org",)
    EMAIL_REPLY_TO = "hello@example.org"


class ProductionConfig(BaseConfig):
    ENV = "production"
    DEBUG = False

    @classmethod
    def init_app(cls, app) -> None:
        super().init_app(app)

        # ---- Production guardrails (fail fast) ----
        sk = app.config.get("SECRET_KEY")
        if not sk or sk == "dev-change-me":
            raise RuntimeError("SECRET_KEY must be set to a strong random value in production.")

        if not app.config.get("STRIPE_WEBHOOK_SECRET"):
            raise RuntimeError("STRIPE_WEBHOOK_SECRET must be set in production (webhooks are signature-checked).")

        base = (app.config.get("PUBLIC_BASE_URL") or "").strip()
        if base and base.startswith("http://"):
            raise RuntimeError("PUBLIC_BASE_URL must be https:// in production.")

        if _bool("FLASK_DEBUG", False):
            raise RuntimeError("FLASK_DEBUG must be 0 in production.")
