import logging
import time
from typing import Any, List, Optional

import stripe
from flask_mail import Mail, Message
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

log = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# Core singletons
# ─────────────────────────────────────────────────────────────
db = SQLAlchemy()
migrate = Migrate()
mail = Mail()


# ─────────────────────────────────────────────────────────────
# Safe DB helpers
# ─────────────────────────────────────────────────────────────
def tx_commit() -> None:
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def safe_commit() -> bool:
    try:
        db.session.commit()
        return True
    except Exception as e:
        log.error("DB commit failed: %s", e, exc_info=True)
        db.session.rollback()
        return False


# ─────────────────────────────────────────────────────────────
# Email helper
# ─────────────────────────────────────────────────────────────
def send_mail(
    subject: str,
    recipients: List[str],
    *,
    body: str,
    sender: Optional[Any] = None,
    reply_to: Optional[str] = None,
    max_retries: int = 2,
    retry_backoff: float = 0.5,
) -> bool:
    """
    Send a plain-text message through Flask-Mail, retrying transient failures.
    Returns False (after logging) when the message could not be delivered.
    """
    if not recipients:
        log.warning("Mail not sent (no recipients): %s", subject)
        return False

    msg = Message(subject=subject, recipients=list(recipients), body=body, sender=sender, reply_to=reply_to or None)

    attempts = 0
    while True:
        try:
            mail.send(msg)
            return True
        except Exception as e:
            attempts += 1
            if attempts > max_retries:
                log.error("Email send permanently failed: %s", e, exc_info=True)
                return False
            log.warning("Mail send failed (attempt %s/%s): %s", attempts, max_retries, e)
            time.sleep(float(retry_backoff) * attempts)


# ─────────────────────────────────────────────────────────────
# Stripe initialization
# ─────────────────────────────────────────────────────────────
def _guess_stripe_mode(api_key: Optional[str]) -> str:
    if not api_key:
        return "disabled"
    if api_key.startswith(("sk_live_", "rk_live_")):
        return "live"
    if api_key.startswith(("sk_test_", "rk_test_")):
        return "test"
    return "unknown"


def init_stripe(app: Any) -> None:
    api_key = app.config.get("STRIPE_SECRET_KEY") or ""

    if not api_key:
        app.logger.warning("Stripe NOT initialized: missing STRIPE_SECRET_KEY")
        return

    stripe.api_key = api_key
    stripe.max_network_retries = int(app.config.get("STRIPE_MAX_NETWORK_RETRIES") or 2)

    app.logger.info("Stripe initialized (%s mode)", _guess_stripe_mode(api_key))


__all__ = [
    "db",
    "migrate",
    "mail",
    "init_stripe",
    "safe_commit",
    "send_mail",
    "tx_commit",
]
