"""
Stripe webhook receiver.

  POST /stripe/webhook

Every event is written to the StripeEvent ledger first. Reconcilable types
(WEBHOOK_RECONCILE_EVENTS) are then handed to the reconciliation engine and
its status code is returned to Stripe: 424 makes Stripe retry later when the
donor's contact has not been created yet; everything else is acknowledged.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional, Tuple

import stripe
from flask import Blueprint, current_app, request
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from donorsync.extensions import db, safe_commit, tx_commit
from donorsync.models import StripeEvent
from donorsync.reconcile.engine import HTTP_OK
from donorsync.services import event_from_payload, get_engine, get_payment_client
from donorsync.services.events import event_object
from donorsync.services.payments import as_dict

bp = Blueprint("stripe_webhook", __name__)


def _parse_event(payload: bytes) -> Optional[Dict[str, Any]]:
    sig = (request.headers.get("Stripe-Signature") or "").strip()
    endpoint_secret = str(current_app.config.get("STRIPE_WEBHOOK_SECRET") or "").strip()

    if not endpoint_secret:
        if current_app.config.get("ENV") == "production":
            return None
        ev = json.loads(payload.decode("utf-8"))
    else:
        ev = as_dict(stripe.Webhook.construct_event(payload, sig, endpoint_secret))
    return ev if isinstance(ev, dict) else None


def _ledger_row(ev: Dict[str, Any]) -> Tuple[StripeEvent, bool]:
    """Returns (row, is_new). Raises on database failure."""
    event_id = str(ev.get("id") or "")
    obj = event_object(ev)

    row = StripeEvent(
        event_id=event_id[:120],
        type=str(ev.get("type") or "")[:120],
        livemode=bool(ev.get("livemode") or False),
        object_id=(str(obj.get("id") or "")[:120] or None),
        payload=ev,
    )
    db.session.add(row)
    try:
        tx_commit()
        return row, True
    except IntegrityError:
        existing = db.session.execute(
            select(StripeEvent).where(StripeEvent.event_id == event_id[:120])
        ).scalar_one()
        return existing, False


@bp.route("/stripe/webhook", methods=["POST"])
def stripe_webhook():
    payload = request.get_data(cache=False, as_text=False)

    try:
        ev = _parse_event(payload)
    except (ValueError, stripe.SignatureVerificationError):
        current_app.logger.warning("webhook: rejected payload (bad JSON or signature)")
        return ("", 400)
    if ev is None or not ev.get("id"):
        return ("", 400)

    etype = str(ev.get("type") or "").lower()
    current_app.logger.debug("Stripe webhook with type: %s", etype)

    try:
        row, is_new = _ledger_row(ev)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("webhook: failed to store StripeEvent (will retry)")
        return ("", 500)

    if not is_new and row.status_code == HTTP_OK:
        current_app.logger.info("webhook: duplicate delivery of %s ignored", row.event_id)
        return ("", 200)

    allowed = {t.lower() for t in current_app.config.get("WEBHOOK_RECONCILE_EVENTS") or ()}
    if etype not in allowed:
        return ("", 200)

    try:
        event = event_from_payload(ev, get_payment_client())
    except Exception:
        current_app.logger.exception("webhook: could not read event %s; acknowledged", row.event_id)
        return ("", 200)

    status = get_engine().reconcile(event)
    current_app.logger.info("Endpoint request %s, status: %d", row.event_id, status)

    row.status_code = status
    safe_commit()
    return ("", status)
