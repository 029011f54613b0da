"""Turn a Stripe webhook payload into a ReconciliationEvent."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from donorsync.reconcile.ports import PaymentClient
from donorsync.reconcile.types import ReconciliationEvent

log = logging.getLogger(__name__)


def _looks_like_email(value: Any) -> bool:
    s = str(value or "").strip()
    return "@" in s and "." in s.split("@")[-1]


def _id_of(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        value = value.get("id")
    return str(value) if value else None


def event_object(payload: Dict[str, Any]) -> Dict[str, Any]:
    obj = (payload.get("data") or {}).get("object")
    return obj if isinstance(obj, dict) else {}


def event_from_payload(payload: Dict[str, Any], payments: PaymentClient) -> ReconciliationEvent:
    """
    Charges carry everything directly. Dispute events carry the dispute, so
    the charge id and the won/lost outcome come from the dispute object and
    the donor (email, customer, invoice) from the disputed charge.
    """
    etype = str(payload.get("type") or "").lower()
    obj = event_object(payload)

    is_dispute = str(obj.get("object") or "") == "dispute" or str(obj.get("id") or "").startswith("dp_")
    if is_dispute:
        charge_ref = obj.get("charge")
        charge_id = _id_of(charge_ref)
        dispute_status = str(obj.get("status") or "") or None
        source = charge_ref if isinstance(charge_ref, dict) else (payments.get_charge(charge_id) or {})
        if not source:
            log.warning("Disputed charge %s could not be loaded", charge_id)
    else:
        charge_id = _id_of(obj.get("id"))
        dispute_status = None
        source = obj

    email = source.get("receipt_email")
    if not email:
        # Stripe drops some receipt addresses; checkout puts the email in the description
        log.info("Stripe webhook was missing email")
        description = source.get("description")
        email = description if _looks_like_email(description) else None

    invoice_ref = source.get("invoice")
    invoice = invoice_ref if isinstance(invoice_ref, dict) else payments.get_invoice(_id_of(invoice_ref))

    try:
        amount_cents = int(obj.get("amount") or 0)
    except (TypeError, ValueError):
        amount_cents = 0

    return ReconciliationEvent(
        amount_cents=amount_cents,
        event_type=etype,
        charge_id=charge_id or "",
        email=(str(email).strip().lower() or None) if email else None,
        customer_id=_id_of(source.get("customer")),
        invoice=invoice,
        dispute_status=dispute_status,
    )
