# donorsync/services/payments.py
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import stripe
from flask import current_app

from donorsync.errors import PaymentError
from donorsync.reconcile.recurrence import Recurrence

log = logging.getLogger(__name__)

_INTERVALS = {
    Recurrence.MONTHLY: "month",
    Recurrence.ANNUAL: "year",
}


@dataclass(frozen=True)
class ChargeCustomer:
    email: str
    name: str = ""


def as_dict(obj: Any) -> Optional[Dict[str, Any]]:
    """Plain dict from a StripeObject (or pass a dict through)."""
    if obj is None:
        return None
    if type(obj) is dict:
        return obj
    for attr in ("to_dict_recursive", "to_dict"):
        fn = getattr(obj, attr, None)
        if callable(fn):
            return fn()
    return json.loads(str(obj))


def _id_of(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        value = value.get("id")
    return str(value) if value else None


class StripePaymentClient:
    """Stripe-backed payment capability used by checkout and reconciliation."""

    def __init__(self, *, currency: str = "usd", product: Optional[str] = None, statement_name: str = ""):
        self.currency = (currency or "usd").lower()
        self.product = product or None
        self.statement_name = statement_name

    @classmethod
    def from_app(cls, app=None) -> "StripePaymentClient":
        cfg = (app or current_app).config
        return cls(
            currency=str(cfg.get("DEFAULT_CURRENCY") or "usd"),
            product=cfg.get("STRIPE_DONATION_PRODUCT") or None,
            statement_name=str(cfg.get("SENDER_DISPLAY_NAME") or ""),
        )

    # ---------------- Charges ----------------
    def charge(
        self,
        amount_cents: int,
        token: str,
        customer: ChargeCustomer,
        recurrence: Optional[Recurrence] = None,
    ) -> str:
        """
        One-time donations become a Charge (returns ch_...). Monthly and annual
        donations create a Customer and a Subscription (returns sub_...), which
        is what the first invoice's subscription line item carries.
        """
        if amount_cents <= 0:
            raise PaymentError("Amount must be positive")

        try:
            interval = _INTERVALS.get(recurrence) if recurrence else None
            if interval is None:
                ch = stripe.Charge.create(
                    amount=int(amount_cents),
                    currency=self.currency,
                    source=token,
                    receipt_email=customer.email,
                    description=customer.email,
                )
                log.debug("Stripe charge %s created", ch["id"])
                return str(ch["id"])

            if not self.product:
                raise PaymentError("STRIPE_DONATION_PRODUCT is required for recurring donations")

            cus = stripe.Customer.create(email=customer.email, name=customer.name or None, source=token)
            sub = stripe.Subscription.create(
                customer=cus["id"],
                items=[
                    {
                        "price_data": {
                            "currency": self.currency,
                            "product": self.product,
                            "unit_amount": int(amount_cents),
                            "recurring": {"interval": interval},
                        }
                    }
                ],
            )
            log.debug("Stripe subscription %s created for %s", sub["id"], cus["id"])
            return str(sub["id"])
        except stripe.StripeError as e:
            msg = getattr(e, "user_message", None) or str(e)
            log.error("Stripe charge failed: %s", msg, exc_info=True)
            raise PaymentError(msg) from e

    # ---------------- Lookups ----------------
    def get_charge(self, charge_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not charge_id:
            log.debug("Can't retrieve Stripe charge without a charge id")
            return None
        try:
            return as_dict(stripe.Charge.retrieve(charge_id))
        except stripe.StripeError as e:
            log.warning("Stripe charge %s lookup failed: %s", charge_id, e)
            return None

    def get_invoice(self, invoice_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not invoice_id:
            log.debug("Can't retrieve Stripe invoice without an invoice id")
            return None
        try:
            invoice = as_dict(stripe.Invoice.retrieve(invoice_id))
            log.debug("Stripe invoice %s found", invoice_id)
            return invoice
        except stripe.StripeError as e:
            log.warning("Stripe invoice %s lookup failed: %s", invoice_id, e)
            return None

    def get_customer_email(self, customer_id: Optional[str]) -> Optional[str]:
        if not customer_id:
            log.debug("Cannot retrieve Stripe customer without customer id")
            return None
        try:
            customer = as_dict(stripe.Customer.retrieve(customer_id)) or {}
            email = customer.get("email")
            log.debug("Customer email retrieved: %s", email)
            return email or None
        except stripe.StripeError as e:
            log.warning("Stripe customer %s lookup failed: %s", customer_id, e)
            return None

    def resolve_subscription_for_charge(self, charge_id: str) -> Optional[str]:
        ch = as_dict(stripe.Charge.retrieve(charge_id)) or {}
        invoice_id = _id_of(ch.get("invoice"))
        if not invoice_id:
            return None

        invoice = as_dict(stripe.Invoice.retrieve(invoice_id)) or {}
        sub = _id_of(invoice.get("subscription"))
        if sub:
            return sub

        # Newer API versions moved it under parent.subscription_details
        parent = invoice.get("parent") or {}
        details = parent.get("subscription_details") or {}
        return _id_of(details.get("subscription"))
