"""
Synchronous checkout: charge the card, make sure the donor exists in the CRM,
and leave a Pending placeholder for the reconciliation engine to complete
when Stripe confirms the charge.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Optional

from donorsync.errors import PaymentError
from donorsync.forms.donation_form import CheckoutRequest
from donorsync.reconcile.notify import Notifier
from donorsync.reconcile.ports import CRMClient, PaymentClient
from donorsync.reconcile.status import DonationStatus
from donorsync.reconcile.types import ContactRecord, dollars_from_cents, format_money
from donorsync.services.payments import ChargeCustomer

log = logging.getLogger(__name__)

PLACEHOLDER_TYPE = "Membership"


@dataclass(frozen=True)
class CheckoutReceipt:
    stripe_id: str
    contact_id: Optional[int]
    donation_id: Optional[int]
    amount_string: str
    recurrence: str
    crm_ok: bool = True


class CheckoutService:
    def __init__(self, payments: PaymentClient, crm: CRMClient, notifier: Notifier):
        self.payments = payments
        self.crm = crm
        self.notifier = notifier

    def begin(self, req: CheckoutRequest, today: date) -> CheckoutReceipt:
        """
        Raises PaymentError when the charge is refused. Once the card has been
        charged, CRM failures are reported to staff instead of the donor.
        """
        log.debug("Charging %s (%s) for %s cents", req.email, req.recurrence.label, req.amount_cents)
        stripe_id = self.payments.charge(
            req.amount_cents,
            req.token,
            ChargeCustomer(email=req.email, name=req.full_name),
            req.recurrence,
        )
        if not stripe_id:
            raise PaymentError("Payment processor returned no charge id")

        amount_string = format_money(dollars_from_cents(req.amount_cents))
        try:
            contact_id = self._upsert_contact(req)
            donation_id = self.crm.create_donation(
                {
                    "contact_id": contact_id,
                    "type": PLACEHOLDER_TYPE,
                    "amount": None,
                    "donation_date": today,
                    "stripe_status": DonationStatus.PENDING.value,
                    "stripe_id": stripe_id,
                    "in_honor_of": req.honoree or None,
                    "description": f"{req.recurrence.label} - {amount_string} - awaiting payment confirmation",
                }
            )
        except Exception as exc:
            log.exception("CRM update failed after charging %s (%s)", req.email, stripe_id)
            self.notifier.emergency(
                {"email": req.email, "name": req.full_name, "stripe_id": stripe_id, "amount": amount_string},
                str(exc),
            )
            return CheckoutReceipt(stripe_id, None, None, amount_string, req.recurrence.label, crm_ok=False)

        log.info("Checkout complete for %s: %s placeholder %s", req.email, stripe_id, donation_id)
        return CheckoutReceipt(stripe_id, contact_id, donation_id, amount_string, req.recurrence.label)

    def _upsert_contact(self, req: CheckoutRequest) -> int:
        existing = self.crm.find_contact_by_email(req.email)
        record = existing or ContactRecord(id=None, email=req.email)
        record = replace(
            record,
            first_name=req.first_name,
            last_name=req.last_name,
            mailing_city=req.city,
            mailing_state=req.state,
        )
        return self.crm.upsert_contact(
            record,
            phone=req.phone,
            company=req.company,
            mailing_street=req.street,
            mailing_postal_code=req.postal_code,
            mailing_country=req.country,
            birthday_month=req.birthday_month,
            birthday_year=req.birthday_year,
            gender=req.gender,
            hear_about=req.hear_about,
            hear_about_extra=req.hear_about_extra,
        )
