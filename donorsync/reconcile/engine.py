"""
Reconciliation engine.

Applies one payment event to a donor: this year's total, membership level,
the donation line item (completing a checkout placeholder or recording a
renewal) and the notification emails. Checkout completion and webhook replay
both come through :meth:`ReconciliationEngine.reconcile`.

Only a missing contact is reported to the caller (424, so Stripe retries).
Any other failure is logged, emailed to staff and acknowledged with 200: the
money has already moved and a webhook retry cannot fix a bug.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Callable, Dict, Optional

from donorsync.errors import ContactNotReady

from .history import DonationHistory, load_history
from .locks import ContactLocks
from .matcher import DonationMatcher, MatchPlan
from .notify import Notifier, NotifySettings
from .ports import CRMClient, PaymentClient
from .recurrence import RecurrenceInfo, classify_recurrence
from .status import DonationStatus, map_status
from .tiers import TierResult, calculate_tier
from .types import ContactRecord, ReconciliationEvent, format_money

log = logging.getLogger(__name__)

HTTP_OK = 200
HTTP_FAILED_DEPENDENCY = 424

PAYMENT_TYPE = "Credit Card"
DESCRIPTION_MAX = 255


@dataclass(frozen=True)
class ReconciliationContext:
    """State threaded through the stages; each stage returns a new copy."""

    event: ReconciliationEvent
    now: datetime
    contact: ContactRecord
    history: DonationHistory = DonationHistory()
    recurrence: RecurrenceInfo = RecurrenceInfo(None)
    description: str = ""
    tier: Optional[TierResult] = None
    status: DonationStatus = DonationStatus.UNSPECIFIED
    plan: MatchPlan = MatchPlan(())

    @property
    def today(self) -> date:
        return self.now.date()


@dataclass(frozen=True)
class Failure:
    kind: str  # "precondition" | "error"
    message: str


@dataclass(frozen=True)
class Result:
    outcome: Optional[ReconciliationContext] = None
    failure: Optional[Failure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def http_status(self) -> int:
        if self.failure is not None and self.failure.kind == "precondition":
            return HTTP_FAILED_DEPENDENCY
        return HTTP_OK


def add_year(day: date) -> date:
    try:
        return day.replace(year=day.year + 1)
    except ValueError:
        # Feb 29
        return day.replace(year=day.year + 1, day=28)


def describe(recurrence: RecurrenceInfo, amount: Any, now: datetime, site_url: str) -> str:
    text = "{} - {} - {}/{:02d}/{} - Online donation from {}.".format(
        recurrence.label,
        format_money(amount),
        now.month,
        now.day,
        now.strftime("%y"),
        site_url,
    )
    return text[:DESCRIPTION_MAX]


class ReconciliationEngine:
    def __init__(
        self,
        crm: CRMClient,
        payments: PaymentClient,
        *,
        notify_settings: Optional[NotifySettings] = None,
        site_url: str = "",
        clock: Optional[Callable[[], datetime]] = None,
        locks: Optional[ContactLocks] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.crm = crm
        self.payments = payments
        self.site_url = site_url
        self.clock = clock or datetime.now
        self.locks = locks or ContactLocks()
        self.notifier = notifier or Notifier(crm, notify_settings or NotifySettings())
        self.matcher = DonationMatcher(payments)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------
    def reconcile(self, event: ReconciliationEvent) -> int:
        return self.run(event).http_status

    def run(self, event: ReconciliationEvent) -> Result:
        try:
            outcome = self._reconcile(event)
        except ContactNotReady as exc:
            log.info("contact not ready (%s); asking the sender to retry", exc.email)
            return Result(failure=Failure("precondition", str(exc)))
        except Exception as exc:
            log.exception("General failure in reconciliation: %s", event.as_log_dict())
            self.notifier.emergency(event.as_log_dict(), str(exc))
            return Result(failure=Failure("error", str(exc)))

        log.info(
            "Reconciled %s for contact %s: total=%s level=%s status=%r created=%s",
            event.charge_id,
            outcome.contact.id,
            outcome.tier.total_paid_this_year if outcome.tier else None,
            outcome.tier.member_level if outcome.tier else None,
            outcome.status.value,
            outcome.plan.created,
        )
        return Result(outcome=outcome)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------
    def _resolve_email(self, event: ReconciliationEvent) -> Optional[str]:
        if event.email:
            return event.email
        if not event.customer_id:
            return None
        try:
            return self.payments.get_customer_email(event.customer_id)
        except Exception:
            log.exception("Customer email lookup failed for %s", event.customer_id)
            return None

    def _reconcile(self, event: ReconciliationEvent) -> ReconciliationContext:
        email = self._resolve_email(event)
        contact = self.crm.find_contact_by_email(email) if email else None
        if contact is None or contact.id is None:
            raise ContactNotReady(email)

        with self.locks.hold(contact.email or email or ""):
            ctx = ReconciliationContext(event=event, now=self.clock(), contact=contact)
            ctx = self._aggregate(ctx)
            ctx = self._classify(ctx)
            ctx = self._calculate(ctx)
            ctx = self._map_status(ctx)
            ctx = self._update_contact(ctx)
            ctx = self._match(ctx)
            self._write_donations(ctx)

        self.notifier.donor_receipt(ctx)
        self.notifier.donation_alert(ctx)
        return ctx

    def _aggregate(self, ctx: ReconciliationContext) -> ReconciliationContext:
        return replace(ctx, history=load_history(self.crm, ctx.contact.id, ctx.now))

    def _classify(self, ctx: ReconciliationContext) -> ReconciliationContext:
        recurrence = classify_recurrence(ctx.event.invoice)
        description = describe(recurrence, ctx.event.dollar_amount, ctx.now, self.site_url)
        return replace(ctx, recurrence=recurrence, description=description)

    def _calculate(self, ctx: ReconciliationContext) -> ReconciliationContext:
        if ctx.recurrence.recurrence is None:
            log.warning("Recurrence unresolved for %s; projecting as one-time", ctx.event.charge_id)
        tier = calculate_tier(
            ctx.history.valid,
            ctx.event.dollar_amount,
            ctx.recurrence.effective,
            ctx.now.month,
        )
        return replace(ctx, tier=tier)

    def _map_status(self, ctx: ReconciliationContext) -> ReconciliationContext:
        return replace(ctx, status=map_status(ctx.event.event_type, ctx.event.dispute_status))

    def _update_contact(self, ctx: ReconciliationContext) -> ReconciliationContext:
        amount = ctx.event.dollar_amount
        contact = replace(
            ctx.contact,
            paid_this_charge=amount,
            paid=True,
            payment_type=PAYMENT_TYPE,
            donation_each=amount,
            total_paid_this_year=ctx.tier.total_paid_this_year,
            member_type=ctx.tier.member_type,
            member_level=ctx.tier.member_level,
            renewal_date=add_year(ctx.today),
            membership_start_date=ctx.today,
        )
        self.crm.upsert_contact(contact)
        return replace(ctx, contact=contact)

    def _match(self, ctx: ReconciliationContext) -> ReconciliationContext:
        fields: Dict[str, Any] = {
            "amount": ctx.event.dollar_amount,
            "stripe_id": ctx.event.charge_id,
            "description": ctx.description,
            "stripe_status": ctx.status.value,
        }
        plan = self.matcher.plan(
            pending=ctx.history.pending,
            history=ctx.history.all,
            charge_id=ctx.event.charge_id,
            subscription_id=ctx.recurrence.subscription_id,
            line_items=ctx.recurrence.line_items,
            fields=fields,
            today=ctx.today,
            honor_override=ctx.event.honor,
        )
        return replace(ctx, plan=plan)

    def _write_donations(self, ctx: ReconciliationContext) -> None:
        for write in ctx.plan.writes:
            if write.is_create:
                fields = dict(write.fields, contact_id=ctx.contact.id)
                new_id = self.crm.create_donation(fields)
                log.debug("Created donation %s for contact %s", new_id, ctx.contact.id)
            else:
                self.crm.update_donation(write.record_id, write.fields)
                log.debug("Updated donation %s for contact %s", write.record_id, ctx.contact.id)
