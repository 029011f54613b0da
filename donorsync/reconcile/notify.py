"""Donor receipts, staff alerts and emergency emails."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from .ports import CRMClient
from .recurrence import Recurrence
from .types import format_money

log = logging.getLogger(__name__)

ALERT_SUBJECT = "New Donation Alert"
EMERGENCY_SUBJECT = "Donation reconciliation failure"


@dataclass(frozen=True)
class NotifySettings:
    templates: Mapping[Recurrence, str] = field(default_factory=dict)
    alert_recipients: Tuple[str, ...] = ()
    alert_sender_name: str = "Spark Donations"
    crm_record_url: str = ""

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "NotifySettings":
        recipients = config.get("ALERT_EMAIL_LIST") or ()
        if isinstance(recipients, str):
            recipients = [r.strip() for r in recipients.split(",")]
        return cls(
            templates={
                Recurrence.ONE_TIME: str(config.get("DONOR_SINGLE_TEMPLATE") or "donor_single"),
                Recurrence.MONTHLY: str(config.get("DONOR_MONTHLY_TEMPLATE") or "donor_monthly"),
                Recurrence.ANNUAL: str(config.get("DONOR_ANNUAL_TEMPLATE") or "donor_annual"),
            },
            alert_recipients=tuple(r for r in recipients if r),
            alert_sender_name=str(config.get("ALERT_SENDER_NAME") or "Spark Donations"),
            crm_record_url=str(config.get("CRM_RECORD_URL") or "").rstrip("/"),
        )


def alert_body(ctx: Any, crm_record_url: str) -> str:
    contact = ctx.contact
    amount = format_money(ctx.event.dollar_amount)
    return "\n".join(
        [
            "A donation has been made!",
            "",
            f"Name: {contact.full_name}",
            f"Amount: {amount}",
            f"Recurrence: {ctx.recurrence.label}",
            f"Email: {contact.email}",
            f"Location: {contact.mailing_city}, {contact.mailing_state}",
            ctx.plan.honor_line,
            f"CRM Link: {crm_record_url}/{contact.id}",
        ]
    )


class Notifier:
    """Every send is best-effort: failures are logged and reported as False."""

    def __init__(self, crm: CRMClient, settings: NotifySettings):
        self.crm = crm
        self.settings = settings

    def donor_receipt(self, ctx: Any) -> bool:
        template = self.settings.templates.get(ctx.recurrence.effective)
        if not template:
            log.warning("No donor template for %s", ctx.recurrence.effective)
            return False
        try:
            sent = self.crm.send_templated_email(template, ctx.contact.id)
        except Exception:
            log.exception("Donor email failure for contact %s", ctx.contact.id)
            return False
        if not sent:
            log.warning("Donor email failure for contact %s", ctx.contact.id)
        return bool(sent)

    def donation_alert(self, ctx: Any) -> bool:
        try:
            sent = self.crm.send_plain_email(
                ALERT_SUBJECT,
                alert_body(ctx, self.settings.crm_record_url),
                self.settings.alert_recipients,
                sender_name=self.settings.alert_sender_name,
            )
        except Exception:
            log.exception("Alert email failure")
            return False
        if not sent:
            log.warning("Alert email failure")
        return bool(sent)

    def emergency(self, details: Dict[str, Any], message: str) -> bool:
        body = "\n".join(
            [
                "Donation processing failed after the payment was taken.",
                "Please reconcile this donor by hand.",
                "",
                f"Error: {message}",
                "",
                json.dumps(details, indent=2, sort_keys=True, default=str),
            ]
        )
        try:
            return bool(
                self.crm.send_plain_email(
                    EMERGENCY_SUBJECT,
                    body,
                    self.settings.alert_recipients,
                    sender_name=self.settings.alert_sender_name,
                )
            )
        except Exception:
            log.exception("Emergency email could not be sent")
            return False
