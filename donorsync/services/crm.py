"""
SQLAlchemy-backed CRM: contacts, their donation line items, and the
transactional emails sent on their behalf (Flask-Mail).
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from flask import current_app, render_template
from jinja2 import TemplateNotFound
from sqlalchemy import func, select

from donorsync.extensions import db, send_mail, tx_commit
from donorsync.models import Contact, Donation
from donorsync.reconcile.types import ContactRecord, DonationRecord

log = logging.getLogger(__name__)

_STATE_FIELDS = (
    "paid_this_charge",
    "paid",
    "payment_type",
    "donation_each",
    "total_paid_this_year",
    "member_level",
    "member_type",
    "renewal_date",
    "membership_start_date",
)

_IDENTITY_FIELDS = (
    "first_name",
    "last_name",
    "phone",
    "company",
    "mailing_street",
    "mailing_city",
    "mailing_state",
    "mailing_postal_code",
    "mailing_country",
    "birthday_month",
    "birthday_year",
    "gender",
    "hear_about",
    "hear_about_extra",
)

_DONATION_FIELDS = frozenset(
    {
        "contact_id",
        "type",
        "amount",
        "donation_date",
        "stripe_status",
        "stripe_id",
        "in_honor_of",
        "description",
    }
)


def contact_record(row: Contact) -> ContactRecord:
    return ContactRecord(
        id=row.id,
        email=row.email,
        first_name=row.first_name or "",
        last_name=row.last_name or "",
        mailing_city=row.mailing_city or "",
        mailing_state=row.mailing_state or "",
        **{name: getattr(row, name) for name in _STATE_FIELDS},
    )


def donation_record(row: Donation) -> DonationRecord:
    return DonationRecord(
        id=row.id,
        amount=row.amount,
        donation_date=row.donation_date,
        stripe_status=row.stripe_status,
        stripe_id=row.stripe_id,
        in_honor_of=row.in_honor_of,
        description=row.description,
    )


def _split_subject(rendered: str, fallback: str) -> Tuple[str, str]:
    """Templates may start with a ``Subject:`` line."""
    first, _, rest = rendered.lstrip().partition("\n")
    if first.lower().startswith("subject:"):
        return first.split(":", 1)[1].strip() or fallback, rest.lstrip("\n")
    return fallback, rendered


class SqlCRMClient:
    def __init__(
        self,
        *,
        sender_name: str = "",
        reply_to: Optional[str] = None,
        default_sender: Optional[str] = None,
    ):
        self.sender_name = sender_name
        self.reply_to = reply_to or None
        self.default_sender = default_sender

    @classmethod
    def from_app(cls, app=None) -> "SqlCRMClient":
        cfg = (app or current_app).config
        return cls(
            sender_name=str(cfg.get("SENDER_DISPLAY_NAME") or ""),
            reply_to=cfg.get("EMAIL_REPLY_TO") or None,
            default_sender=cfg.get("MAIL_DEFAULT_SENDER") or None,
        )

    # ------------------------------------------------------------------
    # Contacts
    # ------------------------------------------------------------------
    def _contact_row(self, email: str) -> Optional[Contact]:
        key = (email or "").strip().lower()
        if not key:
            return None
        return db.session.execute(
            select(Contact).where(func.lower(Contact.email) == key)
        ).scalar_one_or_none()

    def find_contact_by_email(self, email: str) -> Optional[ContactRecord]:
        row = self._contact_row(email)
        return contact_record(row) if row else None

    def upsert_contact(self, contact: ContactRecord, **identity: Any) -> int:
        """
        Write a contact back. Engine-owned state always comes from ``contact``;
        identity values are only overwritten when a non-empty value is given.
        """
        row = db.session.get(Contact, contact.id) if contact.id is not None else None
        if row is None:
            row = self._contact_row(contact.email)
        if row is None:
            row = Contact(email=contact.email.strip().lower())
            db.session.add(row)

        names = {"first_name": contact.first_name, "last_name": contact.last_name,
                 "mailing_city": contact.mailing_city, "mailing_state": contact.mailing_state}
        names.update(identity)
        for name in _IDENTITY_FIELDS:
            value = names.get(name)
            if value not in (None, ""):
                setattr(row, name, value)

        for name in _STATE_FIELDS:
            setattr(row, name, getattr(contact, name))

        tx_commit()
        return int(row.id)

    # ------------------------------------------------------------------
    # Donations
    # ------------------------------------------------------------------
    def query_donations_for_contact(self, contact_id: int, since: Optional[date] = None) -> List[DonationRecord]:
        stmt = select(Donation).where(Donation.contact_id == contact_id)
        if since is not None:
            stmt = stmt.where(Donation.donation_date >= since)
        rows = db.session.execute(stmt.order_by(Donation.id)).scalars().all()
        return [donation_record(r) for r in rows]

    def create_donation(self, fields: Dict[str, Any]) -> int:
        unknown = set(fields) - _DONATION_FIELDS
        if unknown:
            raise ValueError(f"Unknown donation fields: {', '.join(sorted(unknown))}")
        row = Donation(**fields)
        db.session.add(row)
        tx_commit()
        return int(row.id)

    def update_donation(self, donation_id: int, fields: Dict[str, Any]) -> None:
        row = db.session.get(Donation, donation_id)
        if row is None:
            raise LookupError(f"Donation {donation_id} not found")
        for name, value in fields.items():
            if name not in _DONATION_FIELDS:
                raise ValueError(f"Unknown donation field: {name}")
            setattr(row, name, value)
        tx_commit()

    # ------------------------------------------------------------------
    # Email
    # ------------------------------------------------------------------
    def _sender(self, name: Optional[str]) -> Any:
        if name and self.default_sender:
            return (name, self.default_sender)
        return self.default_sender

    def send_templated_email(self, template_id: str, contact_id: int) -> bool:
        row = db.session.get(Contact, contact_id)
        if row is None or not row.email:
            log.warning("Templated email %s skipped: contact %s has no email", template_id, contact_id)
            return False
        try:
            rendered = render_template(f"email/{template_id}.txt", contact=row)
        except TemplateNotFound:
            log.error("Email template %s not found", template_id)
            return False

        subject, body = _split_subject(rendered, "Thank you for your donation")
        return send_mail(
            subject,
            [row.email],
            body=body,
            sender=self._sender(self.sender_name),
            reply_to=self.reply_to,
        )

    def send_plain_email(
        self,
        subject: str,
        body: str,
        recipients: Sequence[str],
        sender_name: Optional[str] = None,
    ) -> bool:
        return send_mail(subject, list(recipients), body=body, sender=self._sender(sender_name))
