from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytest

from donorsync import create_app
from donorsync.config import TestingConfig
from donorsync.extensions import db
from donorsync.reconcile.types import ContactRecord, DonationRecord


class FakeCRM:
    """In-memory CRM that records every write and email."""

    def __init__(self) -> None:
        self.contacts: Dict[str, ContactRecord] = {}
        self.donations: Dict[int, Dict[str, Any]] = {}
        self.upserts: List[ContactRecord] = []
        self.created: List[Dict[str, Any]] = []
        self.updated: List[tuple] = []
        self.templated: List[tuple] = []
        self.plain: List[tuple] = []
        self.fail_history = False
        self.fail_upsert: Optional[Exception] = None
        self._next_id = 100

    # -- seeding --
    def add_contact(self, contact: ContactRecord) -> ContactRecord:
        self.contacts[contact.email] = contact
        return contact

    def add_donation(self, contact_id: int, **fields: Any) -> int:
        self._next_id += 1
        self.donations[self._next_id] = dict(fields, contact_id=contact_id)
        return self._next_id

    @property
    def writes(self) -> int:
        return len(self.upserts) + len(self.created) + len(self.updated)

    @property
    def emails(self) -> int:
        return len(self.templated) + len(self.plain)

    # -- CRMClient --
    def find_contact_by_email(self, email: str) -> Optional[ContactRecord]:
        return self.contacts.get(email)

    def query_donations_for_contact(self, contact_id: int, since=None) -> List[DonationRecord]:
        if self.fail_history:
            raise RuntimeError("query timed out")
        records = []
        for donation_id, fields in sorted(self.donations.items()):
            if fields.get("contact_id") != contact_id:
                continue
            records.append(
                DonationRecord(
                    id=donation_id,
                    amount=fields.get("amount"),
                    donation_date=fields.get("donation_date"),
                    stripe_status=fields.get("stripe_status"),
                    stripe_id=fields.get("stripe_id"),
                    in_honor_of=fields.get("in_honor_of"),
                    description=fields.get("description"),
                )
            )
        return records

    def upsert_contact(self, contact: ContactRecord, **identity: Any) -> int:
        if self.fail_upsert is not None:
            raise self.fail_upsert
        if contact.id is None:
            self._next_id += 1
            contact = replace(contact, id=self._next_id)
        self.upserts.append(contact)
        self.contacts[contact.email] = contact
        return contact.id

    def create_donation(self, fields: Dict[str, Any]) -> int:
        self._next_id += 1
        self.created.append(dict(fields))
        self.donations[self._next_id] = dict(fields)
        return self._next_id

    def update_donation(self, donation_id: int, fields: Dict[str, Any]) -> None:
        self.updated.append((donation_id, dict(fields)))
        self.donations[donation_id].update(fields)

    def send_templated_email(self, template_id: str, contact_id: int) -> bool:
        self.templated.append((template_id, contact_id))
        return True

    def send_plain_email(self, subject, body, recipients, sender_name=None) -> bool:
        self.plain.append((subject, body, tuple(recipients), sender_name))
        return True


class FakePayments:
    """Payment client double; charge-to-subscription links are seeded by tests."""

    def __init__(self) -> None:
        self.subscriptions: Dict[str, Optional[str]] = {}
        self.invoices: Dict[str, Dict[str, Any]] = {}
        self.customer_emails: Dict[str, str] = {}
        self.stored_charges: Dict[str, Dict[str, Any]] = {}
        self.resolved: List[str] = []
        self.charges: List[tuple] = []
        self.charge_result = "ch_new"
        self.charge_error: Optional[Exception] = None

    def resolve_subscription_for_charge(self, charge_id: str) -> Optional[str]:
        self.resolved.append(charge_id)
        value = self.subscriptions.get(charge_id)
        if isinstance(value, Exception):
            raise value
        return value

    def charge(self, amount_cents, token, customer, recurrence=None) -> str:
        if self.charge_error is not None:
            raise self.charge_error
        self.charges.append((amount_cents, token, customer, recurrence))
        return self.charge_result

    def get_charge(self, charge_id):
        return self.stored_charges.get(charge_id) if charge_id else None

    def get_invoice(self, invoice_id):
        return self.invoices.get(invoice_id) if invoice_id else None

    def get_customer_email(self, customer_id):
        return self.customer_emails.get(customer_id) if customer_id else None


def fixed_clock(*args: int):
    moment = datetime(*args)

    def _now() -> datetime:
        return moment

    return _now


def subscription_invoice(sub_id: str, interval: str = "month", invoice_id: str = "in_1") -> Dict[str, Any]:
    return {
        "id": invoice_id,
        "lines": {
            "data": [
                {"id": "il_1", "type": "subscription", "subscription": sub_id, "plan": {"interval": interval}},
            ]
        },
    }


@pytest.fixture
def crm() -> FakeCRM:
    return FakeCRM()


@pytest.fixture
def payments() -> FakePayments:
    return FakePayments()


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def checkout_payload(**overrides):
    data = {
        "annual-value": "100",
        "monthly-value": "10",
        "amount-to-use": "annual-value",
        "first-name": "Pat",
        "last-name": "Doe",
        "email": "Pat@Example.org",
        "tel": "555-0101",
        "address1": "1 Main St",
        "address2": "Apt 2",
        "city": "Omaha",
        "state": "NE",
        "zip": "68102",
        "stripe-token": "tok_visa",
    }
    data.update(overrides)
    return data
