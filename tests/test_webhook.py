from __future__ import annotations

from datetime import date

import pytest
from conftest import fixed_clock, subscription_invoice
from sqlalchemy import select

from donorsync.extensions import db
from donorsync.models import StripeEvent
from donorsync.reconcile import ContactRecord, ReconciliationEngine
from donorsync.services import event_from_payload
from donorsync.services.reconciliation import ENGINE_KEY, PAYMENT_CLIENT_KEY


def charge_event(event_id="evt_1", etype="charge.succeeded", **obj):
    data = {"id": "ch_abc", "object": "charge", "amount": 5000, "receipt_email": "pat@example.org",
            "customer": None, "invoice": None}
    data.update(obj)
    return {"id": event_id, "type": etype, "livemode": False, "data": {"object": data}}


@pytest.fixture
def wired(app, crm, payments):
    app.extensions[PAYMENT_CLIENT_KEY] = payments
    app.extensions[ENGINE_KEY] = ReconciliationEngine(crm, payments, clock=fixed_clock(2024, 5, 5, 12, 0))
    return crm


def _ledger(event_id):
    return db.session.execute(select(StripeEvent).where(StripeEvent.event_id == event_id)).scalar_one()


def test_charge_succeeded_is_reconciled_and_logged(client, wired) -> None:
    wired.add_contact(ContactRecord(id=1, email="pat@example.org"))
    placeholder = wired.add_donation(1, stripe_status="Pending", stripe_id="ch_abc", donation_date=date(2024, 5, 5))

    resp = client.post("/stripe/webhook", json=charge_event())

    assert resp.status_code == 200
    assert wired.donations[placeholder]["stripe_status"] == "Success"
    row = _ledger("evt_1")
    assert row.type == "charge.succeeded"
    assert row.object_id == "ch_abc"
    assert row.status_code == 200


def test_duplicate_delivery_is_acknowledged_once(client, wired) -> None:
    wired.add_contact(ContactRecord(id=1, email="pat@example.org"))

    assert client.post("/stripe/webhook", json=charge_event()).status_code == 200
    assert client.post("/stripe/webhook", json=charge_event()).status_code == 200

    assert len(wired.created) == 1
    assert len(wired.upserts) == 1


def test_missing_contact_asks_stripe_to_retry(client, wired) -> None:
    assert client.post("/stripe/webhook", json=charge_event()).status_code == 424
    assert _ledger("evt_1").status_code == 424
    assert wired.writes == 0

    wired.add_contact(ContactRecord(id=1, email="pat@example.org"))
    assert client.post("/stripe/webhook", json=charge_event()).status_code == 200
    assert _ledger("evt_1").status_code == 200


def test_other_event_types_are_only_logged(client, wired) -> None:
    resp = client.post("/stripe/webhook", json=charge_event("evt_2", "customer.created"))

    assert resp.status_code == 200
    assert _ledger("evt_2").status_code is None
    assert wired.writes == 0


def test_unreadable_payload_is_rejected(client, wired) -> None:
    resp = client.post("/stripe/webhook", data=b"{not json", content_type="application/json")
    assert resp.status_code == 400

    resp = client.post("/stripe/webhook", json={"type": "charge.succeeded"})
    assert resp.status_code == 400


def test_dispute_events_carry_charge_and_outcome(payments) -> None:
    payload = {
        "id": "evt_d",
        "type": "charge.dispute.closed",
        "data": {"object": {"id": "dp_1", "object": "dispute", "charge": "ch_1", "status": "lost", "amount": 5000}},
    }

    event = event_from_payload(payload, payments)

    assert event.charge_id == "ch_1"
    assert event.dispute_status == "lost"
    assert event.email is None
    assert event.amount_cents == 5000


def test_dispute_reads_donor_from_disputed_charge(payments) -> None:
    payments.stored_charges["ch_1"] = {"id": "ch_1", "receipt_email": "Pat@Example.org", "customer": "cus_7",
                                       "invoice": "in_1"}
    payments.invoices["in_1"] = subscription_invoice("sub_1")
    payload = {
        "id": "evt_d",
        "type": "charge.dispute.created",
        "data": {"object": {"id": "dp_1", "object": "dispute", "charge": "ch_1", "status": "needs_response",
                            "amount": 5000}},
    }

    event = event_from_payload(payload, payments)

    assert event.charge_id == "ch_1"
    assert event.email == "pat@example.org"
    assert event.customer_id == "cus_7"
    assert event.invoice["id"] == "in_1"


def test_dispute_webhook_marks_existing_donation(app, client, wired, payments) -> None:
    app.config["WEBHOOK_RECONCILE_EVENTS"] = ("charge.succeeded", "charge.dispute.created")
    wired.add_contact(ContactRecord(id=7, email="pat@example.org"))
    donation = wired.add_donation(7, stripe_status="Success", stripe_id="ch_1", amount="50.00",
                                  donation_date=date(2024, 4, 1))
    payments.stored_charges["ch_1"] = {"id": "ch_1", "receipt_email": "pat@example.org"}
    payload = {
        "id": "evt_dispute",
        "type": "charge.dispute.created",
        "livemode": False,
        "data": {"object": {"id": "dp_1", "object": "dispute", "charge": "ch_1", "status": "needs_response",
                            "amount": 5000}},
    }

    resp = client.post("/stripe/webhook", json=payload)

    assert resp.status_code == 200
    assert [u[0] for u in wired.updated] == [donation]
    assert wired.donations[donation]["stripe_status"] == "Disputed"
    assert wired.created == []
    assert _ledger("evt_dispute").object_id == "dp_1"


def test_invoice_is_expanded_and_description_email_used(payments) -> None:
    payments.invoices["in_1"] = subscription_invoice("sub_1")
    payload = charge_event(receipt_email=None, description="Pat@Example.org", invoice="in_1", customer="cus_1")

    event = event_from_payload(payload, payments)

    assert event.email == "pat@example.org"
    assert event.customer_id == "cus_1"
    assert event.invoice["id"] == "in_1"
    assert event.charge_id == "ch_abc"
