from __future__ import annotations

from datetime import date

from conftest import FakeCRM, checkout_payload as payload

from donorsync.errors import PaymentError
from donorsync.forms.donation_form import CheckoutRequest
from donorsync.reconcile import ContactRecord, Notifier, NotifySettings, Recurrence
from donorsync.services import CheckoutService
from donorsync.services.reconciliation import CRM_CLIENT_KEY, PAYMENT_CLIENT_KEY

TODAY = date(2024, 5, 5)


def _request(**kwargs) -> CheckoutRequest:
    params = dict(amount_cents=2500, recurrence=Recurrence.ONE_TIME, token="tok_visa",
                  email="pat@example.org", first_name="Pat", last_name="Doe", city="Omaha", state="NE")
    params.update(kwargs)
    return CheckoutRequest(**params)


def _service(crm, payments) -> CheckoutService:
    return CheckoutService(payments, crm, Notifier(crm, NotifySettings(alert_recipients=("alerts@example.org",))))


def test_new_donor_gets_contact_and_pending_placeholder(crm, payments) -> None:
    payments.charge_result = "ch_abc"
    receipt = _service(crm, payments).begin(_request(honoree="Grandma"), TODAY)

    assert receipt.crm_ok
    assert receipt.stripe_id == "ch_abc"
    assert receipt.amount_string == "$25.00"
    assert receipt.recurrence == "One time"

    (placeholder,) = crm.created
    assert placeholder["contact_id"] == receipt.contact_id
    assert placeholder["amount"] is None
    assert placeholder["stripe_status"] == "Pending"
    assert placeholder["stripe_id"] == "ch_abc"
    assert placeholder["in_honor_of"] == "Grandma"
    assert placeholder["donation_date"] == TODAY
    assert crm.contacts["pat@example.org"].first_name == "Pat"


def test_returning_donor_keeps_membership_state(crm, payments) -> None:
    crm.add_contact(ContactRecord(id=5, email="pat@example.org", member_level="Sponsor", paid=True))

    receipt = _service(crm, payments).begin(_request(recurrence=Recurrence.MONTHLY), TODAY)

    assert receipt.contact_id == 5
    contact = crm.upserts[-1]
    assert contact.member_level == "Sponsor"
    assert contact.paid is True
    assert payments.charges[0][3] is Recurrence.MONTHLY


def test_crm_failure_after_charge_alerts_staff(crm, payments) -> None:
    crm.fail_upsert = RuntimeError("CRM is down")

    receipt = _service(crm, payments).begin(_request(), TODAY)

    assert not receipt.crm_ok
    assert receipt.stripe_id == "ch_new"
    (subject, body, _, _), = crm.plain
    assert subject == "Donation reconciliation failure"
    assert "ch_new" in body


def test_donate_endpoint_charges_and_records(app, client, payments) -> None:
    crm = FakeCRM()
    app.extensions[CRM_CLIENT_KEY] = crm
    app.extensions[PAYMENT_CLIENT_KEY] = payments

    resp = client.post("/donate", data=payload())

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["ok"] is True
    assert body["stripe_id"] == "ch_new"
    assert body["amount"] == "$100.00"
    assert payments.charges[0][0] == 10000
    assert len(crm.created) == 1


def test_donate_endpoint_warns_donor_when_crm_write_fails(app, client, payments) -> None:
    crm = FakeCRM()
    crm.fail_upsert = RuntimeError("CRM is down")
    app.extensions[CRM_CLIENT_KEY] = crm
    app.extensions[PAYMENT_CLIENT_KEY] = payments

    resp = client.post("/donate", json=payload())

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["ok"] is True
    assert body["warning"] is True
    assert body["message"] != "Thank you for your donation!"
    assert "hello@example.org" in body["message"]
    assert body["contact_email"] == "hello@example.org"
    assert body["stripe_id"] == "ch_new"
    assert crm.plain[0][0] == "Donation reconciliation failure"


def test_donate_endpoint_rejects_bad_form(app, client, payments) -> None:
    app.extensions[PAYMENT_CLIENT_KEY] = payments

    resp = client.post("/donate", json=payload(email=""))

    assert resp.status_code == 400
    assert "email" in resp.get_json()["error"]["fields"]
    assert payments.charges == []


def test_donate_endpoint_reports_declined_card(app, client, payments) -> None:
    app.extensions[CRM_CLIENT_KEY] = FakeCRM()
    app.extensions[PAYMENT_CLIENT_KEY] = payments
    payments.charge_error = PaymentError("Your card was declined.")

    resp = client.post("/donate", json=payload())

    assert resp.status_code == 402
    assert resp.get_json()["message"] == "Your card was declined."
