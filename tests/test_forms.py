from __future__ import annotations

import pytest

from conftest import checkout_payload as payload

from donorsync.forms import DonationForm, normalize_payload
from donorsync.forms.donation_form import parse_cents
from donorsync.reconcile import Recurrence


def _form(app, data) -> DonationForm:
    with app.test_request_context():
        form = DonationForm(formdata=normalize_payload(data))
        form.validate()
        return form


@pytest.mark.parametrize(
    "raw, cents",
    [
        ("$25", 2500),
        ("25.5", 2550),
        ("25.05", 2505),
        ("1,000.00", 100000),
        ("25.999", 2599),
        ("", 0),
        (None, 0),
        ("abc", 0),
    ],
)
def test_parse_cents(raw, cents) -> None:
    assert parse_cents(raw) == cents


def test_valid_one_time_request(app) -> None:
    form = _form(app, payload())
    assert form.errors == {}

    req = form.to_request()
    assert req.amount_cents == 10000
    assert req.recurrence is Recurrence.ONE_TIME
    assert req.email == "pat@example.org"
    assert req.street == "1 Main St Apt 2"
    assert req.token == "tok_visa"
    assert req.full_name == "Pat Doe"


def test_monthly_and_annual_selection(app) -> None:
    assert _form(app, payload(**{"amount-to-use": "monthly-value"})).recurrence is Recurrence.MONTHLY
    assert _form(app, payload(**{"make-annual": "on"})).recurrence is Recurrence.ANNUAL
    monthly = _form(app, payload(**{"amount-to-use": "monthly-value", "make-annual": "on"}))
    assert monthly.recurrence is Recurrence.MONTHLY
    assert monthly.amount_cents == 1000


def test_amount_below_minimum_is_rejected(app) -> None:
    form = _form(app, payload(**{"annual-value": "0.50"}))
    assert "amount_to_use" in form.errors


def test_missing_and_invalid_fields(app) -> None:
    data = payload(email="not-an-email", **{"amount-to-use": "weekly-value"})
    del data["city"]
    form = _form(app, data)

    assert set(form.errors) >= {"email", "city", "amount_to_use"}


def test_unknown_hear_about_category_is_dropped(app) -> None:
    known = _form(app, payload(hearabout="Friend", **{"hearabout-extra": "Jo"}))
    assert known.hear_about() == ("Friend", "Jo")

    unknown = _form(app, payload(hearabout="Billboard", **{"hearabout-extra": "Route 6"}))
    assert unknown.hear_about() == (None, None)
    assert unknown.to_request().hear_about_extra is None
