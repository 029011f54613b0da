"""
Checkout donation form.

The public form posts dashed field names (``first-name``, ``amount-to-use``);
they are normalised to underscores before binding.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import StringField
from wtforms.validators import AnyOf, DataRequired, Email, Length, Optional as OptionalValue, ValidationError

from donorsync.reconcile.recurrence import Recurrence

HEAR_ABOUT_CATEGORIES = (
    "Renewing Membership",
    "Friend",
    "Website",
    "Search",
    "Event",
)

AMOUNT_FIELDS = ("annual-value", "monthly-value")


def parse_cents(value: Any) -> int:
    """
    "$25" -> 2500, "25.5" -> 2550, "25.05" -> 2505. Anything but digits and
    dots is ignored; extra fraction digits beyond cents are dropped.
    """
    cleaned = re.sub(r"[^\d.]", "", str(value or ""))
    if not cleaned:
        return 0
    whole, dot, fraction = cleaned.partition(".")
    cents = 100 * int(whole or "0")
    fraction = re.sub(r"\D", "", fraction)
    if dot and fraction:
        if len(fraction) == 1:
            cents += 10 * int(fraction)
        else:
            cents += int(fraction[:2])
    return cents


def normalize_payload(data: Mapping[str, Any]) -> MultiDict:
    return MultiDict({str(k).replace("-", "_"): v for k, v in (data or {}).items()})


@dataclass(frozen=True)
class CheckoutRequest:
    amount_cents: int
    recurrence: Recurrence
    token: str
    email: str
    first_name: str
    last_name: str
    phone: str = ""
    street: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""
    company: str = ""
    birthday_month: str = ""
    birthday_year: str = ""
    gender: str = ""
    hear_about: Optional[str] = None
    hear_about_extra: Optional[str] = None
    honoree: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


def _required(label: str):
    return DataRequired(message=f"{label} is required.")


class DonationForm(FlaskForm):
    class Meta:
        csrf = False

    annual_value = StringField("Annual amount", validators=[_required("Annual amount")])
    monthly_value = StringField("Monthly amount", validators=[_required("Monthly amount")])
    amount_to_use = StringField(
        "Amount to use",
        validators=[_required("Amount to use"), AnyOf(AMOUNT_FIELDS, message="Unknown amount field.")],
    )
    make_annual = StringField("Make annual", validators=[OptionalValue()])

    first_name = StringField("First name", validators=[_required("First name"), Length(max=80)])
    last_name = StringField("Last name", validators=[_required("Last name"), Length(max=80)])
    email = StringField("Email", validators=[_required("Email"), Email(message="Invalid email address.")])
    tel = StringField("Phone", validators=[_required("Phone"), Length(max=40)])
    address1 = StringField("Address", validators=[_required("Address")])
    address2 = StringField("Address line 2", validators=[OptionalValue()])
    city = StringField("City", validators=[_required("City")])
    state = StringField("State", validators=[_required("State")])
    zip = StringField("Zip", validators=[_required("Zip")])
    country = StringField("Country", validators=[OptionalValue()])
    company = StringField("Company", validators=[OptionalValue()])

    birthday_month = StringField("Birthday month", validators=[OptionalValue()])
    birthday_year = StringField("Birthday year", validators=[OptionalValue(), Length(max=4)])
    gender = StringField("Gender", validators=[OptionalValue()])
    hearabout = StringField("How did you hear about us", validators=[OptionalValue()])
    hearabout_extra = StringField("Details", validators=[OptionalValue()])
    inhonorof = StringField("In honor of", validators=[OptionalValue(), Length(max=255)])

    stripe_token = StringField("Card token", validators=[_required("Card token")])

    min_amount_cents = 51

    def validate_amount_to_use(self, field) -> None:
        key = (field.data or "").replace("-", "_")
        source = getattr(self, key, None)
        if source is None:
            return
        if parse_cents(source.data) < self.min_amount_cents:
            raise ValidationError("Invalid request. Donation amount too small.")

    @property
    def recurrence(self) -> Recurrence:
        if "monthly" in (self.amount_to_use.data or ""):
            return Recurrence.MONTHLY
        if (self.make_annual.data or "").strip().lower() == "on":
            return Recurrence.ANNUAL
        return Recurrence.ONE_TIME

    @property
    def amount_cents(self) -> int:
        key = (self.amount_to_use.data or "").replace("-", "_")
        return parse_cents(getattr(self, key).data)

    def hear_about(self) -> tuple:
        """Unknown categories are dropped together with their free text."""
        category = (self.hearabout.data or "").strip()
        if category not in HEAR_ABOUT_CATEGORIES:
            return None, None
        return category, (self.hearabout_extra.data or "").strip() or None

    def to_request(self) -> CheckoutRequest:
        street = " ".join(p for p in ((self.address1.data or "").strip(), (self.address2.data or "").strip()) if p)
        hear_about, hear_about_extra = self.hear_about()
        return CheckoutRequest(
            amount_cents=self.amount_cents,
            recurrence=self.recurrence,
            token=(self.stripe_token.data or "").strip(),
            email=(self.email.data or "").strip().lower(),
            first_name=(self.first_name.data or "").strip(),
            last_name=(self.last_name.data or "").strip(),
            phone=(self.tel.data or "").strip(),
            street=street,
            city=(self.city.data or "").strip(),
            state=(self.state.data or "").strip(),
            postal_code=(self.zip.data or "").strip(),
            country=(self.country.data or "").strip(),
            company=(self.company.data or "").strip(),
            birthday_month=(self.birthday_month.data or "").strip(),
            birthday_year=(self.birthday_year.data or "").strip(),
            gender=(self.gender.data or "").strip(),
            hear_about=hear_about,
            hear_about_extra=hear_about_extra,
            honoree=(self.inhonorof.data or "").strip(),
        )
