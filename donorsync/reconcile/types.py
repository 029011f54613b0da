"""Value objects passed between the reconciliation stages.

Everything here is immutable; stages hand back new values with
:func:`dataclasses.replace` instead of mutating shared state.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

CENT = Decimal("0.01")


def to_decimal(value: Any) -> Optional[Decimal]:
    """Coerce a CRM amount to Decimal; None for anything non-numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        d = value
    elif isinstance(value, (int, float)):
        d = Decimal(str(value))
    elif isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        try:
            d = Decimal(s)
        except InvalidOperation:
            return None
    else:
        return None
    if not d.is_finite():
        return None
    return d


def to_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def dollars_from_cents(cents: int) -> Decimal:
    return (Decimal(int(cents)) / Decimal(100)).quantize(CENT)


def format_money(amount: Decimal) -> str:
    return f"${amount:,.2f}"


@dataclass(frozen=True)
class ContactRecord:
    """CRM contact as seen by the engine."""

    id: Optional[int]
    email: str
    first_name: str = ""
    last_name: str = ""
    mailing_city: str = ""
    mailing_state: str = ""

    paid_this_charge: Optional[Decimal] = None
    paid: bool = False
    payment_type: Optional[str] = None
    donation_each: Optional[Decimal] = None
    total_paid_this_year: Optional[Decimal] = None
    member_level: Optional[str] = None
    member_type: Optional[str] = None
    renewal_date: Optional[date] = None
    membership_start_date: Optional[date] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class DonationRecord:
    """A donation line item under a contact.

    ``amount`` and ``donation_date`` are kept as the CRM returned them; the
    aggregation step decides what is usable.
    """

    id: Optional[int]
    amount: Any = None
    donation_date: Any = None
    stripe_status: Optional[str] = None
    stripe_id: Optional[str] = None
    in_honor_of: Optional[str] = None
    description: Optional[str] = None

    @property
    def status(self) -> str:
        return (self.stripe_status or "").strip()

    @property
    def honoree(self) -> str:
        return (self.in_honor_of or "").strip()

    @property
    def external_id(self) -> str:
        return (self.stripe_id or "").strip()


@dataclass(frozen=True)
class ReconciliationEvent:
    """One payment occurrence to apply to a contact."""

    amount_cents: int
    event_type: str
    charge_id: str
    email: Optional[str] = None
    customer_id: Optional[str] = None
    invoice: Optional[Dict[str, Any]] = None
    honor: str = ""
    dispute_status: Optional[str] = None

    @property
    def dollar_amount(self) -> Decimal:
        return dollars_from_cents(self.amount_cents)

    def as_log_dict(self) -> Dict[str, Any]:
        return {
            "type": self.event_type,
            "charge_id": self.charge_id,
            "email": self.email,
            "customer": self.customer_id,
            "amount_cents": self.amount_cents,
            "invoice": (self.invoice or {}).get("id"),
        }
