"""Collaborator contracts the engine depends on.

Production implementations live in :mod:`donorsync.services`; tests pass
in-memory fakes.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .types import ContactRecord, DonationRecord


class SubscriptionResolver(Protocol):
    def resolve_subscription_for_charge(self, charge_id: str) -> Optional[str]: ...


class PaymentClient(SubscriptionResolver, Protocol):
    def charge(self, amount_cents: int, token: str, customer: Any, recurrence: Any = None) -> str: ...

    def get_charge(self, charge_id: Optional[str]) -> Optional[Dict[str, Any]]: ...

    def get_invoice(self, invoice_id: Optional[str]) -> Optional[Dict[str, Any]]: ...

    def get_customer_email(self, customer_id: Optional[str]) -> Optional[str]: ...


class CRMClient(Protocol):
    def find_contact_by_email(self, email: str) -> Optional[ContactRecord]: ...

    def query_donations_for_contact(self, contact_id: int, since: Optional[date] = None) -> List[DonationRecord]: ...

    def upsert_contact(self, contact: ContactRecord, **identity: Any) -> int: ...

    def create_donation(self, fields: Dict[str, Any]) -> int: ...

    def update_donation(self, donation_id: int, fields: Dict[str, Any]) -> None: ...

    def send_templated_email(self, template_id: str, contact_id: int) -> bool: ...

    def send_plain_email(
        self, subject: str, body: str, recipients: Sequence[str], sender_name: Optional[str] = None
    ) -> bool: ...
