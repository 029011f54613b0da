"""Recurrence classification from Stripe invoice line items."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

log = logging.getLogger(__name__)


class Recurrence(str, Enum):
    ONE_TIME = "One time"
    MONTHLY = "Monthly"
    ANNUAL = "Annual"

    @property
    def label(self) -> str:
        return self.value


_BY_INTERVAL = {
    "year": Recurrence.ANNUAL,
    "month": Recurrence.MONTHLY,
}


@dataclass(frozen=True)
class RecurrenceInfo:
    # None when the subscription interval was not recognised
    recurrence: Optional[Recurrence]
    subscription_id: Optional[str] = None
    line_items: Tuple[Dict[str, Any], ...] = ()

    @property
    def effective(self) -> Recurrence:
        return self.recurrence or Recurrence.ONE_TIME

    @property
    def label(self) -> str:
        return self.recurrence.label if self.recurrence else "Recurring"


def invoice_line_items(invoice: Optional[Dict[str, Any]]) -> Tuple[Dict[str, Any], ...]:
    if not isinstance(invoice, dict):
        return ()
    lines = invoice.get("lines") or {}
    data = lines.get("data") if isinstance(lines, dict) else lines
    if not isinstance(data, (list, tuple)):
        return ()
    return tuple(li for li in data if isinstance(li, dict))


def _dig(value: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def subscription_item_details(item: Dict[str, Any]) -> Dict[str, Any]:
    """Newer API versions nest subscription data under parent.subscription_item_details."""
    details = _dig(item, "parent", "subscription_item_details")
    return details if isinstance(details, dict) else {}


def is_subscription_item(item: Dict[str, Any]) -> bool:
    if str(item.get("type") or "") == "subscription":
        return True
    if str(_dig(item, "parent", "type") or "") == "subscription_item_details":
        return True
    return bool(subscription_item_details(item))


def _price_interval(price: Any) -> Any:
    return _dig(price, "recurring", "interval")


def _interval(item: Dict[str, Any]) -> str:
    interval = _dig(item, "plan", "interval")
    if not interval:
        interval = _price_interval(item.get("price"))
    if not interval:
        # only present when the price was expanded on the invoice
        interval = _price_interval(_dig(item, "pricing", "price_details", "price"))
    return str(interval or "").strip().lower()


def line_item_subscription(item: Dict[str, Any]) -> Optional[str]:
    sub = item.get("subscription") or subscription_item_details(item).get("subscription")
    if isinstance(sub, dict):
        sub = sub.get("id")
    return str(sub or item.get("id") or "") or None


def classify_recurrence(invoice: Optional[Dict[str, Any]]) -> RecurrenceInfo:
    """
    No invoice means a one-time donation. Otherwise the first subscription
    line item is authoritative: its interval gives the recurrence and its id
    the active subscription. Later subscription items are ignored.
    """
    if invoice is None:
        return RecurrenceInfo(Recurrence.ONE_TIME)

    items = invoice_line_items(invoice)
    for item in items:
        if not is_subscription_item(item):
            continue

        interval = _interval(item)
        recurrence = _BY_INTERVAL.get(interval)
        if recurrence is None:
            log.warning("Unrecognised subscription interval %r on invoice %s", interval, invoice.get("id"))
        return RecurrenceInfo(recurrence, line_item_subscription(item), items)

    return RecurrenceInfo(Recurrence.ONE_TIME, None, items)
