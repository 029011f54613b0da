"""Decide whether a payment completes a pending donation or becomes a new one."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, Optional, Sequence, Set, Tuple

from .ports import SubscriptionResolver
from .recurrence import subscription_item_details
from .types import DonationRecord

log = logging.getLogger(__name__)

DONATION_TYPE = "Membership"


@dataclass(frozen=True)
class DonationWrite:
    fields: Dict[str, Any]
    # None means create
    record_id: Optional[int] = None

    @property
    def is_create(self) -> bool:
        return self.record_id is None


@dataclass(frozen=True)
class MatchPlan:
    writes: Tuple[DonationWrite, ...]
    honoree: str = ""

    @property
    def created(self) -> bool:
        return any(w.is_create for w in self.writes)

    @property
    def updated_ids(self) -> Tuple[int, ...]:
        return tuple(w.record_id for w in self.writes if w.record_id is not None)

    @property
    def honor_line(self) -> str:
        return f"In Honor of: {self.honoree}" if self.honoree else ""


class HonorChain:
    """
    Finds the dedication of an earlier payment on the same subscription.

    History is walked in CRM order and the first record whose charge resolves
    to ``subscription_id`` wins. Each charge id is resolved at most once per
    instance; resolver failures count as "no match".
    """

    def __init__(self, resolver: SubscriptionResolver):
        self._resolver = resolver
        self._cache: Dict[str, Optional[str]] = {}

    def _subscription_of(self, charge_id: str) -> Optional[str]:
        if charge_id not in self._cache:
            try:
                self._cache[charge_id] = self._resolver.resolve_subscription_for_charge(charge_id)
            except Exception:
                log.exception("Subscription lookup failed for %s; skipping", charge_id)
                self._cache[charge_id] = None
        return self._cache[charge_id]

    def resolve(self, subscription_id: Optional[str], history: Iterable[DonationRecord]) -> str:
        if not subscription_id:
            return ""
        for donation in history:
            if not donation.honoree or not donation.external_id:
                continue
            if self._subscription_of(donation.external_id) == subscription_id:
                return donation.honoree
        return ""


def _line_item_ids(line_items: Sequence[Dict[str, Any]]) -> Set[str]:
    ids: Set[str] = set()
    for item in line_items:
        nested = subscription_item_details(item).get("subscription")
        for value in (item.get("id"), item.get("subscription"), nested):
            if isinstance(value, dict):
                value = value.get("id")
            if value:
                ids.add(str(value))
    return ids


class DonationMatcher:
    def __init__(self, resolver: SubscriptionResolver):
        self._resolver = resolver

    def plan(
        self,
        *,
        pending: Sequence[DonationRecord],
        history: Sequence[DonationRecord],
        charge_id: str,
        subscription_id: Optional[str],
        line_items: Sequence[Dict[str, Any]],
        fields: Dict[str, Any],
        today: date,
        honor_override: str = "",
    ) -> MatchPlan:
        """
        ``fields`` holds the values written to a matched or new donation
        (amount, stripe_id, description, stripe_status).

        1. A pending donation carrying this charge id is the checkout
           placeholder for it.
        2. Otherwise a pending donation carrying one of the invoice's line
           item (subscription) ids is the placeholder for a first
           subscription charge.
        3. With no placeholder, an existing donation already carrying this
           charge id is updated (redelivered event); else a new donation is
           created for the renewal.
        """
        chain = HonorChain(self._resolver)
        honoree = (honor_override or "").strip()
        writes = []

        invoice_ids = _line_item_ids(line_items)

        for donation in pending:
            if donation.external_id and donation.external_id == charge_id:
                writes.append(DonationWrite(dict(fields), donation.id))
                if not honoree:
                    honoree = donation.honoree
                continue

            if donation.external_id and donation.external_id in invoice_ids:
                writes.append(DonationWrite(dict(fields), donation.id))
                if not honoree:
                    honoree = donation.honoree
                if not honoree:
                    honoree = chain.resolve(subscription_id, history)

        if writes:
            return MatchPlan(tuple(writes), honoree)

        previous = next((d for d in history if d.external_id and d.external_id == charge_id), None)
        if previous is not None:
            log.info("Charge %s already recorded on donation %s; updating in place", charge_id, previous.id)
            if not honoree:
                honoree = previous.honoree or chain.resolve(subscription_id, history)
            return MatchPlan((DonationWrite(dict(fields), previous.id),), honoree)

        if not honoree:
            honoree = chain.resolve(subscription_id, history)

        created = dict(fields)
        created.update(
            {
                "type": DONATION_TYPE,
                "donation_date": today,
                "in_honor_of": honoree or None,
            }
        )
        return MatchPlan((DonationWrite(created),), honoree)
