"""Stripe event type -> donation status picklist."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional


class DonationStatus(str, Enum):
    PENDING = "Pending"
    SUCCESS = "Success"
    FAILED = "Failed"
    REFUNDED = "Refunded"
    DISPUTED = "Disputed"
    CHARGEDBACK = "Chargedback"
    # the CRM's "--none--" picklist value
    UNSPECIFIED = ""

    def __str__(self) -> str:
        return self.value


DISPUTE_CLOSED = "charge.dispute.closed"

_STATUS_BY_EVENT: Dict[str, DonationStatus] = {
    "charge.captured": DonationStatus.SUCCESS,
    "charge.succeeded": DonationStatus.SUCCESS,
    "charge.dispute.funds_reinstated": DonationStatus.SUCCESS,
    "charge.updated": DonationStatus.SUCCESS,
    "charge.failed": DonationStatus.FAILED,
    "charge.refunded": DonationStatus.REFUNDED,
    "charge.dispute.create": DonationStatus.DISPUTED,
    "charge.dispute.created": DonationStatus.DISPUTED,
    "charge.dispute.updated": DonationStatus.DISPUTED,
    "charge.disputed.funds_withdrawn": DonationStatus.CHARGEDBACK,
    "charge.dispute.funds_withdrawn": DonationStatus.CHARGEDBACK,
}

_DISPUTE_CLOSED_BY_OUTCOME: Dict[str, DonationStatus] = {
    "won": DonationStatus.SUCCESS,
    "lost": DonationStatus.CHARGEDBACK,
}


def map_status(event_type: Optional[str], dispute_status: Optional[str] = None) -> DonationStatus:
    """
    Map a webhook event type to the donation status picklist.

    The dispute sub-status is only consulted for ``charge.dispute.closed``;
    a closed dispute without a won/lost outcome stays Disputed. Unknown types
    map to UNSPECIFIED rather than raising.
    """
    etype = (event_type or "").strip().lower()

    if etype == DISPUTE_CLOSED:
        outcome = (dispute_status or "").strip().lower()
        return _DISPUTE_CLOSED_BY_OUTCOME.get(outcome, DonationStatus.DISPUTED)

    return _STATUS_BY_EVENT.get(etype, DonationStatus.UNSPECIFIED)
