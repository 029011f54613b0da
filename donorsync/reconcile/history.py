"""This year's donations for a contact."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Tuple

from .ports import CRMClient
from .status import DonationStatus
from .types import DonationRecord, to_date

log = logging.getLogger(__name__)

COUNTED_STATUSES = frozenset(
    {
        DonationStatus.PENDING.value,
        DonationStatus.SUCCESS.value,
        DonationStatus.UNSPECIFIED.value,
    }
)

# Webhooks for New Year's Eve charges can land a few days late.
GRACE_DAYS = 3


@dataclass(frozen=True)
class DonationHistory:
    valid: Tuple[DonationRecord, ...] = ()
    all: Tuple[DonationRecord, ...] = ()

    @property
    def pending(self) -> Tuple[DonationRecord, ...]:
        return tuple(d for d in self.valid if d.status == DonationStatus.PENDING.value)


def year_window_start(now: datetime) -> date:
    """Jan 1 of the current year, or Dec 31 of last year during the first days of January."""
    today = now.date() if isinstance(now, datetime) else now
    if today.month == 1 and today.day <= GRACE_DAYS:
        return date(today.year - 1, 12, 31)
    return date(today.year, 1, 1)


def partition_history(records: Iterable[DonationRecord], now: datetime) -> DonationHistory:
    start = year_window_start(now)
    everything = tuple(records)
    valid = []
    for donation in everything:
        if donation.status not in COUNTED_STATUSES:
            continue
        when = to_date(donation.donation_date)
        if when is None or when < start:
            continue
        valid.append(donation)
    return DonationHistory(valid=tuple(valid), all=everything)


def load_history(crm: CRMClient, contact_id: int, now: datetime) -> DonationHistory:
    """Fetch and partition; a failed query degrades to an empty history."""
    try:
        records = crm.query_donations_for_contact(contact_id)
    except Exception:
        log.exception("Donation history lookup failed for contact %s; totals will be incomplete", contact_id)
        records = []
    return partition_history(records or [], now)
