"""Membership level from the yearly donation total."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from .recurrence import Recurrence
from .types import DonationRecord, to_decimal

MEMBER_THRESHOLD = Decimal("75")

MEMBER_TYPE = "Spark Member"
DONOR_TYPE = "Donor"

# Highest band first; lower bound inclusive.
TIER_BANDS: Tuple[Tuple[Decimal, str], ...] = (
    (Decimal("2500"), "Benefactor"),
    (Decimal("1000"), "Investor"),
    (Decimal("500"), "Sponsor"),
    (Decimal("250"), "Affiliate"),
    (Decimal("100"), "Member"),
    (Decimal("75"), "Friend"),
)
BASE_TIER = "Donor"


@dataclass(frozen=True)
class TierResult:
    total_paid_this_year: Decimal
    projected_total: Decimal
    member_type: str
    member_level: str


def tier_for(amount: Decimal) -> str:
    for floor, label in TIER_BANDS:
        if amount >= floor:
            return label
    return BASE_TIER


def projection_multiplier(recurrence: Optional[Recurrence], month: int) -> int:
    """Remaining monthly charges this year, counting the current month."""
    if recurrence is Recurrence.MONTHLY:
        return 13 - int(month)
    return 1


def sum_amounts(donations: Iterable[DonationRecord]) -> Decimal:
    total = Decimal("0")
    for donation in donations:
        amount = to_decimal(donation.amount)
        if amount is not None:
            total += amount
    return total


def calculate_tier(
    valid: Iterable[DonationRecord],
    new_amount: Decimal,
    recurrence: Optional[Recurrence],
    month: int,
) -> TierResult:
    """
    ``total_paid_this_year`` is what was actually paid (window donations plus
    this charge). The member type and level are decided on the projected
    total, which for monthly donors adds the charges still to come this year.
    """
    year_sum = sum_amounts(valid) + new_amount

    projected = year_sum
    if recurrence is Recurrence.MONTHLY:
        projected = year_sum + new_amount * projection_multiplier(recurrence, month)

    return TierResult(
        total_paid_this_year=year_sum,
        projected_total=projected,
        member_type=MEMBER_TYPE if projected >= MEMBER_THRESHOLD else DONOR_TYPE,
        member_level=tier_for(projected),
    )
