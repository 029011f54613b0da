"""Donation reconciliation and membership-level engine."""

from .engine import Failure, ReconciliationContext, ReconciliationEngine, Result
from .history import DonationHistory, partition_history, year_window_start
from .matcher import DonationMatcher, HonorChain, MatchPlan
from .notify import Notifier, NotifySettings
from .recurrence import Recurrence, RecurrenceInfo, classify_recurrence
from .status import DonationStatus, map_status
from .tiers import TierResult, calculate_tier, projection_multiplier, tier_for
from .types import ContactRecord, DonationRecord, ReconciliationEvent

__all__ = [
    "ContactRecord",
    "DonationHistory",
    "DonationMatcher",
    "DonationRecord",
    "DonationStatus",
    "Failure",
    "HonorChain",
    "MatchPlan",
    "Notifier",
    "NotifySettings",
    "ReconciliationContext",
    "ReconciliationEngine",
    "ReconciliationEvent",
    "Recurrence",
    "RecurrenceInfo",
    "Result",
    "TierResult",
    "calculate_tier",
    "classify_recurrence",
    "map_status",
    "partition_history",
    "projection_multiplier",
    "tier_for",
    "year_window_start",
]
