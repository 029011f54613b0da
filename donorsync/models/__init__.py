from __future__ import annotations

from donorsync.extensions import db
from donorsync.models.contact import Contact
from donorsync.models.donation import Donation
from donorsync.models.stripe_event import StripeEvent

__all__ = ["db", "Contact", "Donation", "StripeEvent"]
