from __future__ import annotations

# -----------------------------------------------------------------------------
# Donation line item, child of Contact.
# Pending placeholders are written at checkout and completed in place by the
# reconciliation engine; subscription renewals arrive as fresh rows.
# -----------------------------------------------------------------------------
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from donorsync.extensions import db

from .mixins import TimestampMixin


class Donation(db.Model, TimestampMixin):
    __tablename__ = "donations"
    __table_args__ = (
        Index("ix_donations_contact_date", "contact_id", "donation_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    contact_id: Mapped[int] = mapped_column(
        db.ForeignKey("contacts.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    contact: Mapped["Contact"] = relationship("Contact", back_populates="donations")

    type: Mapped[str] = mapped_column(db.String(40), nullable=False, default="Membership")

    # NULL until the charge is confirmed
    amount: Mapped[Optional[Decimal]] = mapped_column(db.Numeric(10, 2), nullable=True)

    donation_date: Mapped[Optional[date]] = mapped_column(db.Date, nullable=True, index=True)

    stripe_status: Mapped[Optional[str]] = mapped_column(
        db.String(20),
        nullable=True,
        index=True,
        doc="Pending / Success / Failed / Refunded / Disputed / Chargedback, or empty",
    )

    stripe_id: Mapped[Optional[str]] = mapped_column(
        db.String(120),
        nullable=True,
        index=True,
        doc="Stripe charge id (ch_...) or subscription id (sub_...) for checkout placeholders",
    )

    in_honor_of: Mapped[Optional[str]] = mapped_column(db.String(255), nullable=True)

    description: Mapped[Optional[str]] = mapped_column(db.String(255), nullable=True)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Donation {self.id} {self.stripe_id} {self.stripe_status} {self.amount}>"
