from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Mapped, mapped_column, relationship

from donorsync.extensions import db

from .mixins import TimestampMixin


class Contact(db.Model, TimestampMixin):
    __tablename__ = "contacts"

    id: Mapped[int] = mapped_column(primary_key=True)

    # ---- Identity ----
    email: Mapped[str] = mapped_column(db.String(160), nullable=False, unique=True, index=True)
    first_name: Mapped[Optional[str]] = mapped_column(db.String(80), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(db.String(80), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(db.String(40), nullable=True)
    company: Mapped[Optional[str]] = mapped_column(db.String(160), nullable=True)

    mailing_street: Mapped[Optional[str]] = mapped_column(db.String(255), nullable=True)
    mailing_city: Mapped[Optional[str]] = mapped_column(db.String(80), nullable=True)
    mailing_state: Mapped[Optional[str]] = mapped_column(db.String(80), nullable=True)
    mailing_postal_code: Mapped[Optional[str]] = mapped_column(db.String(20), nullable=True)
    mailing_country: Mapped[Optional[str]] = mapped_column(db.String(80), nullable=True)

    birthday_month: Mapped[Optional[str]] = mapped_column(db.String(20), nullable=True)
    birthday_year: Mapped[Optional[str]] = mapped_column(db.String(4), nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(db.String(40), nullable=True)
    hear_about: Mapped[Optional[str]] = mapped_column(db.String(60), nullable=True)
    hear_about_extra: Mapped[Optional[str]] = mapped_column(db.String(255), nullable=True)

    # ---- Donor state (written by reconciliation) ----
    paid_this_charge: Mapped[Optional[Decimal]] = mapped_column(db.Numeric(10, 2), nullable=True)
    paid: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=False)
    payment_type: Mapped[Optional[str]] = mapped_column(db.String(40), nullable=True)
    donation_each: Mapped[Optional[Decimal]] = mapped_column(db.Numeric(10, 2), nullable=True)
    total_paid_this_year: Mapped[Optional[Decimal]] = mapped_column(db.Numeric(12, 2), nullable=True)
    member_level: Mapped[Optional[str]] = mapped_column(
        db.String(40),
        nullable=True,
        index=True,
        doc="Donor / Friend / Member / Affiliate / Sponsor / Investor / Benefactor",
    )
    member_type: Mapped[Optional[str]] = mapped_column(db.String(40), nullable=True, doc="Spark Member / Donor")
    renewal_date: Mapped[Optional[date]] = mapped_column(db.Date, nullable=True)
    membership_start_date: Mapped[Optional[date]] = mapped_column(db.Date, nullable=True)

    donations: Mapped[List["Donation"]] = relationship(
        "Donation",
        back_populates="contact",
        order_by="Donation.id",
        cascade="all, delete-orphan",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Contact {self.email} Level={self.member_level}>"
