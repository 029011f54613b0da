from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import Index
from sqlalchemy.orm import Mapped, mapped_column

from donorsync.extensions import db
from donorsync.models.mixins import TimestampMixin


class StripeEvent(db.Model, TimestampMixin):
    """Ledger of received webhook events; a redelivered event id is never reconciled twice."""

    __tablename__ = "stripe_events"
    __table_args__ = (
        Index("ix_stripe_events_type_created", "type", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    event_id: Mapped[str] = mapped_column(
        db.String(120),
        unique=True,
        index=True,
        nullable=False,
        doc="Stripe event id (evt_...)",
    )

    type: Mapped[str] = mapped_column(
        db.String(120),
        index=True,
        nullable=False,
        doc="Stripe event type (charge.succeeded, etc)",
    )

    livemode: Mapped[bool] = mapped_column(
        db.Boolean,
        nullable=False,
        default=False,
    )

    object_id: Mapped[Optional[str]] = mapped_column(
        db.String(120),
        nullable=True,
        index=True,
        doc="Charge id (ch_...) or dispute id (dp_...)",
    )

    payload: Mapped[Optional[Dict[str, Any]]] = mapped_column(db.JSON, nullable=True)

    # Last reconciliation status code (200 / 424), NULL when not reconciled
    status_code: Mapped[Optional[int]] = mapped_column(db.Integer, nullable=True)
