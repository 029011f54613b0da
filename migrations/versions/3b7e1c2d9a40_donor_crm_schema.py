"""donor crm schema

Revision ID: 3b7e1c2d9a40
Revises:
Create Date: 2026-10-19 09:12:41.503211
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "3b7e1c2d9a40"
down_revision = None
branch_labels = None
depends_on = None


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def _jsonb(sa_json):
    # Portable: JSON on SQLite, JSONB on Postgres
    return sa_json.with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade():
    # --- contacts ---
    op.create_table(
        "contacts",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=160), nullable=False),
        sa.Column("first_name", sa.String(length=80), nullable=True),
        sa.Column("last_name", sa.String(length=80), nullable=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("company", sa.String(length=160), nullable=True),
        sa.Column("mailing_street", sa.String(length=255), nullable=True),
        sa.Column("mailing_city", sa.String(length=80), nullable=True),
        sa.Column("mailing_state", sa.String(length=80), nullable=True),
        sa.Column("mailing_postal_code", sa.String(length=20), nullable=True),
        sa.Column("mailing_country", sa.String(length=80), nullable=True),
        sa.Column("birthday_month", sa.String(length=20), nullable=True),
        sa.Column("birthday_year", sa.String(length=4), nullable=True),
        sa.Column("gender", sa.String(length=40), nullable=True),
        sa.Column("hear_about", sa.String(length=60), nullable=True),
        sa.Column("hear_about_extra", sa.String(length=255), nullable=True),
        sa.Column("paid_this_charge", sa.Numeric(10, 2), nullable=True),
        sa.Column("paid", sa.Boolean(), nullable=False),
        sa.Column("payment_type", sa.String(length=40), nullable=True),
        sa.Column("donation_each", sa.Numeric(10, 2), nullable=True),
        sa.Column("total_paid_this_year", sa.Numeric(12, 2), nullable=True),
        sa.Column("member_level", sa.String(length=40), nullable=True),
        sa.Column("member_type", sa.String(length=40), nullable=True),
        sa.Column("renewal_date", sa.Date(), nullable=True),
        sa.Column("membership_start_date", sa.Date(), nullable=True),
        *_timestamps(),
    )
    with op.batch_alter_table("contacts") as batch_op:
        batch_op.create_index(batch_op.f("ix_contacts_email"), ["email"], unique=True)
        batch_op.create_index(batch_op.f("ix_contacts_member_level"), ["member_level"], unique=False)
        batch_op.create_index(batch_op.f("ix_contacts_created_at"), ["created_at"], unique=False)
        batch_op.create_index(batch_op.f("ix_contacts_updated_at"), ["updated_at"], unique=False)

    # --- donations ---
    op.create_table(
        "donations",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column(
            "contact_id",
            sa.Integer(),
            sa.ForeignKey("contacts.id", name="fk_donations_contact_id_contacts", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(length=40), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("donation_date", sa.Date(), nullable=True),
        sa.Column("stripe_status", sa.String(length=20), nullable=True),
        sa.Column("stripe_id", sa.String(length=120), nullable=True),
        sa.Column("in_honor_of", sa.String(length=255), nullable=True),
        sa.Column("description", sa.String(length=255), nullable=True),
        *_timestamps(),
    )
    with op.batch_alter_table("donations") as batch_op:
        batch_op.create_index("ix_donations_contact_date", ["contact_id", "donation_date"], unique=False)
        batch_op.create_index(batch_op.f("ix_donations_contact_id"), ["contact_id"], unique=False)
        batch_op.create_index(batch_op.f("ix_donations_donation_date"), ["donation_date"], unique=False)
        batch_op.create_index(batch_op.f("ix_donations_stripe_status"), ["stripe_status"], unique=False)
        batch_op.create_index(batch_op.f("ix_donations_stripe_id"), ["stripe_id"], unique=False)
        batch_op.create_index(batch_op.f("ix_donations_created_at"), ["created_at"], unique=False)
        batch_op.create_index(batch_op.f("ix_donations_updated_at"), ["updated_at"], unique=False)

    # --- stripe_events ---
    op.create_table(
        "stripe_events",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("event_id", sa.String(length=120), nullable=False),
        sa.Column("type", sa.String(length=120), nullable=False),
        sa.Column("livemode", sa.Boolean(), nullable=False),
        sa.Column("object_id", sa.String(length=120), nullable=True),
        sa.Column("payload", _jsonb(sa.JSON()), nullable=True),
        sa.Column("status_code", sa.Integer(), nullable=True),
        *_timestamps(),
    )
    with op.batch_alter_table("stripe_events") as batch_op:
        batch_op.create_index(batch_op.f("ix_stripe_events_event_id"), ["event_id"], unique=True)
        batch_op.create_index(batch_op.f("ix_stripe_events_type"), ["type"], unique=False)
        batch_op.create_index(batch_op.f("ix_stripe_events_object_id"), ["object_id"], unique=False)
        batch_op.create_index("ix_stripe_events_type_created", ["type", "created_at"], unique=False)
        batch_op.create_index(batch_op.f("ix_stripe_events_created_at"), ["created_at"], unique=False)
        batch_op.create_index(batch_op.f("ix_stripe_events_updated_at"), ["updated_at"], unique=False)


def downgrade():
    op.drop_table("stripe_events")
    op.drop_table("donations")
    op.drop_table("contacts")
