# donorsync/cli.py
from datetime import datetime
from decimal import Decimal, InvalidOperation

import click
from flask.cli import AppGroup
from sqlalchemy import select

from donorsync.extensions import db, safe_commit

donations_cli = AppGroup("donations", help="Donation reconciliation tools.")

_RECURRENCE_CHOICES = {
    "one-time": "ONE_TIME",
    "monthly": "MONTHLY",
    "annual": "ANNUAL",
}


@donations_cli.command("replay")
@click.argument("event_id")
def replay(event_id: str):
    """Re-run reconciliation for a stored Stripe event."""
    # lazy imports to prevent circular imports
    from donorsync.models import StripeEvent
    from donorsync.services import event_from_payload, get_engine, get_payment_client

    row = db.session.execute(select(StripeEvent).where(StripeEvent.event_id == event_id)).scalar_one_or_none()
    if row is None or not row.payload:
        raise click.ClickException(f"No stored payload for event {event_id}")

    event = event_from_payload(row.payload, get_payment_client())
    result = get_engine().run(event)

    row.status_code = result.http_status
    safe_commit()

    if result.ok:
        tier = result.outcome.tier
        click.echo(
            f"{event_id}: {result.http_status} total={tier.total_paid_this_year} "
            f"level={tier.member_level} type={tier.member_type}"
        )
    else:
        click.echo(f"{event_id}: {result.http_status} {result.failure.kind}: {result.failure.message}")


@donations_cli.command("tier")
@click.argument("amount")
@click.option(
    "--recurrence",
    type=click.Choice(sorted(_RECURRENCE_CHOICES)),
    default="one-time",
    show_default=True,
)
@click.option("--month", type=click.IntRange(1, 12), default=None, help="Defaults to the current month.")
def tier(amount: str, recurrence: str, month):
    """Show the membership level a new donation of AMOUNT would give (no history)."""
    from donorsync.reconcile import Recurrence, calculate_tier

    try:
        value = Decimal(amount)
    except InvalidOperation:
        raise click.BadParameter("amount must be a number", param_hint="AMOUNT")

    result = calculate_tier((), value, Recurrence[_RECURRENCE_CHOICES[recurrence]], month or datetime.now().month)
    click.echo(
        f"paid={result.total_paid_this_year} projected={result.projected_total} "
        f"type={result.member_type} level={result.member_level}"
    )
