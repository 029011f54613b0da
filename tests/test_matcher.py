from __future__ import annotations

from datetime import date

from donorsync.reconcile import DonationMatcher, DonationRecord, HonorChain

TODAY = date(2024, 5, 5)
FIELDS = {"amount": "10.00", "stripe_id": "ch_2", "description": "d", "stripe_status": "Success"}


def _plan(payments, **kwargs):
    params = dict(
        pending=(),
        history=(),
        charge_id="ch_2",
        subscription_id=None,
        line_items=(),
        fields=dict(FIELDS),
        today=TODAY,
    )
    params.update(kwargs)
    return DonationMatcher(payments).plan(**params)


def test_pending_placeholder_with_charge_id_is_updated(payments) -> None:
    placeholder = DonationRecord(id=7, stripe_status="Pending", stripe_id="ch_2", in_honor_of="Grandma")
    plan = _plan(payments, pending=(placeholder,), history=(placeholder,))

    assert not plan.created
    assert plan.updated_ids == (7,)
    assert plan.honoree == "Grandma"
    assert plan.honor_line == "In Honor of: Grandma"
    assert plan.writes[0].fields == FIELDS


def test_pending_subscription_placeholder_matches_line_item(payments) -> None:
    placeholder = DonationRecord(id=8, stripe_status="Pending", stripe_id="sub_1")
    plan = _plan(
        payments,
        pending=(placeholder,),
        history=(placeholder,),
        subscription_id="sub_1",
        line_items=({"id": "il_1", "type": "subscription", "subscription": "sub_1"},),
    )

    assert plan.updated_ids == (8,)
    assert plan.honoree == ""


def test_pending_placeholder_matches_nested_subscription_details(payments) -> None:
    placeholder = DonationRecord(id=9, stripe_status="Pending", stripe_id="sub_9")
    item = {
        "id": "il_1",
        "object": "line_item",
        "parent": {"type": "subscription_item_details", "subscription_item_details": {"subscription": "sub_9"}},
    }
    plan = _plan(payments, pending=(placeholder,), history=(placeholder,), subscription_id="sub_9", line_items=(item,))

    assert not plan.created
    assert plan.updated_ids == (9,)


def test_fresh_monthly_renewal_creates_new_record(payments) -> None:
    old = DonationRecord(id=1, stripe_status="Success", stripe_id="ch_1")
    payments.subscriptions["ch_1"] = "sub_other"

    plan = _plan(
        payments,
        history=(old,),
        subscription_id="sub_new",
        line_items=({"id": "sub_new", "type": "subscription"},),
    )

    assert plan.created
    assert plan.updated_ids == ()
    created = plan.writes[0].fields
    assert created["type"] == "Membership"
    assert created["donation_date"] == TODAY
    assert created["stripe_id"] == "ch_2"
    assert created["in_honor_of"] is None


def test_renewal_inherits_honoree_from_same_subscription(payments) -> None:
    first = DonationRecord(id=1, stripe_status="Success", stripe_id="ch_1", in_honor_of="Coach Lee")
    other = DonationRecord(id=2, stripe_status="Success", stripe_id="ch_x", in_honor_of="Someone else")
    payments.subscriptions.update({"ch_x": "sub_other", "ch_1": "sub_1"})

    plan = _plan(payments, history=(other, first), subscription_id="sub_1")

    assert plan.created
    assert plan.honoree == "Coach Lee"
    assert plan.writes[0].fields["in_honor_of"] == "Coach Lee"


def test_explicit_honor_overrides_inherited(payments) -> None:
    first = DonationRecord(id=1, stripe_status="Success", stripe_id="ch_1", in_honor_of="Coach Lee")
    payments.subscriptions["ch_1"] = "sub_1"

    plan = _plan(payments, history=(first,), subscription_id="sub_1", honor_override="Mom")

    assert plan.honoree == "Mom"
    assert payments.resolved == []


def test_already_recorded_charge_is_updated_in_place(payments) -> None:
    done = DonationRecord(id=3, stripe_status="Success", stripe_id="ch_2", amount="10.00")
    plan = _plan(payments, history=(done,))

    assert not plan.created
    assert plan.updated_ids == (3,)


def test_honor_chain_resolves_each_charge_once_and_survives_errors(payments) -> None:
    history = (
        DonationRecord(id=1, stripe_id="ch_a", in_honor_of="A"),
        DonationRecord(id=2, stripe_id="ch_b", in_honor_of="B"),
        DonationRecord(id=3, stripe_id="ch_a", in_honor_of="A"),
    )
    payments.subscriptions.update({"ch_a": RuntimeError("stripe down"), "ch_b": "sub_b"})
    chain = HonorChain(payments)

    assert chain.resolve("sub_b", history) == "B"
    assert chain.resolve("sub_zzz", history) == ""
    assert payments.resolved == ["ch_a", "ch_b"]


def test_honor_chain_skips_without_subscription(payments) -> None:
    history = (DonationRecord(id=1, stripe_id="ch_a", in_honor_of="A"),)
    assert HonorChain(payments).resolve(None, history) == ""
    assert payments.resolved == []
