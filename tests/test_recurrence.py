from __future__ import annotations

from donorsync.reconcile import Recurrence, classify_recurrence


def test_no_invoice_is_one_time() -> None:
    info = classify_recurrence(None)
    assert info.recurrence is Recurrence.ONE_TIME
    assert info.subscription_id is None
    assert info.label == "One time"


def test_monthly_plan_interval() -> None:
    invoice = {"lines": {"data": [{"id": "sub_1", "type": "subscription", "plan": {"interval": "month"}}]}}
    info = classify_recurrence(invoice)

    assert info.recurrence is Recurrence.MONTHLY
    assert info.subscription_id == "sub_1"
    assert info.line_items == tuple(invoice["lines"]["data"])


def test_annual_price_interval_and_subscription_field() -> None:
    invoice = {
        "lines": {
            "data": [
                {"id": "il_9", "type": "subscription", "subscription": "sub_9", "price": {"recurring": {"interval": "year"}}}
            ]
        }
    }
    info = classify_recurrence(invoice)

    assert info.recurrence is Recurrence.ANNUAL
    assert info.subscription_id == "sub_9"


def test_first_subscription_item_wins() -> None:
    invoice = {
        "lines": {
            "data": [
                {"id": "ii_1", "type": "invoiceitem"},
                {"id": "sub_a", "type": "subscription", "plan": {"interval": "year"}},
                {"id": "sub_b", "type": "subscription", "plan": {"interval": "month"}},
            ]
        }
    }
    info = classify_recurrence(invoice)

    assert info.recurrence is Recurrence.ANNUAL
    assert info.subscription_id == "sub_a"


def test_invoice_without_subscription_items_is_one_time() -> None:
    info = classify_recurrence({"lines": {"data": [{"id": "ii_1", "type": "invoiceitem"}]}})
    assert info.recurrence is Recurrence.ONE_TIME
    assert info.subscription_id is None


def test_unknown_interval_stays_unset() -> None:
    info = classify_recurrence({"lines": {"data": [{"id": "sub_w", "type": "subscription", "plan": {"interval": "week"}}]}})

    assert info.recurrence is None
    assert info.effective is Recurrence.ONE_TIME
    assert info.label == "Recurring"
    assert info.subscription_id == "sub_w"


def test_nested_subscription_item_details_shape() -> None:
    invoice = {
        "lines": {
            "data": [
                {"id": "il_0", "object": "line_item", "parent": {"type": "invoice_item_details"}},
                {
                    "id": "il_1",
                    "object": "line_item",
                    "parent": {
                        "type": "subscription_item_details",
                        "subscription_item_details": {"subscription": "sub_9", "subscription_item": "si_1"},
                    },
                    "pricing": {"price_details": {"price": {"id": "price_1", "recurring": {"interval": "month"}}}},
                },
            ]
        }
    }
    info = classify_recurrence(invoice)

    assert info.recurrence is Recurrence.MONTHLY
    assert info.subscription_id == "sub_9"


def test_nested_shape_without_expanded_price_is_recurring() -> None:
    item = {
        "id": "il_1",
        "parent": {"type": "subscription_item_details", "subscription_item_details": {"subscription": "sub_9"}},
        "pricing": {"price_details": {"price": "price_1"}},
    }
    info = classify_recurrence({"lines": {"data": [item]}})

    assert info.recurrence is None
    assert info.label == "Recurring"
    assert info.subscription_id == "sub_9"
